"""Utility helpers for the puzzle engine."""

from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Optional, Sequence

from .geometry import Cell, anchor_cell_for
from .grid import Grid
from .piece import Piece, PieceState
from .puzzle import Puzzle

LOGGER = logging.getLogger(__name__)


def render_grid(grid: Grid, pieces: Optional[Sequence[Piece]] = None) -> List[List[int]]:
    """Return a ``[y][x]`` matrix of the board with held pieces overlaid.

    Free cells are ``0``; a covered cell holds its first occupant's id plus
    one.  Pieces that are not placed (held or snapping) are drawn over the
    board wherever they overlap it, without touching the grid itself.
    """

    rows = [[0] * grid.width for _ in range(grid.height)]
    for y in range(grid.height):
        for x in range(grid.width):
            owners = grid.occupants((x, y))
            if owners:
                rows[y][x] = owners[0] + 1
    for piece in pieces or ():
        if piece.is_placed or piece.state is PieceState.IDLE:
            continue
        for x, y in piece.footprint():
            if grid.in_bounds((x, y)):
                rows[y][x] = piece.piece_id + 1
    return rows


def format_grid(rows: List[List[int]]) -> str:
    """Return ``rows`` as text, one character per cell."""

    return "\n".join(
        "".join(_cell_char(value) for value in row) for row in rows
    )


def _cell_char(value: int) -> str:
    if not value:
        return "."
    return chr(ord("A") + (value - 1) % 26)


def _orient(piece: Piece, cells: Iterable[Cell]) -> Optional[Cell]:
    """Rotate/mirror the held ``piece`` until it can cover ``cells``."""

    target = frozenset(cells)
    if piece.rotation % 2:
        piece.on_rotate_request()
    for flip in (False, True):
        if flip and not piece.on_mirror_request():
            return None
        for _ in range(4):
            anchor = anchor_cell_for(piece.offsets, target)
            if anchor is not None:
                return anchor
            piece.on_rotate_request()
    return None


def move_piece(puzzle: Puzzle, piece: Piece, cells: Iterable[Cell], dt: float = 1.0 / 60.0) -> bool:
    """Drive ``piece`` through the input protocol so it lands on ``cells``.

    Returns ``True`` if the piece ended up placed.
    """

    grab = tuple(piece.square_centres()[0])
    if not puzzle.pick_up(grab) or puzzle.active is not piece:
        LOGGER.warning("Could not pick up %s", piece.name)
        return False

    anchor = _orient(piece, cells)
    if anchor is None:
        LOGGER.warning("%s cannot cover %s", piece.name, sorted(cells))
        puzzle.release()
        return False

    tx, ty = puzzle.grid.cell_to_world(anchor)
    puzzle.drag((tx - piece.grab_offset[0], ty - piece.grab_offset[1]))
    puzzle.release()
    puzzle.settle(dt)
    return piece.is_placed


def autosolve(puzzle: Puzzle, solution: Mapping[str, Iterable[Cell]], dt: float = 1.0 / 60.0) -> bool:
    """Place every piece named in ``solution`` and report whether it solved."""

    for name, cells in solution.items():
        piece = puzzle.piece_named(name)
        if not move_piece(puzzle, piece, list(cells), dt):
            return False
    return puzzle.is_solved()
