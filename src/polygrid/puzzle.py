"""High level puzzle session container."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from .config import PuzzleConfig
from .errors import ActionResult, Rejection
from .events import EventBus
from .grid import Grid
from .integrity import IntegritySweep
from .piece import Piece, PieceState
from .shapes import DEFAULT_LEVEL, LevelPiece, shape_cells
from .validator import PlacementValidator

LOGGER = logging.getLogger(__name__)


def _nothing_held() -> ActionResult:
    return ActionResult.reject(Rejection.WRONG_STATE, "no piece is held")


@dataclass
class Puzzle:
    """Mutable state for one puzzle session.

    The puzzle builds the grid, validator, event bus and sweep once and hands
    them to every piece it creates.  Input is routed to a single active piece
    at a time; every other piece rests.
    """

    config: PuzzleConfig = field(default_factory=PuzzleConfig)
    level: List[LevelPiece] = field(default_factory=lambda: list(DEFAULT_LEVEL))
    events: EventBus = field(default_factory=EventBus)
    pieces: List[Piece] = field(default_factory=list, init=False)
    active: Optional[Piece] = field(default=None, init=False)

    def __post_init__(self) -> None:
        cfg = self.config
        self.grid = Grid(cfg.width, cfg.height, cfg.cell_size, cfg.origin)
        self.validator = PlacementValidator(self.grid)
        self.sweep = IntegritySweep(self.grid, cfg.sweep_interval)
        self.reset_game()

    def reset_game(self) -> None:
        """Empty the grid and put every level piece back in its tray slot."""

        cfg = self.config
        self.grid.initialize(cfg.width, cfg.height, cfg.cell_size, cfg.origin)
        self.pieces = []
        self.active = None
        for entry in self.level:
            self.add_piece(entry.name, shape_cells(entry.shape), entry.tray_anchor)
        LOGGER.info(
            "Puzzle reset: %dx%d grid, %d piece(s)",
            cfg.width,
            cfg.height,
            len(self.pieces),
        )

    def add_piece(
        self,
        name: str,
        cells: Iterable[Sequence[float]],
        anchor: Sequence[float] = (0.0, 0.0),
    ) -> Piece:
        """Create a piece, register it with the grid and return it."""

        piece = Piece(
            len(self.pieces),
            cells,
            grid=self.grid,
            validator=self.validator,
            events=self.events,
            config=self.config,
            name=name,
            anchor=anchor,
        )
        self.grid.register(piece)
        self.pieces.append(piece)
        return piece

    def piece_named(self, name: str) -> Piece:
        for piece in self.pieces:
            if piece.name == name:
                return piece
        raise KeyError(name)

    def piece_at(self, position: Sequence[float]) -> Optional[Piece]:
        """Return the topmost piece under ``position``, if any."""

        for piece in reversed(self.pieces):
            if piece.contains(position):
                return piece
        return None

    # Input routing ----------------------------------------------------
    def pick_up(self, position: Sequence[float]) -> ActionResult:
        if self.active is not None and self.active.state is PieceState.DRAGGING:
            return ActionResult.reject(Rejection.WRONG_STATE, "a piece is already held")
        piece = self.piece_at(position)
        if piece is None:
            return ActionResult.reject(Rejection.WRONG_STATE, "no piece under the pointer")
        result = piece.on_pickup(position)
        if result:
            self.active = piece
            # Draw and hit-test the held piece above the others.
            self.pieces.remove(piece)
            self.pieces.append(piece)
        return result

    def drag(self, position: Sequence[float]) -> ActionResult:
        if self.active is None:
            return _nothing_held()
        return self.active.on_drag(position)

    def release(self) -> ActionResult:
        if self.active is None:
            return _nothing_held()
        return self.active.on_release()

    def rotate(self) -> ActionResult:
        if self.active is None:
            return _nothing_held()
        return self.active.on_rotate_request()

    def mirror(self) -> ActionResult:
        if self.active is None:
            return _nothing_held()
        return self.active.on_mirror_request()

    def tick(self, dt: float) -> None:
        """Advance snapping pieces and the integrity sweep by ``dt`` seconds."""

        for piece in list(self.pieces):
            if piece.state is PieceState.SNAPPING:
                piece.tick(dt)
        self.sweep.tick(dt)

    def settle(self, dt: float = 1.0 / 60.0, max_ticks: int = 1000) -> int:
        """Tick until no piece is snapping.  Returns the number of ticks used."""

        for count in range(max_ticks):
            if not any(p.state is PieceState.SNAPPING for p in self.pieces):
                return count
            self.tick(dt)
        return max_ticks

    def is_solved(self) -> bool:
        return self.grid.is_solved()
