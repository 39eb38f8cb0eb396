"""Occupancy grid: the single source of truth for what is occupied where."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Set, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from .errors import ConfigurationError, InvalidPlacementError
from .geometry import Cell, round_half_up

LOGGER = logging.getLogger(__name__)

Occupancy = NDArray[np.uint16]


class HasPieceId(Protocol):
    piece_id: int


# Pieces are referenced by id only.  Anything exposing ``piece_id`` works too.
PieceRef = Union[int, HasPieceId]


def piece_key(piece: PieceRef) -> int:
    """Return the integer identity for ``piece``."""

    if isinstance(piece, int):
        return piece
    return piece.piece_id


class Grid:
    """Fixed-size grid mapping each cell to the pieces covering it.

    Two indexes are kept in step: ``cell -> piece ids`` (ordered by arrival)
    and ``piece id -> claimed cells``.  Every mutation goes through
    :meth:`place`, :meth:`remove` or :meth:`clear`, which update both before
    returning, so no half-updated state is ever observable.
    """

    def __init__(
        self,
        width: int,
        height: int,
        cell_size: float = 1.0,
        origin: Sequence[float] = (0.0, 0.0),
    ) -> None:
        self.initialize(width, height, cell_size, origin)

    def initialize(
        self,
        width: int,
        height: int,
        cell_size: float = 1.0,
        origin: Sequence[float] = (0.0, 0.0),
    ) -> None:
        """(Re)create an empty grid.  Registered pieces are forgotten.

        Raises:
            ConfigurationError: If a dimension or the cell size is not positive.
        """

        if width <= 0 or height <= 0:
            raise ConfigurationError(
                f"Grid dimensions must be positive, got {width}x{height}"
            )
        if cell_size <= 0:
            raise ConfigurationError("Cell size must be positive")
        self.width = int(width)
        self.height = int(height)
        self.cell_size = float(cell_size)
        self.origin: Tuple[float, float] = (float(origin[0]), float(origin[1]))
        self.counts: Occupancy = np.zeros((self.height, self.width), dtype=np.uint16)
        self._occupants: Dict[Cell, List[int]] = {}
        self._claims: Dict[int, Tuple[Cell, ...]] = {}
        self._registered: Set[int] = set()
        self._unplaced: Set[int] = set()
        LOGGER.debug("Grid initialised: %dx%d cells", self.width, self.height)

    # Coordinates ------------------------------------------------------
    def in_bounds(self, cell: Cell) -> bool:
        x, y = cell
        return 0 <= x < self.width and 0 <= y < self.height

    def cell_of(self, position: Sequence[float]) -> Cell:
        """Return the cell containing ``position`` without clamping."""

        ox, oy = self.origin
        return (
            round_half_up((position[0] - ox) / self.cell_size),
            round_half_up((position[1] - oy) / self.cell_size),
        )

    def cell_to_world(self, cell: Cell) -> Tuple[float, float]:
        """Return the world position of the centre of ``cell``."""

        ox, oy = self.origin
        return (ox + cell[0] * self.cell_size, oy + cell[1] * self.cell_size)

    def snap_to_grid(self, position: Sequence[float]) -> Cell:
        """Return the in-bounds cell nearest to ``position``."""

        x, y = self.cell_of(position)
        return (min(max(x, 0), self.width - 1), min(max(y, 0), self.height - 1))

    def footprint_of(self, positions: Iterable[Sequence[float]]) -> frozenset[Cell]:
        """Discretise sub-cell world positions into a footprint."""

        return frozenset(self.cell_of(p) for p in positions)

    # Queries ----------------------------------------------------------
    def is_occupied(self, cell: Cell) -> bool:
        """Return ``True`` if ``cell`` has an occupant.

        Coordinates outside the grid are reported as free.
        """

        if not self.in_bounds(cell):
            return False
        return bool(self.counts[cell[1], cell[0]] > 0)

    def occupants(self, cell: Cell) -> Tuple[int, ...]:
        """Return the ids of the pieces covering ``cell`` in arrival order."""

        return tuple(self._occupants.get(cell, ()))

    def cells_of(self, piece: PieceRef) -> frozenset[Cell]:
        return frozenset(self._claims.get(piece_key(piece), ()))

    def is_placed(self, piece: PieceRef) -> bool:
        return piece_key(piece) in self._claims

    def placed_pieces(self) -> Tuple[int, ...]:
        return tuple(self._claims)

    def can_place(
        self, footprint: Iterable[Cell], ignore: Optional[PieceRef] = None
    ) -> bool:
        """Return ``True`` if every cell is in bounds and free.

        An empty footprint is never placeable.  Cells held only by ``ignore`` count as free.  A dragged piece holds no
        cells at all, so callers must :meth:`remove` it before asking.
        """

        cells = list(footprint)
        if not cells:
            return False
        skip = None if ignore is None else piece_key(ignore)
        for cell in cells:
            if not self.in_bounds(cell):
                return False
            if any(owner != skip for owner in self._occupants.get(cell, ())):
                return False
        return True

    @property
    def total_cells(self) -> int:
        return self.width * self.height

    @property
    def occupied_cells_count(self) -> int:
        return int(np.count_nonzero(self.counts))

    @property
    def free_cells_count(self) -> int:
        return self.total_cells - self.occupied_cells_count

    def unplaced_pieces(self) -> Tuple[int, ...]:
        return tuple(sorted(self._unplaced))

    def is_solved(self) -> bool:
        """Return ``True`` when every cell is covered and no piece is loose."""

        return not self._unplaced and bool(np.all(self.counts > 0))

    def occupancy(self) -> Occupancy:
        """Return a copy of the per-cell occupant counts, indexed ``[y, x]``."""

        return self.counts.copy()

    def claims(self) -> Dict[int, Tuple[Cell, ...]]:
        """Return a copy of the ``piece id -> cells`` index."""

        return dict(self._claims)

    # Mutation ---------------------------------------------------------
    def register(self, piece: PieceRef) -> None:
        """Track ``piece`` as part of the puzzle; it starts out unplaced."""

        key = piece_key(piece)
        self._registered.add(key)
        if key not in self._claims:
            self._unplaced.add(key)

    def forget(self, piece: PieceRef) -> None:
        """Drop ``piece`` from the grid entirely."""

        self.remove(piece)
        key = piece_key(piece)
        self._registered.discard(key)
        self._unplaced.discard(key)

    def place(self, piece: PieceRef, footprint: Iterable[Cell]) -> None:
        """Claim ``footprint`` for ``piece``, releasing its previous cells.

        Raises:
            InvalidPlacementError: If the footprint is out of bounds or
                overlaps another piece.  Nothing is modified in that case.
        """

        key = piece_key(piece)
        cells = tuple(sorted(set(footprint)))
        if not self.can_place(cells, ignore=key):
            raise InvalidPlacementError(f"Illegal footprint for piece {key}: {cells}")

        self._release(key)
        for cell in cells:
            self._occupants.setdefault(cell, []).append(key)
            self.counts[cell[1], cell[0]] += 1
        self._claims[key] = cells
        self._registered.add(key)
        self._unplaced.discard(key)
        LOGGER.debug(
            "Piece %d placed on %s: free=%d occupied=%d",
            key,
            cells,
            self.free_cells_count,
            self.occupied_cells_count,
        )

    def remove(self, piece: PieceRef) -> None:
        """Release every cell claimed by ``piece``.  Safe on unplaced pieces."""

        key = piece_key(piece)
        released = self._release(key)
        if key in self._registered:
            self._unplaced.add(key)
        if released:
            LOGGER.debug(
                "Piece %d released %d cell(s): free=%d occupied=%d",
                key,
                released,
                self.free_cells_count,
                self.occupied_cells_count,
            )

    def clear(self) -> None:
        """Free every cell.  Registered pieces become unplaced."""

        self.counts.fill(0)
        self._occupants.clear()
        self._claims.clear()
        self._unplaced = set(self._registered)

    def _release(self, key: int) -> int:
        cells = self._claims.pop(key, ())
        for cell in cells:
            owners = self._occupants.get(cell)
            if not owners or key not in owners:
                continue
            owners.remove(key)
            if not owners:
                del self._occupants[cell]
            self.counts[cell[1], cell[0]] -= 1
        return len(cells)


__all__ = ["Grid", "Occupancy", "PieceRef", "piece_key"]
