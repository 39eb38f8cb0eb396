"""Placement legality checks.

The validator applies the same bounds and occupancy rule as
:meth:`Grid.can_place` but reports *which* cells are at fault.  It never
mutates the grid, so interaction code can ask before committing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from .geometry import Cell
from .grid import Grid, PieceRef, piece_key


@dataclass(frozen=True)
class PlacementCheck:
    """Result of validating one candidate footprint."""

    footprint: frozenset[Cell]
    out_of_bounds: Tuple[Cell, ...] = ()
    blocked: Tuple[Cell, ...] = ()

    @property
    def legal(self) -> bool:
        return bool(self.footprint) and not self.out_of_bounds and not self.blocked

    def describe(self) -> str:
        if self.legal:
            return "legal"
        if not self.footprint:
            return "empty footprint"
        parts = []
        if self.out_of_bounds:
            parts.append(f"out of bounds: {list(self.out_of_bounds)}")
        if self.blocked:
            parts.append(f"occupied: {list(self.blocked)}")
        return "; ".join(parts)


class PlacementValidator:
    """Read-only legality oracle bound to a grid."""

    def __init__(self, grid: Grid) -> None:
        self.grid = grid

    def check(
        self, footprint: Iterable[Cell], ignore: Optional[PieceRef] = None
    ) -> PlacementCheck:
        cells = frozenset(footprint)
        skip = None if ignore is None else piece_key(ignore)
        out_of_bounds = []
        blocked = []
        for cell in sorted(cells):
            if not self.grid.in_bounds(cell):
                out_of_bounds.append(cell)
            elif any(owner != skip for owner in self.grid.occupants(cell)):
                blocked.append(cell)
        return PlacementCheck(cells, tuple(out_of_bounds), tuple(blocked))

    def is_legal(
        self, footprint: Iterable[Cell], ignore: Optional[PieceRef] = None
    ) -> bool:
        return self.check(footprint, ignore).legal
