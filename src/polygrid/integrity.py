"""Periodic read-only audit of the occupancy grid.

The sweep runs on the puzzle's tick clock, independent of any piece's state
machine.  It only reads grid state, so dropping it changes nothing about how
the puzzle plays.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import numpy as np

from .errors import ConfigurationError
from .grid import Grid

LOGGER = logging.getLogger(__name__)


@dataclass
class AuditReport:
    """Findings of one audit pass."""

    free_cells: int = 0
    occupied_cells: int = 0
    placed_pieces: int = 0
    problems: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.problems


def audit_grid(grid: Grid) -> AuditReport:
    """Check the grid's indexes against each other.

    Verifies that the cell and piece indexes agree in both directions, that
    the per-cell counts match the occupant lists, and that the cell partition
    into free and occupied is exact.
    """

    claims = grid.claims()
    report = AuditReport(
        free_cells=grid.free_cells_count,
        occupied_cells=grid.occupied_cells_count,
        placed_pieces=len(claims),
    )

    for piece_id, cells in claims.items():
        for cell in cells:
            if not grid.in_bounds(cell):
                report.problems.append(f"piece {piece_id} claims {cell} out of bounds")
            elif piece_id not in grid.occupants(cell):
                report.problems.append(f"piece {piece_id} claims {cell} but is not listed")

    for y in range(grid.height):
        for x in range(grid.width):
            owners = grid.occupants((x, y))
            if len(owners) != int(grid.counts[y, x]):
                report.problems.append(
                    f"cell {(x, y)} count {int(grid.counts[y, x])} != {len(owners)} occupants"
                )
            for owner in owners:
                if (x, y) not in claims.get(owner, ()):
                    report.problems.append(f"cell {(x, y)} lists piece {owner} without a claim")

    claimed = sum(len(cells) for cells in claims.values())
    if int(np.sum(grid.counts, dtype=np.int64)) != claimed:
        report.problems.append("occupant counts do not match claimed cells")
    if report.free_cells + report.occupied_cells != grid.total_cells:
        report.problems.append("free and occupied cells do not partition the grid")
    return report


class IntegritySweep:
    """Run :func:`audit_grid` every ``interval`` seconds of tick time."""

    def __init__(
        self,
        grid: Grid,
        interval: float = 0.5,
        on_report: Optional[Callable[[AuditReport], None]] = None,
    ) -> None:
        if interval <= 0:
            raise ConfigurationError(f"Sweep interval must be positive, got {interval}")
        self.grid = grid
        self.interval = interval
        self.on_report = on_report
        self.enabled = True
        self.elapsed = 0.0
        self.runs = 0
        self.last_report: Optional[AuditReport] = None

    def tick(self, dt: float) -> Optional[AuditReport]:
        """Accumulate ``dt`` and audit once the interval has passed."""

        if not self.enabled:
            return None
        self.elapsed += dt
        if self.elapsed < self.interval:
            return None
        self.elapsed %= self.interval
        return self.run()

    def run(self) -> AuditReport:
        report = audit_grid(self.grid)
        self.runs += 1
        self.last_report = report
        for problem in report.problems:
            LOGGER.warning("Grid integrity: %s", problem)
        if self.on_report is not None:
            self.on_report(report)
        return report
