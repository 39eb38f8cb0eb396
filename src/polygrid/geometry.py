"""Polyomino footprint geometry.

A piece's shape is stored as a set of offsets relative to the centroid of its
sub-cells, so rotation and mirroring pivot around the shape's own centre.
Offsets are kept as ``float`` arrays of shape ``(n, 2)`` in cell units.  Both
transforms only swap and negate components, which keeps them exact: rotating
four times or mirroring twice reproduces the original array bit for bit.
"""

from __future__ import annotations

import math
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from .errors import ConfigurationError

Cell = Tuple[int, int]
Offsets = NDArray[np.float64]

# Absorbs float noise so values sitting on a cell edge always round up.
ROUND_TOLERANCE = 1e-6


def compute_offsets(child_local_positions: Iterable[Sequence[float]]) -> Offsets:
    """Return ``child_local_positions`` re-expressed relative to their centroid.

    Raises:
        ConfigurationError: If no positions are given, since such a piece has
            no footprint, or if the positions are not ``(x, y)`` pairs.
    """

    points = np.asarray(list(child_local_positions), dtype=np.float64)
    if points.size == 0:
        raise ConfigurationError("A piece needs at least one sub-cell")
    if points.ndim != 2 or points.shape[1] != 2:
        raise ConfigurationError(f"Sub-cell positions must be (x, y) pairs, got shape {points.shape}")
    return points - points.mean(axis=0)


def rotate90(offsets: Offsets) -> Offsets:
    """Return ``offsets`` rotated 90 degrees counter-clockwise.

    Each ``(ox, oy)`` becomes ``(-oy, ox)``.
    """

    return np.column_stack((-offsets[:, 1], offsets[:, 0]))


def mirror_horizontal(offsets: Offsets) -> Offsets:
    """Return ``offsets`` with every x component negated."""

    return np.column_stack((-offsets[:, 0], offsets[:, 1]))


def can_mirror(rotation: int) -> bool:
    """Return ``True`` if a piece at ``rotation`` quarter turns may be mirrored.

    Mirroring is restricted to 0 and 180 degrees.
    """

    return rotation % 2 == 0


def round_half_up(value: float) -> int:
    """Round to the nearest integer, breaking ties towards positive infinity."""

    return int(math.floor(value + 0.5 + ROUND_TOLERANCE))


def world_positions(
    offsets: Offsets, anchor: Sequence[float], cell_size: float = 1.0
) -> NDArray[np.float64]:
    """Return the world position of every sub-cell for a piece at ``anchor``."""

    return np.asarray(anchor, dtype=np.float64) + offsets * cell_size


def rounded_offsets(offsets: Offsets) -> NDArray[np.int64]:
    """Round every offset half up onto the integer cell lattice."""

    return np.floor(offsets + 0.5 + ROUND_TOLERANCE).astype(np.int64)


def local_cells(offsets: Offsets) -> frozenset[Cell]:
    """Return the cells covered by ``offsets`` for an anchor at cell ``(0, 0)``."""

    rounded = rounded_offsets(offsets)
    return frozenset((int(x), int(y)) for x, y in rounded)


def anchor_cell_for(offsets: Offsets, cells: Iterable[Cell]) -> Optional[Cell]:
    """Return the anchor cell at which ``offsets`` cover exactly ``cells``.

    Returns ``None`` when the shape in its current orientation cannot cover the
    requested cells at any anchor.
    """

    target = frozenset(cells)
    local = local_cells(offsets)
    if len(local) != len(target) or not target:
        return None
    # Align the lowest local cell with the lowest target cell.
    lx, ly = min(local)
    tx, ty = min(target)
    dx, dy = tx - lx, ty - ly
    if frozenset((x + dx, y + dy) for x, y in local) == target:
        return (dx, dy)
    return None


__all__ = [
    "Cell",
    "Offsets",
    "anchor_cell_for",
    "can_mirror",
    "compute_offsets",
    "local_cells",
    "mirror_horizontal",
    "rotate90",
    "round_half_up",
    "rounded_offsets",
    "world_positions",
]
