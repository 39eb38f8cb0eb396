"""Static piece definitions and the bundled level."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Tuple

from .errors import ConfigurationError
from .geometry import Cell

ShapeCells = List[Cell]


# Sub-cell layouts as ``(x, y)`` pairs.  Orientation does not matter; pieces
# are rotated and mirrored in play.
SHAPES: Dict[str, ShapeCells] = {
    "MONO": [(0, 0)],
    "DOMINO": [(0, 0), (1, 0)],
    "L3": [(0, 0), (1, 0), (0, 1)],
    "I3": [(0, 0), (1, 0), (2, 0)],
    "O4": [(0, 0), (1, 0), (0, 1), (1, 1)],
    "I5": [(0, 0), (0, 1), (0, 2), (0, 3), (0, 4)],
    "J5": [(1, 0), (1, 1), (1, 2), (1, 3), (0, 3)],
    "P5": [(0, 0), (1, 0), (0, 1), (1, 1), (0, 2)],
}


@dataclass(frozen=True)
class LevelPiece:
    """A piece of a level: its shape and where it waits before play."""

    name: str
    shape: str
    tray_anchor: Tuple[float, float]


# Five pentominoes tiling the default 5x5 board, waiting to the right of it.
DEFAULT_LEVEL: List[LevelPiece] = [
    LevelPiece("bar", "I5", (7.0, 2.0)),
    LevelPiece("hook", "J5", (9.5, 2.0)),
    LevelPiece("p-left", "P5", (12.0, 2.0)),
    LevelPiece("p-right", "P5", (15.0, 2.0)),
    LevelPiece("p-bottom", "P5", (18.0, 2.0)),
]

# One known tiling of the default board, by level piece name.
DEFAULT_SOLUTION: Dict[str, FrozenSet[Cell]] = {
    "bar": frozenset((x, 0) for x in range(5)),
    "hook": frozenset({(0, 1), (0, 2), (0, 3), (0, 4), (1, 4)}),
    "p-left": frozenset({(1, 1), (2, 1), (1, 2), (2, 2), (1, 3)}),
    "p-right": frozenset({(3, 1), (4, 1), (3, 2), (4, 2), (4, 3)}),
    "p-bottom": frozenset({(2, 3), (3, 3), (2, 4), (3, 4), (4, 4)}),
}


def shape_cells(shape: str) -> ShapeCells:
    """Return the sub-cells of ``shape``.

    Raises:
        ConfigurationError: If the shape is unknown or has no sub-cells.
    """

    try:
        cells = SHAPES[shape]
    except KeyError:
        raise ConfigurationError(f"Unknown shape: {shape}") from None
    if not cells:
        raise ConfigurationError(f"Shape {shape} has no sub-cells")
    return list(cells)
