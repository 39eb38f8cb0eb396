"""Static configuration for a puzzle session."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from .errors import ConfigurationError


# Default board used by the bundled level.
WIDTH = 5
HEIGHT = 5
CELL_SIZE = 1.0

# Fraction of the remaining distance covered per second while snapping.
SNAP_SPEED = 10.0
# Remaining distance (world units) below which a snap is considered complete.
SNAP_EPSILON = 0.01
# Maximum release distance from the nearest cell centre, in cells.
SNAP_THRESHOLD = 1.0
# Seconds between two integrity sweeps.
SWEEP_INTERVAL = 0.5


class SnapPolicy(str, Enum):
    """What happens to a piece when it is released."""

    ALWAYS = "always"
    THRESHOLD = "threshold"


@dataclass(frozen=True)
class PuzzleConfig:
    """Board geometry and interaction tuning.

    ``origin`` is the world position of the centre of cell ``(0, 0)``.  Cells
    extend in the positive x and y directions from there, ``cell_size`` world
    units apart.
    """

    width: int = WIDTH
    height: int = HEIGHT
    cell_size: float = CELL_SIZE
    origin: Tuple[float, float] = (0.0, 0.0)
    snap_policy: SnapPolicy = SnapPolicy.THRESHOLD
    snap_threshold: float = SNAP_THRESHOLD
    snap_speed: float = SNAP_SPEED
    snap_epsilon: float = SNAP_EPSILON
    sweep_interval: float = SWEEP_INTERVAL

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ConfigurationError(
                f"Grid dimensions must be positive, got {self.width}x{self.height}"
            )
        if self.cell_size <= 0:
            raise ConfigurationError("Cell size must be positive")
        if self.snap_speed <= 0 or self.snap_epsilon <= 0:
            raise ConfigurationError("Snap speed and epsilon must be positive")
        if self.snap_threshold < 0:
            raise ConfigurationError("Snap threshold cannot be negative")
        if self.sweep_interval <= 0:
            raise ConfigurationError(f"Sweep interval must be positive, got {self.sweep_interval}")
        # Accept plain strings such as "always" coming from a command line.
        object.__setattr__(self, "snap_policy", SnapPolicy(self.snap_policy))
