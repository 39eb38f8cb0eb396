"""Error taxonomy for the puzzle engine.

Only misconfiguration and programming errors are raised.  Everything a player
can trigger (dropping a piece on an occupied cell, mirroring at a quarter turn)
is reported through an :class:`ActionResult` so the puzzle stays interactive.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ConfigurationError(ValueError):
    """Raised when the grid or a piece is defined with unusable values."""


class InvalidPlacementError(Exception):
    """Raised when :meth:`Grid.place` is called with an illegal footprint."""


class Rejection(str, Enum):
    """Reason attached to a refused interaction."""

    INVALID_PLACEMENT = "invalid_placement"
    ILLEGAL_TRANSFORM = "illegal_transform"
    WRONG_STATE = "wrong_state"
    OUT_OF_RANGE = "out_of_range"


@dataclass(frozen=True)
class ActionResult:
    """Outcome of a piece interaction.  Truthy when the action went through."""

    ok: bool
    rejection: Optional[Rejection] = None
    message: str = ""

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls) -> "ActionResult":
        return cls(True)

    @classmethod
    def reject(cls, rejection: Rejection, message: str) -> "ActionResult":
        return cls(False, rejection, message)


__all__ = [
    "ActionResult",
    "ConfigurationError",
    "InvalidPlacementError",
    "Rejection",
]
