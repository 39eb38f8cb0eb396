"""Grid-based polyomino placement puzzle engine."""

from .config import PuzzleConfig, SnapPolicy
from .errors import ActionResult, ConfigurationError, InvalidPlacementError, Rejection
from .events import EventBus, PuzzleEvent
from .geometry import compute_offsets, mirror_horizontal, rotate90
from .grid import Grid
from .integrity import AuditReport, IntegritySweep, audit_grid
from .piece import Piece, PieceState
from .puzzle import Puzzle
from .validator import PlacementCheck, PlacementValidator

__all__ = [
    "ActionResult",
    "AuditReport",
    "ConfigurationError",
    "EventBus",
    "Grid",
    "IntegritySweep",
    "InvalidPlacementError",
    "Piece",
    "PieceState",
    "PlacementCheck",
    "PlacementValidator",
    "Puzzle",
    "PuzzleConfig",
    "PuzzleEvent",
    "Rejection",
    "SnapPolicy",
    "audit_grid",
    "compute_offsets",
    "mirror_horizontal",
    "rotate90",
]
