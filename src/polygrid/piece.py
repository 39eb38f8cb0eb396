"""Placeable polyomino pieces and their interaction state machine.

A piece is Idle (resting, possibly placed on the grid), Dragging (following
the pointer, holding no cells) or Snapping (gliding towards the cell it was
released over).  Every occupancy change is delegated to the grid, always in
the order remove -> validate -> place, so an illegal move never leaves stale
claims behind.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from .config import PuzzleConfig, SnapPolicy
from .errors import ActionResult, Rejection
from .events import EventBus, PuzzleEvent
from .geometry import (
    ROUND_TOLERANCE,
    Cell,
    Offsets,
    can_mirror,
    compute_offsets,
    mirror_horizontal,
    rotate90,
    rounded_offsets,
    world_positions,
)
from .grid import Grid
from .validator import PlacementValidator

LOGGER = logging.getLogger(__name__)

Position = Tuple[float, float]


class PieceState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    SNAPPING = "snapping"


class Piece:
    """One polyomino and the pointer-driven protocol that moves it.

    Parameters
    ----------
    piece_id:
        Stable identity.  The grid only ever stores this id.
    cells:
        Local positions of the piece's sub-cells.  They are re-centred on
        their centroid, so rotation pivots around the shape's middle.
    grid, validator, events, config:
        Collaborators injected by the composition root.
    """

    def __init__(
        self,
        piece_id: int,
        cells: Iterable[Sequence[float]],
        *,
        grid: Grid,
        validator: Optional[PlacementValidator] = None,
        events: Optional[EventBus] = None,
        config: Optional[PuzzleConfig] = None,
        name: str = "",
        anchor: Sequence[float] = (0.0, 0.0),
    ) -> None:
        self.piece_id = piece_id
        self.name = name or f"piece-{piece_id}"
        self.grid = grid
        self.validator = validator or PlacementValidator(grid)
        self.events = events or EventBus()
        self.config = config or PuzzleConfig()

        self.offsets: Offsets = compute_offsets(cells)
        self._initial_offsets = self.offsets.copy()
        self.anchor: Position = (float(anchor[0]), float(anchor[1]))
        self.rotation = 0  # quarter turns, counter-clockwise
        self.mirrored = False
        self.state = PieceState.IDLE
        self.grab_offset: Position = (0.0, 0.0)
        self.target: Optional[Cell] = None

    def __repr__(self) -> str:
        return (
            f"Piece({self.piece_id}, {self.name!r}, state={self.state.value}, "
            f"anchor={self.anchor}, rotation={self.rotation_degrees})"
        )

    # Geometry ---------------------------------------------------------
    @property
    def rotation_degrees(self) -> int:
        return self.rotation * 90

    @property
    def is_placed(self) -> bool:
        return self.grid.is_placed(self)

    def footprint(
        self,
        anchor: Optional[Sequence[float]] = None,
        offsets: Optional[Offsets] = None,
    ) -> frozenset[Cell]:
        """Return the cells the piece covers at ``anchor`` (default: current)."""

        positions = world_positions(
            self.offsets if offsets is None else offsets,
            self.anchor if anchor is None else anchor,
            self.grid.cell_size,
        )
        return self.grid.footprint_of(positions)

    def square_centres(self) -> NDArray[np.float64]:
        """Return the world centre of every drawn sub-cell.

        The squares keep the footprint's integer layout and follow the anchor,
        so a piece resting on a cell centre is drawn exactly on the cells it
        claims.
        """

        return world_positions(rounded_offsets(self.offsets), self.anchor, self.grid.cell_size)

    def contains(self, position: Sequence[float]) -> bool:
        """Hit test: ``True`` if ``position`` lies on one of the drawn sub-cells."""

        relative = (np.asarray(position, dtype=np.float64) - self.square_centres()) / self.grid.cell_size
        hits = np.floor(relative + 0.5 + ROUND_TOLERANCE) == 0
        return bool(hits.all(axis=1).any())

    def reset(self, anchor: Sequence[float]) -> None:
        """Return to the initial orientation at ``anchor``, releasing any claim."""

        self.grid.remove(self)
        self.offsets = self._initial_offsets.copy()
        self.rotation = 0
        self.mirrored = False
        self.state = PieceState.IDLE
        self.target = None
        self.grab_offset = (0.0, 0.0)
        self.anchor = (float(anchor[0]), float(anchor[1]))

    # Interaction ------------------------------------------------------
    def on_pickup(self, input_position: Sequence[float]) -> ActionResult:
        """Start dragging.  The piece's cells are freed immediately."""

        if self.state is PieceState.DRAGGING:
            return ActionResult.reject(Rejection.WRONG_STATE, "piece is already held")

        self.grid.remove(self)
        self.grab_offset = (
            self.anchor[0] - input_position[0],
            self.anchor[1] - input_position[1],
        )
        self.state = PieceState.DRAGGING
        self.target = None
        LOGGER.debug("%s picked up at %s", self.name, self.anchor)
        self.events.emit(PuzzleEvent.PICKED_UP, piece=self)
        return ActionResult.success()

    def on_drag(self, input_position: Sequence[float]) -> ActionResult:
        """Follow the pointer, preserving the grab point."""

        if self.state is not PieceState.DRAGGING:
            return ActionResult.reject(Rejection.WRONG_STATE, "piece is not held")
        self.anchor = (
            input_position[0] + self.grab_offset[0],
            input_position[1] + self.grab_offset[1],
        )
        return ActionResult.success()

    def on_release(self) -> ActionResult:
        """Drop the piece and decide whether it glides onto the grid."""

        if self.state is not PieceState.DRAGGING:
            return ActionResult.reject(Rejection.WRONG_STATE, "piece is not held")

        cell = self.grid.snap_to_grid(self.anchor)
        tx, ty = self.grid.cell_to_world(cell)
        distance = math.hypot(tx - self.anchor[0], ty - self.anchor[1])
        limit = self.config.snap_threshold * self.grid.cell_size
        if self.config.snap_policy is SnapPolicy.THRESHOLD and distance > limit:
            self.state = PieceState.IDLE
            message = f"released {distance:.2f} away from the nearest cell"
            LOGGER.debug("%s %s", self.name, message)
            self.events.emit(
                PuzzleEvent.REJECTED, piece=self, rejection=Rejection.OUT_OF_RANGE
            )
            return ActionResult.reject(Rejection.OUT_OF_RANGE, message)

        self.target = cell
        self.state = PieceState.SNAPPING
        LOGGER.debug("%s snapping towards %s", self.name, cell)
        return ActionResult.success()

    def tick(self, dt: float) -> Optional[ActionResult]:
        """Advance the snap animation by ``dt`` seconds.

        Returns the commit outcome on the tick the snap completes and ``None``
        otherwise.
        """

        if self.state is not PieceState.SNAPPING or self.target is None:
            return None

        tx, ty = self.grid.cell_to_world(self.target)
        t = min(1.0, max(0.0, self.config.snap_speed * dt))
        ax, ay = self.anchor
        self.anchor = (ax + (tx - ax) * t, ay + (ty - ay) * t)
        if math.hypot(tx - self.anchor[0], ty - self.anchor[1]) >= self.config.snap_epsilon:
            return None

        self.anchor = (tx, ty)
        return self._commit()

    def on_rotate_request(self) -> ActionResult:
        """Turn the held piece 90 degrees counter-clockwise.

        The rotation always happens; legality is re-checked when the piece is
        released.
        """

        if self.state is not PieceState.DRAGGING:
            return ActionResult.reject(
                Rejection.WRONG_STATE, "rotation is only allowed while the piece is held"
            )
        self.offsets = rotate90(self.offsets)
        self.rotation = (self.rotation + 1) % 4
        LOGGER.debug("%s rotated to %d degrees", self.name, self.rotation_degrees)
        self.events.emit(PuzzleEvent.ROTATED, piece=self, rotation=self.rotation_degrees)
        return ActionResult.success()

    def on_mirror_request(self) -> ActionResult:
        """Flip the piece horizontally, all or nothing.

        A placed piece keeps its cells unless the mirrored footprint is legal;
        the piece's own cells do not block it.
        """

        if self.state is PieceState.SNAPPING:
            return ActionResult.reject(Rejection.WRONG_STATE, "piece is snapping")
        if not can_mirror(self.rotation):
            message = "Flipping is only allowed at 0 or 180 degrees."
            LOGGER.info("%s: %s", self.name, message)
            self.events.emit(
                PuzzleEvent.REJECTED, piece=self, rejection=Rejection.ILLEGAL_TRANSFORM
            )
            return ActionResult.reject(Rejection.ILLEGAL_TRANSFORM, message)

        flipped = mirror_horizontal(self.offsets)
        if self.is_placed:
            footprint = self.footprint(offsets=flipped)
            check = self.validator.check(footprint, ignore=self)
            if not check.legal:
                LOGGER.debug("%s mirror rejected: %s", self.name, check.describe())
                self.events.emit(
                    PuzzleEvent.REJECTED,
                    piece=self,
                    rejection=Rejection.INVALID_PLACEMENT,
                )
                return ActionResult.reject(Rejection.INVALID_PLACEMENT, check.describe())
            self.grid.place(self, footprint)

        self.offsets = flipped
        self.mirrored = not self.mirrored
        LOGGER.debug("%s mirrored (flag=%s)", self.name, self.mirrored)
        self.events.emit(PuzzleEvent.MIRRORED, piece=self, mirrored=self.mirrored)
        return ActionResult.success()

    # Internal helpers -------------------------------------------------
    def _commit(self) -> ActionResult:
        self.state = PieceState.IDLE
        self.target = None
        footprint = self.footprint()
        check = self.validator.check(footprint, ignore=self)
        if not check.legal:
            LOGGER.debug("%s left unplaced: %s", self.name, check.describe())
            self.events.emit(
                PuzzleEvent.REJECTED, piece=self, rejection=Rejection.INVALID_PLACEMENT
            )
            return ActionResult.reject(Rejection.INVALID_PLACEMENT, check.describe())

        self.grid.place(self, footprint)
        LOGGER.debug("%s placed on %s", self.name, sorted(footprint))
        self.events.emit(PuzzleEvent.PLACED, piece=self, cells=footprint)
        if self.grid.is_solved():
            LOGGER.info("Puzzle solved")
            self.events.emit(PuzzleEvent.SOLVED, grid=self.grid)
        return ActionResult.success()


__all__ = ["Piece", "PieceState", "Position"]
