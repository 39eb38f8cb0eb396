from __future__ import annotations

import random

import numpy as np
import pytest

from polygrid.config import PuzzleConfig, SnapPolicy
from polygrid.errors import Rejection
from polygrid.events import EventBus, PuzzleEvent
from polygrid.grid import Grid
from polygrid.integrity import audit_grid
from polygrid.piece import Piece, PieceState
from polygrid.shapes import SHAPES
from polygrid.validator import PlacementValidator


class Recorder:
    def __init__(self, bus: EventBus) -> None:
        self.events: list[PuzzleEvent] = []
        self.payloads: list[dict] = []
        bus.subscribe_all(self)

    def __call__(self, event, **payload) -> None:
        self.events.append(event)
        self.payloads.append(payload)


def make_piece(grid, shape="DOMINO", anchor=(0.0, 0.0), piece_id=1, events=None, **config):
    return Piece(
        piece_id,
        SHAPES[shape],
        grid=grid,
        validator=PlacementValidator(grid),
        events=events,
        config=PuzzleConfig(width=grid.width, height=grid.height, **config),
        anchor=anchor,
    )


def settle(piece: Piece, dt: float = 1.0 / 60.0, limit: int = 500):
    for _ in range(limit):
        result = piece.tick(dt)
        if piece.state is not PieceState.SNAPPING:
            return result
    raise AssertionError("snap did not converge")


def drop_at(piece: Piece, anchor) -> None:
    """Pick ``piece`` up by its anchor and release it at ``anchor``."""

    piece.on_pickup(piece.anchor)
    piece.on_drag(anchor)
    piece.on_release()
    settle(piece)


def test_drag_release_snap_commit_cycle():
    grid = Grid(5, 5)
    bus = EventBus()
    recorder = Recorder(bus)
    piece = make_piece(grid, anchor=(7.0, 7.0), events=bus)
    grid.register(piece)

    assert piece.on_pickup((7.5, 7.0))
    assert piece.state is PieceState.DRAGGING
    assert piece.grab_offset == (-0.5, 0.0)

    piece.on_drag((2.7, 2.3))
    assert piece.anchor == pytest.approx((2.2, 2.3))
    assert grid.occupied_cells_count == 0  # dragging holds nothing

    assert piece.on_release()
    assert piece.state is PieceState.SNAPPING
    assert piece.target == (2, 2)

    result = settle(piece)
    assert result
    assert piece.state is PieceState.IDLE
    assert piece.anchor == (2.0, 2.0)
    assert grid.cells_of(piece) == {(2, 2), (3, 2)}
    assert grid.occupied_cells_count == 2
    assert recorder.events == [PuzzleEvent.PICKED_UP, PuzzleEvent.PLACED]


def test_snapping_moves_a_fraction_of_the_remaining_distance():
    grid = Grid(5, 5)
    piece = make_piece(grid, anchor=(1.0, 1.0))
    piece.on_pickup((1.0, 1.0))
    piece.on_drag((1.4, 1.0))
    piece.on_release()

    assert piece.tick(0.05) is None  # 10/s * 0.05s = half way
    assert piece.anchor == pytest.approx((1.2, 1.0))
    assert piece.state is PieceState.SNAPPING
    assert not piece.is_placed


def test_pickup_frees_cells_immediately():
    grid = Grid(5, 5)
    piece = make_piece(grid, anchor=(2.0, 2.0))
    grid.place(piece, piece.footprint())
    old = piece.footprint()

    piece.on_pickup((2.0, 2.0))
    assert not grid.is_occupied((2, 2))
    assert not grid.is_occupied((3, 2))
    assert grid.can_place(old)


def test_threshold_policy_leaves_far_releases_unplaced():
    grid = Grid(5, 5)
    bus = EventBus()
    recorder = Recorder(bus)
    piece = make_piece(grid, events=bus, snap_policy=SnapPolicy.THRESHOLD)
    piece.on_pickup((0.0, 0.0))
    piece.on_drag((8.0, 2.0))

    result = piece.on_release()
    assert not result
    assert result.rejection is Rejection.OUT_OF_RANGE
    assert piece.state is PieceState.IDLE
    assert piece.anchor == (8.0, 2.0)
    assert not piece.is_placed
    assert recorder.events[-1] is PuzzleEvent.REJECTED


def test_threshold_policy_snaps_within_one_cell():
    grid = Grid(5, 5)
    piece = make_piece(grid, snap_policy=SnapPolicy.THRESHOLD)
    piece.on_pickup((0.0, 0.0))
    piece.on_drag((-0.6, 1.0))  # 0.6 left of cell (0, 1)
    assert piece.on_release()
    assert settle(piece)
    assert grid.cells_of(piece) == {(0, 1), (1, 1)}


def test_always_policy_snaps_and_lets_the_validator_decide():
    grid = Grid(5, 5)
    piece = make_piece(grid, snap_policy=SnapPolicy.ALWAYS)
    piece.on_pickup((0.0, 0.0))
    piece.on_drag((8.0, 2.0))

    assert piece.on_release()
    assert piece.target == (4, 2)
    result = settle(piece)
    assert result.rejection is Rejection.INVALID_PLACEMENT
    assert piece.state is PieceState.IDLE
    assert piece.anchor == (4.0, 2.0)
    assert not piece.is_placed
    assert grid.occupied_cells_count == 0


def test_commit_onto_occupied_cells_leaves_piece_unplaced():
    grid = Grid(5, 5)
    blocker = make_piece(grid, anchor=(2.0, 2.0), piece_id=1)
    grid.place(blocker, blocker.footprint())
    piece = make_piece(grid, anchor=(0.0, 4.0), piece_id=2)
    grid.register(piece)

    piece.on_pickup((0.0, 4.0))
    piece.on_drag((3.0, 2.0))
    piece.on_release()
    result = settle(piece)

    assert not result
    assert not piece.is_placed
    assert grid.cells_of(blocker) == {(2, 2), (3, 2)}
    assert grid.occupants((3, 2)) == (1,)
    assert audit_grid(grid).ok


def test_pickup_while_snapping_resumes_dragging():
    grid = Grid(5, 5)
    piece = make_piece(grid, anchor=(1.0, 1.0))
    piece.on_pickup((1.0, 1.0))
    piece.on_drag((1.4, 1.0))
    piece.on_release()
    piece.tick(0.01)

    assert piece.on_pickup((1.3, 1.0))
    assert piece.state is PieceState.DRAGGING
    assert piece.target is None
    assert not piece.on_pickup((1.3, 1.0))


def test_actions_in_wrong_state_are_rejected():
    grid = Grid(5, 5)
    piece = make_piece(grid)
    assert piece.on_drag((1.0, 1.0)).rejection is Rejection.WRONG_STATE
    assert piece.on_release().rejection is Rejection.WRONG_STATE
    assert piece.tick(0.1) is None
    assert piece.anchor == (0.0, 0.0)


def test_rotate_only_while_held():
    grid = Grid(5, 5)
    bus = EventBus()
    recorder = Recorder(bus)
    piece = make_piece(grid, shape="L3", events=bus)
    original = piece.offsets.copy()

    result = piece.on_rotate_request()
    assert result.rejection is Rejection.WRONG_STATE
    assert np.array_equal(piece.offsets, original)

    piece.on_pickup((0.0, 0.0))
    for expected in (90, 180, 270, 0):
        assert piece.on_rotate_request()
        assert piece.rotation_degrees == expected
    assert np.array_equal(piece.offsets, original)
    assert recorder.events.count(PuzzleEvent.ROTATED) == 4
    assert [p["rotation"] for p in recorder.payloads[1:]] == [90, 180, 270, 0]


def test_rotation_into_an_illegal_footprint_is_revalidated_on_release():
    grid = Grid(5, 5)
    blocker = make_piece(grid, shape="MONO", anchor=(3.0, 3.0), piece_id=1)
    grid.place(blocker, blocker.footprint())
    bar = make_piece(grid, shape="I3", anchor=(3.0, 2.0), piece_id=2)
    grid.place(bar, bar.footprint())
    assert grid.cells_of(bar) == {(2, 2), (3, 2), (4, 2)}

    bar.on_pickup((3.0, 2.0))
    assert bar.on_rotate_request()
    assert bar.state is PieceState.DRAGGING
    assert bar.footprint() == {(3, 1), (3, 2), (3, 3)}
    assert not bar.is_placed

    bar.on_release()
    assert not settle(bar)
    assert not bar.is_placed
    assert grid.cells_of(blocker) == {(3, 3)}

    # Turning it back makes the same spot legal again.
    bar.on_pickup((3.0, 2.0))
    bar.on_rotate_request()
    bar.on_release()
    assert settle(bar)
    assert grid.cells_of(bar) == {(2, 2), (3, 2), (4, 2)}


def test_mirror_is_rejected_at_quarter_turns():
    grid = Grid(5, 5)
    bus = EventBus()
    recorder = Recorder(bus)
    piece = make_piece(grid, shape="L3", anchor=(2.0, 2.0), events=bus)
    piece.on_pickup((2.0, 2.0))
    piece.on_rotate_request()
    before = piece.offsets.copy()

    result = piece.on_mirror_request()
    assert result.rejection is Rejection.ILLEGAL_TRANSFORM
    assert np.array_equal(piece.offsets, before)
    assert piece.mirrored is False
    assert recorder.events[-1] is PuzzleEvent.REJECTED

    piece.on_rotate_request()  # 180 degrees
    assert piece.on_mirror_request()
    assert piece.mirrored is True


def test_mirror_gating_keeps_grid_claim():
    grid = Grid(5, 5)
    piece = make_piece(grid, shape="L3", anchor=(2.0, 2.0))
    grid.place(piece, piece.footprint())
    piece.rotation = 1  # as if it had been placed after a quarter turn
    claim = grid.cells_of(piece)

    assert piece.on_mirror_request().rejection is Rejection.ILLEGAL_TRANSFORM
    assert grid.cells_of(piece) == claim


def test_mirror_twice_restores_offsets():
    grid = Grid(5, 5)
    piece = make_piece(grid, shape="J5")
    original = piece.offsets.copy()
    assert piece.on_mirror_request()
    assert piece.on_mirror_request()
    assert np.array_equal(piece.offsets, original)
    assert piece.mirrored is False


def test_mirror_of_placed_piece_is_all_or_nothing():
    grid = Grid(5, 5)
    piece = make_piece(grid, shape="L3", anchor=(0.0, 2.0))
    grid.place(piece, piece.footprint())
    assert grid.cells_of(piece) == {(0, 2), (1, 2), (0, 3)}
    offsets = piece.offsets.copy()

    result = piece.on_mirror_request()  # would cover (-1, 2)
    assert result.rejection is Rejection.INVALID_PLACEMENT
    assert np.array_equal(piece.offsets, offsets)
    assert piece.mirrored is False
    assert grid.cells_of(piece) == {(0, 2), (1, 2), (0, 3)}

    drop_at(piece, (1.0, 2.0))
    assert grid.cells_of(piece) == {(1, 2), (2, 2), (1, 3)}
    assert piece.on_mirror_request()
    assert piece.mirrored is True
    assert grid.cells_of(piece) == {(0, 2), (1, 2), (1, 3)}
    assert not grid.is_occupied((2, 2))


def test_mirror_blocked_by_neighbour_reverts():
    grid = Grid(5, 5)
    neighbour = make_piece(grid, shape="MONO", anchor=(0.0, 2.0), piece_id=1)
    grid.place(neighbour, neighbour.footprint())
    piece = make_piece(grid, shape="L3", anchor=(1.0, 2.0), piece_id=2)
    grid.place(piece, piece.footprint())

    assert piece.on_mirror_request().rejection is Rejection.INVALID_PLACEMENT
    assert grid.cells_of(piece) == {(1, 2), (2, 2), (1, 3)}
    assert grid.occupants((0, 2)) == (1,)


def test_mirror_is_refused_while_snapping():
    grid = Grid(5, 5)
    piece = make_piece(grid, anchor=(1.0, 1.0))
    piece.on_pickup((1.0, 1.0))
    piece.on_drag((1.4, 1.0))
    piece.on_release()
    assert piece.on_mirror_request().rejection is Rejection.WRONG_STATE


def test_pieces_work_without_listeners():
    grid = Grid(5, 5)
    piece = make_piece(grid, anchor=(2.0, 2.0))
    drop_at(piece, (2.0, 2.0))
    assert piece.is_placed


def test_random_interaction_keeps_grid_consistent():
    rng = random.Random(2024)
    grid = Grid(6, 6)
    pieces = [
        make_piece(grid, shape=shape, anchor=(i * 2.0, 0.0), piece_id=i)
        for i, shape in enumerate(["DOMINO", "L3", "I3", "O4", "MONO", "P5"])
    ]
    for piece in pieces:
        grid.register(piece)

    for _ in range(400):
        piece = rng.choice(pieces)
        action = rng.randrange(5)
        if action == 0:
            piece.on_pickup(piece.anchor)
        elif action == 1:
            piece.on_drag((rng.uniform(-2, 8), rng.uniform(-2, 8)))
        elif action == 2:
            piece.on_release()
        elif action == 3:
            piece.on_rotate_request()
        else:
            piece.on_mirror_request()
        for other in pieces:
            other.tick(rng.choice([0.02, 0.2]))

        report = audit_grid(grid)
        assert report.ok, report.problems
        claimed = sum(len(grid.cells_of(p)) for p in pieces if p.is_placed)
        assert grid.occupied_cells_count == claimed
        for p in pieces:
            if p.state is not PieceState.IDLE:
                assert not p.is_placed
            if p.is_placed:
                assert grid.cells_of(p) == p.footprint()
                assert all(grid.occupants(c) == (p.piece_id,) for c in grid.cells_of(p))


def test_reset_restores_initial_orientation_and_releases_cells():
    grid = Grid(5, 5)
    piece = make_piece(grid, shape="L3", anchor=(2.0, 2.0))
    original = piece.offsets.copy()
    piece.on_pickup((2.0, 2.0))
    piece.on_rotate_request()
    piece.on_rotate_request()
    piece.on_mirror_request()
    piece.on_release()
    settle(piece)
    assert piece.is_placed

    piece.reset((9.0, 9.0))
    assert not piece.is_placed
    assert np.array_equal(piece.offsets, original)
    assert (piece.rotation, piece.mirrored, piece.state) == (0, False, PieceState.IDLE)
    assert piece.anchor == (9.0, 9.0)
