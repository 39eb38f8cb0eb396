"""Simple ASCII demo for the puzzle engine.

Run with: `python -m polygrid`

This module solves the bundled 5x5 level through the same pick up / rotate /
mirror / release protocol a player would use, printing the board after every
placed piece.
"""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from . import Puzzle, PuzzleConfig, PuzzleEvent, SnapPolicy
from .shapes import DEFAULT_SOLUTION
from .utils import format_grid, move_piece, render_grid

LOGGER = logging.getLogger(__name__)


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--policy",
        choices=[p.value for p in SnapPolicy],
        default=SnapPolicy.THRESHOLD.value,
        help="what happens when a piece is released",
    )
    parser.add_argument("--verbose", action="store_true", help="log every cue")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    puzzle = Puzzle(PuzzleConfig(snap_policy=args.policy))
    puzzle.events.subscribe_all(
        lambda event, **payload: LOGGER.debug("cue: %s", event.value)
    )
    puzzle.events.subscribe(PuzzleEvent.SOLVED, lambda **_: print("Solved!"))

    for name, cells in DEFAULT_SOLUTION.items():
        piece = puzzle.piece_named(name)
        placed = move_piece(puzzle, piece, cells)
        print(f"{name}: {'placed' if placed else 'failed'}")
        print(format_grid(render_grid(puzzle.grid, puzzle.pieces)))
        print()

    return 0 if puzzle.is_solved() else 1


if __name__ == "__main__":
    raise SystemExit(main())
