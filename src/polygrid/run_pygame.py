"""Simple pygame front-end for the puzzle engine.

This module provides a minimal playable version of the puzzle using the
engine implemented in the surrounding modules.  It only glues the public
operations to ``pygame`` for rendering and input: drag pieces with the mouse,
``R`` rotates and ``F`` mirrors the held piece, ``Backspace`` restarts,
``P`` pauses and ``Esc`` quits.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Tuple

import pygame

from .events import PuzzleEvent
from .piece import Piece
from .puzzle import Puzzle

LOGGER = logging.getLogger(__name__)

# Size of a single grid cell in pixels
CELL_PX = 40
# Border around the play area in pixels
MARGIN = 40
# World columns/rows shown, covering the board and the tray to its right
VIEW_COLUMNS = 21
VIEW_ROWS = 7
# Frames per second to run the game loop at
FPS = 60

FREE_COLOR = (255, 255, 255)
OCCUPIED_COLOR = (255, 0, 0)
OUTLINE_COLOR = (50, 50, 50)
BACKGROUND = (30, 30, 30)
PIECE_COLORS = [
    (0, 255, 255),
    (255, 255, 0),
    (128, 0, 128),
    (0, 255, 0),
    (0, 0, 255),
    (255, 165, 0),
]


def to_world(pixel: Tuple[int, int]) -> Tuple[float, float]:
    return (
        (pixel[0] - MARGIN) / CELL_PX - 0.5,
        (pixel[1] - MARGIN) / CELL_PX - 0.5,
    )


def to_pixel(world: Tuple[float, float]) -> Tuple[int, int]:
    return (
        int(MARGIN + (world[0] + 0.5) * CELL_PX),
        int(MARGIN + (world[1] + 0.5) * CELL_PX),
    )


def draw_grid(screen: pygame.Surface, puzzle: Puzzle) -> None:
    """Render the board cells, free or occupied."""

    grid = puzzle.grid
    for y in range(grid.height):
        for x in range(grid.width):
            cx, cy = to_pixel(grid.cell_to_world((x, y)))
            rect = pygame.Rect(cx - CELL_PX // 2, cy - CELL_PX // 2, CELL_PX, CELL_PX)
            color = OCCUPIED_COLOR if grid.is_occupied((x, y)) else FREE_COLOR
            pygame.draw.rect(screen, color, rect)
            pygame.draw.rect(screen, OUTLINE_COLOR, rect, 1)


def draw_piece(screen: pygame.Surface, piece: Piece) -> None:
    """Render ``piece`` at its current, possibly fractional, position.

    Squares come from :meth:`Piece.square_centres`, the same positions the
    hit test uses, so a placed piece covers exactly its claimed cells.
    """

    color = PIECE_COLORS[piece.piece_id % len(PIECE_COLORS)]
    size = int(CELL_PX * 0.8)
    for position in piece.square_centres():
        cx, cy = to_pixel((float(position[0]), float(position[1])))
        rect = pygame.Rect(cx - size // 2, cy - size // 2, size, size)
        pygame.draw.rect(screen, color, rect)
        pygame.draw.rect(screen, OUTLINE_COLOR, rect, 1)


def handle_event(event: pygame.event.Event, puzzle: Puzzle) -> None:
    """Translate pointer and keyboard events into puzzle input."""

    if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
        puzzle.pick_up(to_world(event.pos))
    elif event.type == pygame.MOUSEMOTION:
        puzzle.drag(to_world(event.pos))
    elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
        puzzle.release()
    elif event.type == pygame.KEYDOWN:
        if event.key == pygame.K_r:
            puzzle.rotate()
        elif event.key == pygame.K_f:
            puzzle.mirror()
        elif event.key == pygame.K_BACKSPACE:
            puzzle.reset_game()


def log_cue(event: PuzzleEvent, **payload) -> None:
    """Stand-in for sound effects: note every cue in the log."""

    piece = payload.get("piece")
    LOGGER.info("cue %s%s", event.value, f" ({piece.name})" if piece else "")


class GameRunner:
    """Manage the game loop with start/pause/resume/stop controls."""

    def __init__(self) -> None:
        self._running = False
        self._paused = False
        self._task: asyncio.Task | None = None
        self._screen: pygame.Surface | None = None
        self._puzzle: Puzzle | None = None
        self._clock: pygame.time.Clock | None = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def paused(self) -> bool:
        return self._paused

    async def _run_loop(self) -> None:
        # Ensure SDL/pygame binds to the visible canvas in the page when running on Web.
        os.environ.setdefault("SDL_HINT_EMSCRIPTEN_CANVAS_ELEMENT_ID", "#canvas")
        pygame.init()
        self._screen = pygame.display.set_mode(
            (VIEW_COLUMNS * CELL_PX + 2 * MARGIN, VIEW_ROWS * CELL_PX + 2 * MARGIN)
        )
        pygame.display.set_caption("Polygrid")
        self._clock = pygame.time.Clock()

        self._puzzle = Puzzle()
        self._puzzle.events.subscribe_all(log_cue)
        LOGGER.info("Game started")

        self._running = True
        while self._running:
            dt = self._clock.tick(FPS) / 1000.0 if self._clock else 0.0
            for event in pygame.event.get():
                self.on_event(event)

            if not self._paused and self._puzzle:
                self._puzzle.tick(dt)

            if self._screen and self._puzzle:
                self._screen.fill(BACKGROUND)
                draw_grid(self._screen, self._puzzle)
                for piece in self._puzzle.pieces:
                    draw_piece(self._screen, piece)
                status = "Solved! - " if self._puzzle.is_solved() else ""
                pygame.display.set_caption(
                    f"Polygrid - {'Paused - ' if self._paused else ''}{status}"
                    f"Free cells: {self._puzzle.grid.free_cells_count}"
                )
                pygame.display.flip()

            # Yield to the browser/host event loop to keep UI responsive
            await asyncio.sleep(0)

        pygame.quit()
        LOGGER.info("Game stopped")

    def start(self) -> None:
        if self._task and not self._task.done():
            LOGGER.info("Game already running")
            return
        self._paused = False
        try:
            loop = asyncio.get_running_loop()
            self._task = loop.create_task(self._run_loop())
        except RuntimeError:
            # No running loop (plain Python); run synchronously
            asyncio.run(self._run_loop())

    def pause(self) -> None:
        if not self._running:
            LOGGER.info("Pause ignored: game not running")
            return
        self._paused = True
        LOGGER.info("Paused")

    def resume(self) -> None:
        if not self._running:
            LOGGER.info("Resume ignored: game not running")
            return
        self._paused = False
        LOGGER.info("Resumed")

    def toggle_pause(self) -> None:
        if self._paused:
            self.resume()
        else:
            self.pause()

    def stop(self) -> None:
        if not self._running:
            LOGGER.info("Stop ignored: game not running")
            return
        self._running = False

    def on_event(self, event: pygame.event.Event) -> None:
        """Handle runner controls, forwarding everything else to the puzzle.

        ``P`` toggles pause and ``Esc`` or closing the window stops the game.
        Puzzle input is dropped while paused.
        """

        if event.type == pygame.QUIT:
            self._running = False
        elif event.type == pygame.KEYDOWN and event.key == pygame.K_p:
            self.toggle_pause()
        elif event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
            self.stop()
        elif self._puzzle and not self._paused:
            handle_event(event, self._puzzle)


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    GameRunner().start()


if __name__ == "__main__":  # pragma: no cover - manual execution only
    main()
