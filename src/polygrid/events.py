"""Notifications emitted by the puzzle core.

Sound and visual cues subscribe here.  The bus is constructed once by the
:class:`~polygrid.puzzle.Puzzle` and handed to every piece; the core never
depends on anybody listening.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Dict, List

LOGGER = logging.getLogger(__name__)

Listener = Callable[..., None]


class PuzzleEvent(str, Enum):
    PICKED_UP = "picked_up"
    PLACED = "placed"
    ROTATED = "rotated"
    MIRRORED = "mirrored"
    REJECTED = "rejected"
    SOLVED = "solved"


class EventBus:
    """Synchronous publish/subscribe hub keyed by :class:`PuzzleEvent`."""

    def __init__(self) -> None:
        self._listeners: Dict[PuzzleEvent, List[Listener]] = {}

    def subscribe(self, event: PuzzleEvent, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for ``event`` and return an unsubscribe hook."""

        event = PuzzleEvent(event)
        self._listeners.setdefault(event, []).append(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(event, [])
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    def subscribe_all(self, listener: Listener) -> None:
        """Register ``listener`` for every event.  It receives ``event=`` too."""

        for event in PuzzleEvent:
            self.subscribe(event, _tagged(event, listener))

    def emit(self, event: PuzzleEvent, **payload: Any) -> None:
        """Call every listener of ``event`` with ``payload`` as keywords.

        A failing listener is logged and skipped so that a broken cue can never
        interrupt a move half way through.
        """

        event = PuzzleEvent(event)
        for listener in list(self._listeners.get(event, ())):
            try:
                listener(**payload)
            except Exception:
                LOGGER.exception("Listener for %s failed", event.value)

    def listener_count(self, event: PuzzleEvent) -> int:
        return len(self._listeners.get(PuzzleEvent(event), ()))


def _tagged(event: PuzzleEvent, listener: Listener) -> Listener:
    def call(**payload: Any) -> None:
        listener(event=event, **payload)

    return call


__all__ = ["EventBus", "Listener", "PuzzleEvent"]
