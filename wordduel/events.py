"""
Match events as one tagged stream.

Everything a match tells the outside world (opponent joined, opponent
progress, new puzzle, room closed, final result) goes through a single
EventDispatcher. Listeners are added and removed explicitly; nothing is
done by swapping callback attributes.
"""

import logging
from dataclasses import dataclass
from threading import RLock
from typing import Any, Callable, Dict, List, Literal

logger = logging.getLogger(__name__)

EventKind = Literal["opponent_joined", "opponent_update", "puzzle_reset", "room_closed", "result"]
EVENT_KINDS = ("opponent_joined", "opponent_update", "puzzle_reset", "room_closed", "result")


@dataclass(frozen=True)
class MatchEvent:
    kind: EventKind
    payload: Any = None


Handler = Callable[[MatchEvent], None]


class EventDispatcher:
    def __init__(self) -> None:
        self._handlers: Dict[str, List[Handler]] = {kind: [] for kind in EVENT_KINDS}
        self._lock = RLock()
        self.closed = False

    def on(self, kind: EventKind, handler: Handler) -> Callable[[], None]:
        """Register a handler; returns a function that removes it (safe to call twice)."""
        if kind not in self._handlers:
            raise ValueError(f"Unknown event kind: {kind}")
        with self._lock:
            self._handlers[kind].append(handler)

        def off() -> None:
            with self._lock:
                if handler in self._handlers[kind]:
                    self._handlers[kind].remove(handler)

        return off

    def emit(self, kind: EventKind, payload: Any = None) -> MatchEvent:
        event = MatchEvent(kind=kind, payload=payload)
        with self._lock:
            if self.closed:
                logger.debug("Dropped %s event after close", kind)
                return event
            handlers = list(self._handlers[kind])

        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("Handler for %s event failed", kind)
        return event

    def close(self) -> None:
        with self._lock:
            self.closed = True
            for kind in self._handlers:
                self._handlers[kind] = []
