"""
In-process push channel.

Room stores publish room changes and participant progress on a topic;
clients subscribe with a callback and get a handle back. Unsubscribing
twice (or with a handle that was never valid) is a no-op.
"""

import logging
from dataclasses import dataclass
from threading import RLock
from typing import Any, Callable, Dict, List, Tuple
from uuid import uuid4

logger = logging.getLogger(__name__)

Callback = Callable[[Any], None]


@dataclass(frozen=True)
class SubscriptionHandle:
    id: str
    topic: str


def room_topic(room_id: str) -> str:
    return f"room:{room_id}"


def state_topic(room_id: str) -> str:
    return f"state:{room_id}"


class SubscriptionHub:
    def __init__(self) -> None:
        self._subs: Dict[str, Tuple[str, Callback]] = {}
        self._lock = RLock()

    def subscribe(self, topic: str, callback: Callback) -> SubscriptionHandle:
        handle = SubscriptionHandle(id=str(uuid4()), topic=topic)
        with self._lock:
            self._subs[handle.id] = (topic, callback)
        return handle

    def unsubscribe(self, handle: SubscriptionHandle) -> bool:
        """True if the handle was live."""
        with self._lock:
            return self._subs.pop(handle.id, None) is not None

    def listeners(self, topic: str) -> int:
        with self._lock:
            return sum(1 for t, _ in self._subs.values() if t == topic)

    def publish(self, topic: str, payload: Any) -> int:
        """
        Deliver `payload` to every subscriber of `topic`. Callbacks run
        outside the lock, so they may subscribe or unsubscribe freely.
        A failing subscriber is logged and does not stop the others.
        """
        with self._lock:
            targets: List[Callback] = [cb for t, cb in self._subs.values() if t == topic]

        for callback in targets:
            try:
                callback(payload)
            except Exception:
                logger.exception("Subscriber on %s failed", topic)
        return len(targets)
