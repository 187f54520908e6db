from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Callable, Dict, List, Protocol

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[str], None]
Unsubscribe = Callable[[], None]


class ChangeFeed(Protocol):
    """Best-effort change notifications scoped to one record id.

    A notification only says "this record may have changed"; subscribers must read
    the store to learn the new state.
    """

    def subscribe(self, record_id: str, on_change: ChangeCallback) -> Unsubscribe:
        raise NotImplementedError

    def publish(self, record_id: str) -> None:
        raise NotImplementedError


class LocalChangeFeed:
    """In-process feed. Delivery is synchronous on the publisher's thread."""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: Dict[str, List[ChangeCallback]] = defaultdict(list)

    def subscribe(self, record_id: str, on_change: ChangeCallback) -> Unsubscribe:
        with self._lock:
            self._subscribers[record_id].append(on_change)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(record_id, [])
                if on_change in callbacks:
                    callbacks.remove(on_change)
                if not callbacks:
                    self._subscribers.pop(record_id, None)

        return unsubscribe

    def publish(self, record_id: str) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(record_id, []))
        for callback in callbacks:
            try:
                callback(record_id)
            except Exception:
                # Subscriber errors never reach the publisher.
                logger.exception("Change subscriber failed", extra={"record_id": record_id})


class NullChangeFeed:
    """Feed that never pushes; watchers fall back to polling only."""

    def subscribe(self, record_id: str, on_change: ChangeCallback) -> Unsubscribe:
        return lambda: None

    def publish(self, record_id: str) -> None:
        return None
