"""Topic-based publish/subscribe hub with per-event-type compaction.

Publishing is synchronous: every subscriber of the channel runs before
publish() returns. A publish that re-enters a channel while that channel is
still dispatching is queued instead, and delivered once the outer dispatch
finishes. While queued, messages with a registered compactor are collapsed:
a message whose compaction key is already pending on that channel is dropped.

Cross-channel publishes are never queued or collapsed.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Callable, Hashable

logger = logging.getLogger("bindable.pubsub")

Message = Any
Subscriber = Callable[[Message], None]
Compactor = Callable[[Message, str], Hashable]
Disposer = Callable[[], None]


class PubSub:
    """Synchronous topic hub."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Subscriber]] = {}
        self._compactors: dict[str, Compactor] = {}
        self._dispatching: set[str] = set()
        # channel -> [(compaction key or None, message)]
        self._pending: dict[str, list[tuple[Hashable | None, Message]]] = {}

    def subscribe(self, channel: str, callback: Subscriber) -> Disposer:
        """Register a callback on a channel. Returns a function that removes it."""
        self._subscribers.setdefault(channel, []).append(callback)

        def _unsubscribe() -> None:
            try:
                self._subscribers.get(channel, []).remove(callback)
            except ValueError:
                pass  # already removed

        return _unsubscribe

    def register_compactor(self, event_type: str, compactor: Compactor) -> None:
        """Collapse pending messages of event_type that share compactor(message, channel)."""
        self._compactors[event_type] = compactor

    def publish(self, channel: str, message: Message) -> None:
        if channel in self._dispatching:
            self._enqueue(channel, message)
            return

        self._dispatching.add(channel)
        try:
            self._deliver(channel, message)
            queue = self._pending.get(channel)
            while queue:
                _, queued = queue.pop(0)
                self._deliver(channel, queued)
        finally:
            self._dispatching.discard(channel)
            self._pending.pop(channel, None)

    def subscriber_count(self, channel: str) -> int:
        return len(self._subscribers.get(channel, ()))

    def _deliver(self, channel: str, message: Message) -> None:
        # Snapshot — subscribers may subscribe more callbacks while running.
        for callback in list(self._subscribers.get(channel, ())):
            callback(message)

    def _enqueue(self, channel: str, message: Message) -> None:
        queue = self._pending.setdefault(channel, [])
        key = self._compaction_key(channel, message)
        if key is not None and any(pending_key == key for pending_key, _ in queue):
            logger.debug("Compacted pending message on %s", channel)
            return
        queue.append((key, message))

    def _compaction_key(self, channel: str, message: Message) -> Hashable | None:
        event_type = message.get("type") if isinstance(message, Mapping) else None
        compactor = self._compactors.get(event_type) if event_type is not None else None
        if compactor is None:
            return None
        return compactor(message, channel)


# Default process-wide hub used by models that are not given a transport.
hub = PubSub()
