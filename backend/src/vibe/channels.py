"""In-process broadcast channels keyed by topic.

Every generation run publishes its chunks to its project's topic, so any
number of passive listeners (other tabs, collaborators) see the same events in
the same order. Listeners only receive events published while subscribed.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 1000


@dataclass(frozen=True)
class ChannelEvent:
    """A named event with a JSON-serializable payload."""

    event: str
    data: dict[str, Any] = field(default_factory=dict)


def project_topic(project_id: str) -> str:
    """Topic name for a project's events."""
    return f"project:{project_id}"


class Subscription:
    """One listener's queue on a topic."""

    def __init__(self, topic: str, maxsize: int = DEFAULT_QUEUE_SIZE) -> None:
        self.topic = topic
        self._queue: asyncio.Queue[ChannelEvent] = asyncio.Queue(maxsize)
        self.dropped = 0

    def offer(self, event: ChannelEvent) -> bool:
        """Enqueue without waiting. Returns False if the queue was full."""
        try:
            self._queue.put_nowait(event)
            return True
        except asyncio.QueueFull:
            self.dropped += 1
            return False

    async def get(self) -> ChannelEvent:
        return await self._queue.get()

    def __aiter__(self) -> AsyncIterator[ChannelEvent]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[ChannelEvent]:
        while True:
            yield await self._queue.get()


class Broadcaster:
    """Registry of topic -> active subscriptions."""

    def __init__(self) -> None:
        self._topics: dict[str, set[Subscription]] = {}

    @asynccontextmanager
    async def subscribe(
        self, topic: str, maxsize: int = DEFAULT_QUEUE_SIZE
    ) -> AsyncIterator[Subscription]:
        """Subscribe to a topic for the duration of the block.

        Args:
            topic: Topic to listen on.
            maxsize: Queue bound; events beyond it are dropped for this listener.

        Yields:
            The subscription to read events from.
        """
        subscription = Subscription(topic, maxsize)
        self._topics.setdefault(topic, set()).add(subscription)
        logger.debug(f"Subscribed to {topic} ({self.subscriber_count(topic)} listener(s))")
        try:
            yield subscription
        finally:
            self._unsubscribe(subscription)

    def _unsubscribe(self, subscription: Subscription) -> None:
        listeners = self._topics.get(subscription.topic)
        if listeners is None:
            return
        listeners.discard(subscription)
        if not listeners:
            del self._topics[subscription.topic]
        logger.debug(f"Unsubscribed from {subscription.topic}")

    def publish(self, topic: str, event: ChannelEvent) -> int:
        """Deliver an event to every current subscriber of a topic.

        Never blocks. A topic without subscribers is a no-op.

        Returns:
            Number of subscribers that received the event.
        """
        listeners = self._topics.get(topic)
        if not listeners:
            return 0

        delivered = 0
        for subscription in list(listeners):
            if subscription.offer(event):
                delivered += 1
            else:
                logger.warning(f"Dropped {event.event} event for slow listener on {topic}")
        return delivered

    def subscriber_count(self, topic: str) -> int:
        return len(self._topics.get(topic, ()))


_broadcaster: Optional[Broadcaster] = None


def get_broadcaster() -> Broadcaster:
    """Get the process-wide broadcaster."""
    global _broadcaster
    if _broadcaster is None:
        _broadcaster = Broadcaster()
    return _broadcaster


def reset_broadcaster() -> None:
    """Reset the process-wide broadcaster (for testing)."""
    global _broadcaster
    _broadcaster = None
