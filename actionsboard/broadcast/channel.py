"""
Broadcast channel.

Single fan-out point for every event the service produces. Each connected
client owns a bounded queue; publishing never awaits, so a slow client can
only lose its own events, it can never stall a deployment or the poller.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional, Set

from actionsboard.models import BroadcastEvent, EventName

logger = logging.getLogger(__name__)

EventSink = Callable[[BroadcastEvent], None]


class Subscription:
    """One subscriber's inbox. Iterate it to receive events as they are published."""

    def __init__(self, channel: "BroadcastChannel", maxsize: int) -> None:
        self._channel = channel
        self.queue: "asyncio.Queue[BroadcastEvent]" = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    async def get(self) -> BroadcastEvent:
        return await self.queue.get()

    def get_nowait(self) -> BroadcastEvent:
        return self.queue.get_nowait()

    def offer(self, event: BroadcastEvent) -> bool:
        try:
            self.queue.put_nowait(event)
            return True
        except asyncio.QueueFull:
            self.dropped += 1
            return False

    def close(self) -> None:
        self._channel.unsubscribe(self)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> BroadcastEvent:
        return await self.queue.get()


class BroadcastChannel:
    def __init__(
        self,
        *,
        queue_size: int = 100,
        recent_max: int = 200,
        sinks: Optional[List[EventSink]] = None,
    ) -> None:
        self._queue_size = int(queue_size)
        self._subscribers: Set[Subscription] = set()
        self._recent: Deque[BroadcastEvent] = deque(maxlen=max(1, int(recent_max)))
        self._sinks: List[EventSink] = list(sinks or [])

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        sub = Subscription(self, maxsize=self._queue_size)
        self._subscribers.add(sub)
        logger.info("Subscriber connected (total: %d)", len(self._subscribers))
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        if sub in self._subscribers:
            self._subscribers.discard(sub)
            logger.info("Subscriber disconnected (remaining: %d)", len(self._subscribers))

    def add_sink(self, sink: EventSink) -> None:
        self._sinks.append(sink)

    def publish(self, event: BroadcastEvent) -> int:
        """
        Deliver to every current subscriber. Returns how many inboxes accepted it.

        Fire-and-forget: there is no retry and nothing is kept for clients that
        connect later (beyond the diagnostic recent-events ring).
        """
        self._recent.append(event)
        for sink in self._sinks:
            try:
                sink(event)
            except Exception as e:
                logger.warning("Event sink failed for %s: %s", event.event.value, e)

        delivered = 0
        # Copy: a subscriber may disconnect while we iterate.
        for sub in list(self._subscribers):
            if sub.offer(event):
                delivered += 1
            else:
                logger.warning("Subscriber queue full, dropped %s", event.event.value)
        return delivered

    def emit(self, name: EventName, data: Dict[str, Any]) -> BroadcastEvent:
        event = BroadcastEvent(event=name, data=data)
        self.publish(event)
        return event

    def recent(self, n: int = 50) -> List[BroadcastEvent]:
        if n <= 0:
            return []
        return list(self._recent)[-n:]
