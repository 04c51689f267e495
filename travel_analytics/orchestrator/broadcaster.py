"""Topic based fan-out of job events to subscribers."""

import asyncio
from typing import Any, Dict, List, Optional

from ..models.jobs import BroadcastEvent
from ..utils.config import Config
from ..utils.logging import get_logger


def channel_name(user_id: str, topic: str) -> str:
    return f"{user_id}:{topic}"


class Subscription:
    """One subscriber's membership of a ``{user_id}:{topic}`` channel.

    Events are buffered in a bounded queue; a slow consumer loses events
    rather than blocking the publisher.
    """

    def __init__(self, user_id: str, topic: str, buffer_size: int = 100):
        self.user_id = user_id
        self.topic = topic
        self.channel = channel_name(user_id, topic)
        self.dropped = 0
        self.active = True
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=buffer_size)

    def offer(self, event: BroadcastEvent) -> bool:
        """Queue an event without waiting. Returns False when it was dropped."""
        if not self.active:
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            return False
        return True

    async def get(self, timeout: Optional[float] = None) -> BroadcastEvent:
        """Wait for the next event.

        Raises:
            asyncio.TimeoutError: If nothing arrives within ``timeout`` seconds
        """
        if timeout is None:
            return await self._queue.get()
        return await asyncio.wait_for(self._queue.get(), timeout=timeout)

    def get_nowait(self) -> Optional[BroadcastEvent]:
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    def drain(self) -> List[BroadcastEvent]:
        """Take every event currently buffered."""
        events = []
        while True:
            event = self.get_nowait()
            if event is None:
                return events
            events.append(event)

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self):
        self.active = False

    def __repr__(self) -> str:
        return f"Subscription(channel={self.channel!r}, pending={self.pending()})"


class Broadcaster:
    """Best-effort publish/subscribe registry.

    Delivery is FIFO per subscription with no replay and no retry; a
    subscriber that is not registered when an event is published misses it.
    """

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()
        self.logger = get_logger("broadcaster")
        self._channels: Dict[str, List[Subscription]] = {}

    def subscribe(self, user_id: str, topic: str) -> Subscription:
        """Register a new subscription for a user's topic."""
        subscription = Subscription(user_id, topic, self.config.subscriber_buffer_size)
        self._channels.setdefault(subscription.channel, []).append(subscription)
        self.logger.debug(f"Subscribed to {subscription.channel}")
        return subscription

    def unsubscribe(self, user_id: str, topic: str) -> int:
        """Remove every subscription to a user's topic.

        Returns:
            Number of subscriptions removed
        """
        subscriptions = self._channels.pop(channel_name(user_id, topic), [])
        for subscription in subscriptions:
            subscription.close()
        if subscriptions:
            self.logger.debug(f"Unsubscribed {len(subscriptions)} from {user_id}:{topic}")
        return len(subscriptions)

    def disconnect(self, user_id: str) -> int:
        """Remove all of a user's subscriptions, across topics."""
        prefix = f"{user_id}:"
        removed = 0
        for channel in [c for c in self._channels if c.startswith(prefix)]:
            for subscription in self._channels.pop(channel):
                subscription.close()
                removed += 1
        self.logger.info(f"Disconnected user {user_id} ({removed} subscriptions)")
        return removed

    async def publish(
        self,
        user_id: str,
        topic: str,
        event: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Fan an event out to every subscriber of ``{user_id}:{topic}``.

        Args:
            user_id: Channel owner
            topic: Topic name, e.g. ``jobs`` or ``patterns``
            event: Event name, e.g. ``job_completed``
            payload: Event body

        Returns:
            Number of subscriptions the event was delivered to
        """
        channel = channel_name(user_id, topic)
        subscriptions = self._prune(channel)
        if not subscriptions:
            return 0

        message = BroadcastEvent(topic=topic, event=event, user_id=user_id, payload=payload or {})

        delivered = 0
        for subscription in subscriptions:
            if subscription.offer(message):
                delivered += 1
            else:
                self.logger.warning(
                    f"Dropped {event} for {subscription.channel}: subscriber buffer full"
                )
        return delivered

    def _prune(self, channel: str) -> List[Subscription]:
        """Drop subscriptions closed by their consumer and return the rest."""
        subscriptions = self._channels.get(channel, [])
        active = [s for s in subscriptions if s.active]
        if len(active) != len(subscriptions):
            self.logger.debug(f"Pruned {len(subscriptions) - len(active)} closed from {channel}")
            if active:
                self._channels[channel] = active
            else:
                del self._channels[channel]
        return list(active)

    def subscriber_count(self, user_id: str, topic: str) -> int:
        return len(self._channels.get(channel_name(user_id, topic), []))

    def channels(self) -> List[str]:
        return sorted(self._channels)
