"""Topic based fan-out of state messages to connected clients."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class Subscriber(Protocol):
    async def send_json(self, data: Any) -> None:
        """Deliver one JSON message to the client."""


class TopicHub:
    """Best-effort, at-most-once publisher.

    A publish reaches the subscribers registered at the moment it starts.
    Nothing is buffered, so later subscribers never see earlier messages.
    Sends run concurrently and each one is bounded by ``send_timeout_s``;
    subscribers that fail or time out are dropped from every topic.
    """

    def __init__(self, send_timeout_s: float = 2.0) -> None:
        self._send_timeout_s = send_timeout_s
        self._subscribers: dict[str, set[Subscriber]] = defaultdict(set)

    def subscribe(self, topic: str, subscriber: Subscriber) -> None:
        self._subscribers[topic].add(subscriber)

    def unsubscribe(self, topic: str, subscriber: Subscriber) -> None:
        subscribers = self._subscribers.get(topic)
        if subscribers is None:
            return
        subscribers.discard(subscriber)
        if not subscribers:
            self._subscribers.pop(topic, None)

    def unsubscribe_all(self, subscriber: Subscriber) -> None:
        for topic in list(self._subscribers):
            self.unsubscribe(topic, subscriber)

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, ()))

    async def publish(self, topic: str, message: dict[str, Any]) -> int:
        """Send ``message`` to the current subscribers of ``topic``.

        Returns the number of subscribers that received it.
        """
        targets = list(self._subscribers.get(topic, ()))
        if not targets:
            return 0
        results = await asyncio.gather(*(self._deliver(topic, subscriber, message) for subscriber in targets))
        for subscriber, delivered in zip(targets, results):
            if not delivered:
                self.unsubscribe_all(subscriber)
        return sum(1 for delivered in results if delivered)

    async def send(self, topic: str, subscriber: Subscriber, message: dict[str, Any]) -> bool:
        """Send ``message`` to one subscriber with the same bound as ``publish``."""
        delivered = await self._deliver(topic, subscriber, message)
        if not delivered:
            self.unsubscribe_all(subscriber)
        return delivered

    async def _deliver(self, topic: str, subscriber: Subscriber, message: dict[str, Any]) -> bool:
        try:
            await asyncio.wait_for(subscriber.send_json(message), timeout=self._send_timeout_s)
        except asyncio.TimeoutError:
            logger.warning("Dropping slow subscriber on %s after %.1fs", topic, self._send_timeout_s)
            return False
        except Exception:
            logger.warning("Dropping subscriber on %s after failed send", topic, exc_info=True)
            return False
        return True
