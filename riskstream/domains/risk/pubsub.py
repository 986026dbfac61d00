"""In-process publish/subscribe topics decoupling transports from the pipeline."""

import asyncio
from collections import defaultdict
from typing import Any

import structlog

logger = structlog.get_logger()

TOPIC_HIGH_RISK = "alerts.high-risk"
TOPIC_RESULTS = "alerts.results"
TOPIC_STATS = "stats.snapshot"


class Subscription:
    """A bounded mailbox. When full, the oldest undelivered message is dropped."""

    def __init__(self, broker: "Broker", topics: frozenset[str], max_pending: int) -> None:
        self._broker = broker
        self.topics = topics
        self._queue: asyncio.Queue[tuple[str, Any]] = asyncio.Queue(maxsize=max_pending)
        self.dropped = 0

    def deliver(self, topic: str, message: Any) -> None:
        if self._queue.full():
            self._queue.get_nowait()
            self.dropped += 1
        self._queue.put_nowait((topic, message))

    async def get(self) -> tuple[str, Any]:
        return await self._queue.get()

    def get_nowait(self) -> tuple[str, Any]:
        return self._queue.get_nowait()

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        self._broker.unsubscribe(self)


class Broker:
    def __init__(self, max_pending: int = 1000) -> None:
        self._max_pending = max_pending
        self._subscriptions: dict[str, set[Subscription]] = defaultdict(set)

    def subscribe(self, *topics: str) -> Subscription:
        subscription = Subscription(self, frozenset(topics), self._max_pending)
        for topic in topics:
            self._subscriptions[topic].add(subscription)
        logger.debug("subscription_opened", topics=sorted(topics))
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        for topic in subscription.topics:
            self._subscriptions[topic].discard(subscription)

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscriptions[topic])

    def publish(self, topic: str, message: Any) -> int:
        """Deliver to every subscriber of ``topic``. Never blocks the publisher."""
        targets = list(self._subscriptions[topic])
        for subscription in targets:
            subscription.deliver(topic, message)
        return len(targets)
