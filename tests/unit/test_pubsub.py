"""Unit tests for the in-process broker."""

import asyncio

import pytest

from riskstream.domains.risk.pubsub import TOPIC_HIGH_RISK, TOPIC_STATS, Broker


class TestBroker:
    @pytest.mark.asyncio
    async def test_publish_to_subscribers(self):
        broker = Broker()
        first = broker.subscribe(TOPIC_HIGH_RISK)
        second = broker.subscribe(TOPIC_HIGH_RISK, TOPIC_STATS)
        assert broker.publish(TOPIC_HIGH_RISK, "alert") == 2
        assert await first.get() == (TOPIC_HIGH_RISK, "alert")
        assert await second.get() == (TOPIC_HIGH_RISK, "alert")

    def test_topic_filtering(self):
        broker = Broker()
        subscription = broker.subscribe(TOPIC_HIGH_RISK)
        assert broker.publish(TOPIC_STATS, "snapshot") == 0
        assert subscription.pending() == 0

    def test_publish_without_subscribers(self):
        assert Broker().publish(TOPIC_HIGH_RISK, "alert") == 0

    def test_full_mailbox_drops_oldest(self):
        broker = Broker(max_pending=2)
        subscription = broker.subscribe(TOPIC_STATS)
        for i in range(4):
            broker.publish(TOPIC_STATS, i)
        assert subscription.dropped == 2
        assert subscription.get_nowait() == (TOPIC_STATS, 2)
        assert subscription.get_nowait() == (TOPIC_STATS, 3)

    def test_close_unsubscribes(self):
        broker = Broker()
        subscription = broker.subscribe(TOPIC_HIGH_RISK, TOPIC_STATS)
        assert broker.subscriber_count(TOPIC_HIGH_RISK) == 1
        subscription.close()
        assert broker.subscriber_count(TOPIC_HIGH_RISK) == 0
        assert broker.subscriber_count(TOPIC_STATS) == 0

    @pytest.mark.asyncio
    async def test_slow_subscriber_does_not_block_publisher(self):
        broker = Broker(max_pending=1)
        broker.subscribe(TOPIC_STATS)
        fast = broker.subscribe(TOPIC_STATS)
        for i in range(100):
            broker.publish(TOPIC_STATS, i)
        message = await asyncio.wait_for(fast.get(), timeout=1.0)
        assert message == (TOPIC_STATS, 99)
