"""Tests for ResultSubscriber over an in-memory pub/sub double."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from src.core.errors import SubscriptionError
from src.results_bus.subscriber import ResultSubscriber

PATTERN = "account/acc-1/ad-hoc-check-results/s-1/*/*"
TOPIC = "account/acc-1/ad-hoc-check-results/s-1/r-1/run-end"


class Recorder:
    """Handler that records calls and signals each delivery."""

    def __init__(self, fail_on=None):
        self.calls = []
        self.fail_on = fail_on
        self.received = asyncio.Event()

    async def __call__(self, topic, payload):
        self.calls.append((topic, payload))
        self.received.set()
        if self.fail_on is not None and payload == self.fail_on:
            raise RuntimeError("handler blew up")

    async def wait_for(self, count, timeout=1.0):
        async def _wait():
            while len(self.calls) < count:
                self.received.clear()
                await self.received.wait()

        await asyncio.wait_for(_wait(), timeout)


class TestConnect:
    """Test broker connection."""

    @pytest.mark.asyncio
    async def test_connect_pings_broker(self):
        client = MagicMock()
        client.ping = AsyncMock(return_value=True)

        with patch("src.results_bus.subscriber.aioredis.from_url", return_value=client) as from_url:
            subscriber = await ResultSubscriber.connect("redis://broker:6379/0", ack_timeout=3)

        from_url.assert_called_once_with("redis://broker:6379/0")
        assert subscriber.redis is client
        assert subscriber.ack_timeout == 3

    @pytest.mark.asyncio
    async def test_connect_failure_raises_subscription_error(self):
        client = MagicMock()
        client.ping = AsyncMock(side_effect=RedisConnectionError("connection refused"))
        client.aclose = AsyncMock()

        with patch("src.results_bus.subscriber.aioredis.from_url", return_value=client):
            with pytest.raises(SubscriptionError, match="connection refused"):
                await ResultSubscriber.connect("redis://broker:6379/0")

        client.aclose.assert_awaited_once()


class TestSubscribe:
    """Test pattern subscription and delivery."""

    @pytest.mark.asyncio
    async def test_subscribe_waits_for_acknowledgement(self, fake_redis, fake_pubsub):
        subscriber = ResultSubscriber(fake_redis, ack_timeout=1)

        result = await subscriber.subscribe(PATTERN, Recorder())

        assert result == PATTERN
        assert fake_pubsub.patterns == [PATTERN]
        assert subscriber.get_subscriptions() == [PATTERN]
        await subscriber.end()

    @pytest.mark.asyncio
    async def test_unacknowledged_subscription_times_out(self, fake_redis, fake_pubsub):
        fake_pubsub.acknowledge = False
        subscriber = ResultSubscriber(fake_redis, ack_timeout=0.1)

        with pytest.raises(SubscriptionError, match="not acknowledged"):
            await subscriber.subscribe(PATTERN, Recorder())

        assert subscriber.get_subscriptions() == []
        await subscriber.end()

    @pytest.mark.asyncio
    async def test_delivers_decoded_json(self, fake_redis, fake_pubsub):
        handler = Recorder()
        subscriber = ResultSubscriber(fake_redis, ack_timeout=1)
        await subscriber.subscribe(PATTERN, handler)

        fake_pubsub.deliver(TOPIC, {"result": {"hasFailures": False}})
        await handler.wait_for(1)

        assert handler.calls == [(TOPIC, {"result": {"hasFailures": False}})]
        await subscriber.end()

    @pytest.mark.asyncio
    async def test_invalid_json_is_dropped(self, fake_redis, fake_pubsub):
        handler = Recorder()
        subscriber = ResultSubscriber(fake_redis, ack_timeout=1)
        await subscriber.subscribe(PATTERN, handler)

        fake_pubsub.deliver(TOPIC, b"{not json")
        fake_pubsub.deliver(TOPIC, {"n": 2})
        await handler.wait_for(1)

        assert handler.calls == [(TOPIC, {"n": 2})]
        await subscriber.end()

    @pytest.mark.asyncio
    async def test_handler_error_does_not_stop_delivery(self, fake_redis, fake_pubsub):
        handler = Recorder(fail_on={"n": 1})
        subscriber = ResultSubscriber(fake_redis, ack_timeout=1)
        await subscriber.subscribe(PATTERN, handler)

        fake_pubsub.deliver(TOPIC, {"n": 1})
        fake_pubsub.deliver(TOPIC, {"n": 2})
        await handler.wait_for(2)

        assert [payload for _, payload in handler.calls] == [{"n": 1}, {"n": 2}]
        await subscriber.end()

    @pytest.mark.asyncio
    async def test_subscribe_after_end_fails(self, fake_redis):
        subscriber = ResultSubscriber(fake_redis, ack_timeout=1)
        await subscriber.end()

        with pytest.raises(SubscriptionError, match="already ended"):
            await subscriber.subscribe(PATTERN, Recorder())


class TestEnd:
    """Test teardown."""

    @pytest.mark.asyncio
    async def test_end_closes_connection_once(self, fake_redis, fake_pubsub):
        subscriber = ResultSubscriber(fake_redis, ack_timeout=1)
        await subscriber.subscribe(PATTERN, Recorder())

        await subscriber.end()
        await subscriber.end()

        assert fake_pubsub.unsubscribed is True
        assert fake_pubsub.closed is True
        assert fake_redis.closed is True
        assert subscriber.get_subscriptions() == []

    @pytest.mark.asyncio
    async def test_end_stops_delivery(self, fake_redis, fake_pubsub):
        handler = Recorder()
        subscriber = ResultSubscriber(fake_redis, ack_timeout=1)
        await subscriber.subscribe(PATTERN, handler)

        await subscriber.end()
        fake_pubsub.deliver(TOPIC, {"n": 1})
        await asyncio.sleep(0.01)

        assert handler.calls == []

    @pytest.mark.asyncio
    async def test_end_swallows_close_errors(self, fake_redis, fake_pubsub):
        subscriber = ResultSubscriber(fake_redis, ack_timeout=1)
        await subscriber.subscribe(PATTERN, Recorder())
        fake_pubsub.aclose = AsyncMock(side_effect=RedisConnectionError("broker went away"))

        await subscriber.end()

        assert subscriber.get_subscriptions() == []
