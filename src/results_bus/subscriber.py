"""
Pattern subscriber for the results bus.

Wraps a redis.asyncio pub/sub connection:
- subscribe() only returns once the broker acknowledged the pattern
- every message is decoded as JSON and handed to the handler in its own task
- end() tears everything down and never raises
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, List, Optional, Set

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from ..core.config import Config
from ..core.errors import SubscriptionError

logger = logging.getLogger(__name__)

MessageHandler = Callable[[str, Any], Awaitable[None]]


def _decode(value: Any) -> Any:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


class ResultSubscriber:
    """
    Subscriber bound to one broker connection.

    Usage:
        subscriber = await ResultSubscriber.connect("redis://localhost:6379/0")
        await subscriber.subscribe("account/acc/ad-hoc-check-results/s1/*/*", handler)
        ...
        await subscriber.end()
    """

    def __init__(
        self,
        redis_client: Any,
        ack_timeout: float = Config.SUBSCRIBE_ACK_TIMEOUT,
    ):
        """
        Initialize subscriber with a connected Redis client.

        Args:
            redis_client: redis.asyncio client (or compatible) with pubsub support
            ack_timeout: Seconds to wait for the subscription acknowledgement
        """
        self.redis = redis_client
        self.ack_timeout = ack_timeout
        self._pubsub: Optional[Any] = None
        self._handler: Optional[MessageHandler] = None
        self._reader: Optional[asyncio.Task] = None
        self._pending: Set[asyncio.Task] = set()
        self._subscriptions: List[str] = []
        self._closed = False

    @classmethod
    async def connect(
        cls, url: str, ack_timeout: float = Config.SUBSCRIBE_ACK_TIMEOUT
    ) -> "ResultSubscriber":
        """Open a broker connection and verify it with PING."""
        client = aioredis.from_url(url)
        try:
            await client.ping()
        except (RedisError, OSError) as e:
            await client.aclose()
            raise SubscriptionError(f"Failed to connect to results broker: {e}") from e
        logger.info("Connected to results broker")
        return cls(client, ack_timeout=ack_timeout)

    async def subscribe(self, pattern: str, handler: MessageHandler) -> str:
        """
        Attach the handler and subscribe to a pattern.

        Returns once the broker acknowledged the subscription, so any message
        published afterwards reaches the handler.

        Raises:
            SubscriptionError: If the subscription fails or is not acknowledged in time
        """
        if self._closed:
            raise SubscriptionError("Subscriber already ended")

        self._handler = handler
        if self._pubsub is None:
            self._pubsub = self.redis.pubsub()

        try:
            await self._pubsub.psubscribe(pattern)
            await self._wait_for_ack(pattern)
        except RedisError as e:
            raise SubscriptionError(f"Failed to subscribe to {pattern}: {e}") from e

        self._subscriptions.append(pattern)
        logger.info(f"Subscribed to pattern: {pattern}")

        if self._reader is None:
            self._reader = asyncio.ensure_future(self._read_loop())
        return pattern

    async def _wait_for_ack(self, pattern: str) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.ack_timeout

        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise SubscriptionError(
                    f"Subscription to {pattern} not acknowledged within {self.ack_timeout}s"
                )
            message = await self._pubsub.get_message(timeout=min(remaining, 1.0))
            if message is None:
                continue
            if message["type"] == "psubscribe" and _decode(message.get("channel")) == pattern:
                return
            # Deliveries can only follow the acknowledgement, but never drop one
            self._handle_raw(message)

    async def _read_loop(self) -> None:
        try:
            async for message in self._pubsub.listen():
                self._handle_raw(message)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if not self._closed:
                logger.error(f"Results bus reader stopped: {e}")

    def _handle_raw(self, message: Any) -> None:
        if not message or message.get("type") not in ("pmessage", "message"):
            return

        topic = _decode(message.get("channel", ""))
        try:
            payload = json.loads(_decode(message["data"]))
        except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
            logger.warning(f"Invalid JSON in message on {topic}: {e}")
            return

        task = asyncio.ensure_future(self._dispatch(topic, payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _dispatch(self, topic: str, payload: Any) -> None:
        try:
            await self._handler(topic, payload)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Handler error for message on {topic}: {e}")

    def get_subscriptions(self) -> List[str]:
        """Get list of current subscriptions."""
        return list(self._subscriptions)

    async def end(self) -> None:
        """Stop delivering messages and close the connection. Safe to call twice."""
        if self._closed:
            return
        self._closed = True

        tasks = list(self._pending)
        if self._reader is not None:
            tasks.append(self._reader)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        try:
            if self._pubsub is not None:
                if self._subscriptions:
                    await self._pubsub.punsubscribe()
                await self._pubsub.aclose()
            await self.redis.aclose()
        except Exception as e:
            logger.warning(f"Error while disconnecting from results broker: {e}")

        logger.info(f"Results subscriber closed ({len(self._subscriptions)} subscriptions)")
        self._subscriptions.clear()

    def __repr__(self) -> str:
        """String representation."""
        return f"ResultSubscriber(subscriptions={self._subscriptions!r})"
