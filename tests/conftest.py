"""Pytest configuration for check trigger runner tests.

This file configures the test environment and handles import paths centrally.
All test files should use this configuration - DO NOT add sys.path manipulations
in individual test files.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

# Centralized sys.path configuration for all tests
# This allows tests to import from src/ directly without individual setup
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from src.rest.models import (  # noqa: E402
    CheckDescriptor,
    PublicRunLocation,
    TriggerResponse,
)


class FakeSubscriber:
    """Results subscriber double that hands messages to the handler in tasks."""

    def __init__(self, calls: Optional[List[str]] = None, fail_on_end: bool = False):
        self.calls = calls if calls is not None else []
        self.fail_on_end = fail_on_end
        self.pattern: Optional[str] = None
        self.handler = None
        self.end_count = 0
        self.tasks: List[asyncio.Task] = []

    async def subscribe(self, pattern, handler):
        self.calls.append("subscribe")
        self.pattern = pattern
        self.handler = handler
        return pattern

    def topic(self, run_id: str, kind: str) -> str:
        return self.pattern.replace("*/*", f"{run_id}/{kind}")

    def publish(self, run_id: str, kind: str, payload: Any = None) -> asyncio.Task:
        task = asyncio.ensure_future(self.handler(self.topic(run_id, kind), payload or {}))
        self.tasks.append(task)
        return task

    async def end(self):
        self.calls.append("end")
        self.end_count += 1
        if self.fail_on_end:
            raise ConnectionError("broker went away")


class FakePubSub:
    """In-memory stand-in for a redis.asyncio PubSub object."""

    def __init__(self, acknowledge: bool = True):
        self.acknowledge = acknowledge
        self.queue: asyncio.Queue = asyncio.Queue()
        self.patterns: List[str] = []
        self.unsubscribed = False
        self.closed = False

    async def psubscribe(self, *patterns):
        for pattern in patterns:
            self.patterns.append(pattern)
            if self.acknowledge:
                self.queue.put_nowait(
                    {"type": "psubscribe", "pattern": None, "channel": pattern.encode(), "data": 1}
                )

    async def get_message(self, ignore_subscribe_messages=False, timeout=0.0):
        try:
            return await asyncio.wait_for(self.queue.get(), timeout)
        except asyncio.TimeoutError:
            return None

    async def listen(self):
        while True:
            yield await self.queue.get()

    def deliver(self, channel: str, data: Any) -> None:
        if not isinstance(data, (bytes, str)):
            data = json.dumps(data)
        if isinstance(data, str):
            data = data.encode()
        self.queue.put_nowait(
            {"type": "pmessage", "pattern": b"*", "channel": channel.encode(), "data": data}
        )

    async def punsubscribe(self, *patterns):
        self.unsubscribed = True

    async def aclose(self):
        self.closed = True


class FakeRedis:
    """Minimal redis.asyncio client exposing pubsub()."""

    def __init__(self, pubsub: FakePubSub):
        self._pubsub = pubsub
        self.closed = False

    def pubsub(self):
        return self._pubsub

    async def aclose(self):
        self.closed = True


def make_trigger_response(check_run_ids: Dict[str, str], **names: str) -> TriggerResponse:
    """Build a trigger response with one check per entry of check_run_ids."""
    checks = [
        CheckDescriptor(id=check_id, check_type="API", name=names.get(check_id, check_id))
        for check_id in check_run_ids
    ]
    return TriggerResponse(checks=checks, check_run_ids=check_run_ids)


@pytest.fixture
def public_location() -> PublicRunLocation:
    """Default public run location."""
    return PublicRunLocation(region="eu-central-1")


@pytest.fixture
def fake_subscriber() -> FakeSubscriber:
    """Results subscriber double."""
    return FakeSubscriber()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove configuration environment variables."""
    for key in [
        "ACCOUNT_ID", "API_KEY", "API_BASE_URL", "RESULTS_BROKER_URL",
        "TRIGGER_TIMEOUT_SECONDS", "SUBSCRIBE_ACK_TIMEOUT_SECONDS", "TRIGGER_CONFIG",
    ]:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture
def trigger_response():
    """Factory for trigger responses: trigger_response({"A": "r1"}, A="Homepage")."""
    return make_trigger_response


@pytest.fixture
def fake_pubsub() -> FakePubSub:
    """In-memory pub/sub that acknowledges subscriptions."""
    return FakePubSub()


@pytest.fixture
def fake_redis(fake_pubsub) -> FakeRedis:
    """Redis client double bound to fake_pubsub."""
    return FakeRedis(fake_pubsub)
