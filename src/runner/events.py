"""
Runner events - the closed set of notifications a trigger run produces.

Delivery order for one session:
    RUN_STARTED(checks)
    then, per check, interleaved across checks:
        CHECK_INPROGRESS(check)                        (optional, at most once)
        CHECK_SUCCESSFUL(check, result) | CHECK_FAILED(check, reason)
        CHECK_FINISHED(check)                          (exactly once)
    RUN_FINISHED()

A failed trigger produces a single ERROR(error) and nothing else.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Callable, List, Optional

from ..rest.models import CheckDescriptor

logger = logging.getLogger(__name__)


class Events(str, Enum):
    """Event kinds emitted by the check trigger runner."""

    RUN_STARTED = "RUN_STARTED"
    CHECK_INPROGRESS = "CHECK_INPROGRESS"
    CHECK_SUCCESSFUL = "CHECK_SUCCESSFUL"
    CHECK_FAILED = "CHECK_FAILED"
    CHECK_FINISHED = "CHECK_FINISHED"
    RUN_FINISHED = "RUN_FINISHED"
    ERROR = "ERROR"


TERMINAL_EVENTS = (Events.RUN_FINISHED, Events.ERROR)


@dataclass(frozen=True)
class RunnerEvent:
    """One emitted event. Which payload fields are set depends on the kind."""

    kind: Events
    checks: Optional[List[CheckDescriptor]] = None
    check: Optional[CheckDescriptor] = None
    result: Optional[Any] = None
    reason: Optional[Any] = None
    error: Optional[BaseException] = None

    @classmethod
    def run_started(cls, checks: List[CheckDescriptor]) -> "RunnerEvent":
        return cls(Events.RUN_STARTED, checks=list(checks))

    @classmethod
    def check_in_progress(cls, check: CheckDescriptor) -> "RunnerEvent":
        return cls(Events.CHECK_INPROGRESS, check=check)

    @classmethod
    def check_successful(cls, check: CheckDescriptor, result: Any) -> "RunnerEvent":
        return cls(Events.CHECK_SUCCESSFUL, check=check, result=result)

    @classmethod
    def check_failed(cls, check: CheckDescriptor, reason: Any) -> "RunnerEvent":
        return cls(Events.CHECK_FAILED, check=check, reason=reason)

    @classmethod
    def check_finished(cls, check: CheckDescriptor) -> "RunnerEvent":
        return cls(Events.CHECK_FINISHED, check=check)

    @classmethod
    def run_finished(cls) -> "RunnerEvent":
        return cls(Events.RUN_FINISHED)

    @classmethod
    def failure(cls, error: BaseException) -> "RunnerEvent":
        return cls(Events.ERROR, error=error)


EventListener = Callable[[RunnerEvent], None]


class EventChannel:
    """
    Fan-out of runner events.

    Listeners are called synchronously in registration order at emit time.
    Streams receive every event emitted after they were opened, and stop after
    RUN_FINISHED or ERROR.
    """

    def __init__(self):
        self._listeners: List[EventListener] = []
        self._queues: List[asyncio.Queue] = []

    def add_listener(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: EventListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, event: RunnerEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Listener error for {event.kind.value}: {e}")
        for queue in self._queues:
            queue.put_nowait(event)

    def stream(self) -> "EventStream":
        """Open a stream that receives every event emitted from now on."""
        queue: asyncio.Queue = asyncio.Queue()
        self._queues.append(queue)
        return EventStream(self, queue)

    def _close_stream(self, queue: asyncio.Queue) -> None:
        if queue in self._queues:
            self._queues.remove(queue)


class EventStream:
    """Async iterator over the events of one channel, ending after a terminal event."""

    def __init__(self, channel: EventChannel, queue: asyncio.Queue):
        self._channel = channel
        self._queue = queue
        self._done = False

    def __aiter__(self) -> AsyncIterator[RunnerEvent]:
        return self

    async def __anext__(self) -> RunnerEvent:
        if self._done:
            raise StopAsyncIteration
        event = await self._queue.get()
        if event.kind in TERMINAL_EVENTS:
            self.close()
        return event

    def close(self) -> None:
        self._done = True
        self._channel._close_stream(self._queue)
