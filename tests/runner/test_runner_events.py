"""Tests for the runner event channel and the completion counter."""

import asyncio

import pytest

from src.rest.models import CheckDescriptor
from src.runner import CompletionCounter, EventChannel, Events, RunnerEvent

CHECK = CheckDescriptor(id="A", name="Homepage")


class TestEventChannel:
    """Test event fan-out."""

    def test_listeners_called_in_order(self):
        channel = EventChannel()
        seen = []
        channel.add_listener(lambda event: seen.append(("first", event.kind)))
        channel.add_listener(lambda event: seen.append(("second", event.checks)))

        channel.emit(RunnerEvent.run_started([CHECK]))

        assert seen == [("first", Events.RUN_STARTED), ("second", [CHECK])]

    def test_emit_keeps_no_backlog(self):
        channel = EventChannel()
        for _ in range(3):
            channel.emit(RunnerEvent.run_finished())
        seen = []
        channel.add_listener(seen.append)

        channel.emit(RunnerEvent.run_finished())

        assert len(seen) == 1
        assert not hasattr(channel, "history")

    def test_failing_listener_does_not_block_others(self):
        channel = EventChannel()
        seen = []

        def broken(event):
            raise RuntimeError("listener bug")

        channel.add_listener(broken)
        channel.add_listener(seen.append)

        channel.emit(RunnerEvent.check_finished(CHECK))

        assert [event.kind for event in seen] == [Events.CHECK_FINISHED]

    def test_remove_listener(self):
        channel = EventChannel()
        seen = []
        channel.add_listener(seen.append)
        channel.remove_listener(seen.append)
        channel.remove_listener(seen.append)

        channel.emit(RunnerEvent.run_finished())

        assert seen == []

    @pytest.mark.asyncio
    async def test_stream_ends_after_error(self):
        channel = EventChannel()
        stream = channel.stream()
        error = RuntimeError("trigger failed")

        channel.emit(RunnerEvent.failure(error))
        channel.emit(RunnerEvent.run_finished())
        events = [event async for event in stream]

        assert [event.kind for event in events] == [Events.ERROR]
        assert events[0].error is error

    @pytest.mark.asyncio
    async def test_stream_receives_later_events(self):
        channel = EventChannel()
        stream = channel.stream()

        async def produce():
            await asyncio.sleep(0.01)
            channel.emit(RunnerEvent.check_failed(CHECK, "Reached timeout"))
            channel.emit(RunnerEvent.run_finished())

        producer = asyncio.ensure_future(produce())
        events = [event async for event in stream]
        await producer

        assert [event.kind for event in events] == [Events.CHECK_FAILED, Events.RUN_FINISHED]
        assert events[0].reason == "Reached timeout"

    @pytest.mark.asyncio
    async def test_closed_stream_stops_receiving(self):
        channel = EventChannel()
        stream = channel.stream()
        stream.close()

        channel.emit(RunnerEvent.run_finished())

        assert [event async for event in stream] == []


class TestCompletionCounter:
    """Test aggregation of check completions."""

    @pytest.mark.asyncio
    async def test_zero_expected_is_done_immediately(self):
        counter = CompletionCounter(0)

        assert counter.done
        await asyncio.wait_for(counter.wait(), timeout=0.1)

    @pytest.mark.asyncio
    async def test_resolves_after_expected_count(self):
        counter = CompletionCounter(2)

        counter.mark_finished()
        assert not counter.done
        counter.mark_finished()

        assert counter.done
        await asyncio.wait_for(counter.wait(), timeout=0.1)

    @pytest.mark.asyncio
    async def test_extra_completions_are_ignored(self):
        counter = CompletionCounter(1)
        counter.mark_finished()

        counter.mark_finished()

        assert counter.finished == 1

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_cancel_counter(self):
        counter = CompletionCounter(1)
        waiter = asyncio.ensure_future(counter.wait())
        await asyncio.sleep(0)
        waiter.cancel()

        counter.mark_finished()

        assert counter.done

    @pytest.mark.asyncio
    async def test_negative_expected(self):
        with pytest.raises(ValueError):
            CompletionCounter(-1)
