"""
Check Trigger Runner - correlates triggered check runs with their results.

The runner subscribes to the session's results topic, triggers the checks
matching a set of tags, and turns run-start / run-end / error messages and
per-run timeouts into an ordered stream of RunnerEvents.
"""

from .check_trigger_runner import TIMEOUT_REASON, CheckTriggerRunner
from .completion import CompletionCounter
from .events import EventChannel, EventStream, Events, RunnerEvent
from .models import RunEntry, RunPhase, RunSession

__all__ = [
    "CheckTriggerRunner",
    "TIMEOUT_REASON",
    "CompletionCounter",
    "EventChannel",
    "EventStream",
    "Events",
    "RunnerEvent",
    "RunEntry",
    "RunPhase",
    "RunSession",
]
