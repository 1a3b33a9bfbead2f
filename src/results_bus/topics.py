"""
Topic utilities for the results bus.

Check run results are published on one topic per run and result kind:

    account/{account_id}/ad-hoc-check-results/{session_id}/{run_id}/{kind}

A session subscribes to every run and kind below its own session id, so the
two trailing segments are wildcards in the subscription pattern.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

RESULT_TOPIC_PATTERN = "account/{account_id}/ad-hoc-check-results/{session_id}/{run_id}/{kind}"
RESULT_TOPIC_SEGMENT = "ad-hoc-check-results"
TOPIC_SEPARATOR = "/"


class ResultKind(str, Enum):
    """Result kinds published for a check run."""

    RUN_START = "run-start"
    RUN_END = "run-end"
    ERROR = "error"


@dataclass(frozen=True)
class ResultTopic:
    """Components of a result topic."""

    account_id: str
    session_id: str
    run_id: str
    kind: str

    @property
    def result_kind(self) -> Optional[ResultKind]:
        """The kind as a ResultKind, or None for an unknown kind."""
        try:
            return ResultKind(self.kind)
        except ValueError:
            return None


def _resolve(pattern: str, **kwargs: str) -> str:
    resolved = pattern
    for key, value in kwargs.items():
        segment = str(value)
        if not segment or TOPIC_SEPARATOR in segment:
            raise ValueError(f"Invalid topic segment for {key}: {segment!r}")
        resolved = resolved.replace(f"{{{key}}}", segment)
    return resolved


def build_result_topic(account_id: str, session_id: str, run_id: str, kind: str) -> str:
    """
    Build the concrete topic a run result is published on.

    Example:
        >>> build_result_topic("acc", "s1", "r1", "run-end")
        "account/acc/ad-hoc-check-results/s1/r1/run-end"
    """
    return _resolve(
        RESULT_TOPIC_PATTERN,
        account_id=account_id,
        session_id=session_id,
        run_id=run_id,
        kind=kind,
    )


def build_subscription_pattern(account_id: str, session_id: str) -> str:
    """
    Build the subscription pattern for one run session.

    Run id and kind are left open and become single-segment wildcards.

    Example:
        >>> build_subscription_pattern("acc", "s1")
        "account/acc/ad-hoc-check-results/s1/*/*"
    """
    resolved = _resolve(RESULT_TOPIC_PATTERN, account_id=account_id, session_id=session_id)

    # Replace remaining placeholders with wildcards
    return re.sub(r"\{(\w+)\}", "*", resolved)


def parse_result_topic(topic: str) -> Optional[ResultTopic]:
    """
    Split a result topic into its components.

    Returns:
        ResultTopic, or None if the topic does not have the result topic shape
    """
    parts = topic.split(TOPIC_SEPARATOR)
    if len(parts) != 6 or parts[0] != "account" or parts[2] != RESULT_TOPIC_SEGMENT:
        logger.debug(f"Ignoring unexpected topic: {topic}")
        return None
    if not all(parts[i] for i in (1, 3, 4, 5)):
        logger.debug(f"Ignoring topic with empty segment: {topic}")
        return None

    return ResultTopic(
        account_id=parts[1],
        session_id=parts[3],
        run_id=parts[4],
        kind=parts[5],
    )
