"""
Results Bus - pub/sub delivery of check run results.

Every run session subscribes to its own topic subtree before checks are
triggered, so results of fast runs cannot be published before anyone listens.

Topics:
    account/{account_id}/ad-hoc-check-results/{session_id}/{run_id}/{kind}

Kinds:
    - run-start: the check run began executing
    - run-end: the check run completed, payload carries the result
    - error: the check run could not be executed, payload is passed through
"""

from .subscriber import MessageHandler, ResultSubscriber
from .topics import (
    RESULT_TOPIC_PATTERN,
    ResultKind,
    ResultTopic,
    build_result_topic,
    build_subscription_pattern,
    parse_result_topic,
)

__all__ = [
    "ResultSubscriber",
    "MessageHandler",
    "RESULT_TOPIC_PATTERN",
    "ResultKind",
    "ResultTopic",
    "build_result_topic",
    "build_subscription_pattern",
    "parse_result_topic",
]
