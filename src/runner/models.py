"""
Per-session run state for the check trigger runner.

Nothing here outlives a single run() call.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from ..rest.models import CheckDescriptor


class RunPhase(str, Enum):
    """Phase of one check run."""

    ARMED = "armed"  # timer running, no message yet
    IN_PROGRESS = "in_progress"  # run-start received
    FINISHED = "finished"  # success, failure or timeout


@dataclass
class RunEntry:
    """State of one check run within a session."""

    run_id: str
    check: CheckDescriptor
    phase: RunPhase = RunPhase.ARMED
    timer: Optional[asyncio.TimerHandle] = None

    @property
    def armed(self) -> bool:
        return self.timer is not None


@dataclass
class RunSession:
    """
    Correlation state resolved once from the trigger response.

    ``run_ids`` maps backend run id -> check id and is read-only after creation.
    """

    session_id: str
    checks: List[CheckDescriptor] = field(default_factory=list)
    run_ids: Dict[str, str] = field(default_factory=dict)
    checks_by_id: Dict[str, CheckDescriptor] = field(default_factory=dict)

    def __post_init__(self):
        if not self.checks_by_id:
            self.checks_by_id = {check.id: check for check in self.checks}

    def check_for_run(self, run_id: str) -> Optional[CheckDescriptor]:
        """The check a run id belongs to, or None for an unknown run id."""
        check_id = self.run_ids.get(run_id)
        if check_id is None:
            return None
        return self.checks_by_id.get(check_id)
