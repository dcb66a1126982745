"""
Polling Models
==============
Results produced by the status poller.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from ..documents.models import DocumentStatus


class PollOutcome(str, Enum):
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    ANNULLED = "ANNULLED"
    PENDING_TIMEOUT = "PENDING_TIMEOUT"


LOCAL_TO_OUTCOME: Dict[DocumentStatus, PollOutcome] = {
    DocumentStatus.AUTHORIZED: PollOutcome.ACCEPTED,
    DocumentStatus.REJECTED: PollOutcome.REJECTED,
    DocumentStatus.ANNULLED: PollOutcome.ANNULLED,
}


@dataclass(frozen=True)
class PollingResult:
    outcome: PollOutcome
    message: str
    poll_count: int
    total_elapsed_ms: int
    external_id: Optional[str] = None

    @property
    def timed_out(self) -> bool:
        return self.outcome == PollOutcome.PENDING_TIMEOUT


@dataclass
class BatchPollSummary:
    """Result of one poll_pending pass."""
    found: int = 0
    completed: int = 0
    failed: int = 0
    outcomes: Dict[str, int] = field(default_factory=dict)
    results: List[PollingResult] = field(default_factory=list)
