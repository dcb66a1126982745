"""
Reconciliation Models
=====================
Report produced by a reconciliation run.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..documents.models import DocumentStatus

# Local statuses reconciliation re-checks. Settled documents are included:
# the provider can still change its view later (e.g. an annulment).
RECONCILABLE_STATUSES = frozenset({
    DocumentStatus.QUEUED,
    DocumentStatus.PROCESSING,
    DocumentStatus.AUTHORIZED,
    DocumentStatus.REJECTED,
})


@dataclass(frozen=True)
class ReconciliationDetail:
    document_id: str
    document_number: str
    local_status: str
    remote_status: str
    action: str


@dataclass
class ReconciliationReport:
    total_checked: int = 0
    discrepancies_found: int = 0
    fixed: int = 0
    errors: int = 0
    skipped: int = 0
    details: List[ReconciliationDetail] = field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    lookback_hours: float = 24

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["started_at"] = self.started_at.isoformat() if self.started_at else None
        d["finished_at"] = self.finished_at.isoformat() if self.finished_at else None
        return d
