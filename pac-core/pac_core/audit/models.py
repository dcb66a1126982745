"""
Audit Models
============
Data model for audit trail entries.
"""

from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class AuditEvent:
    """An audit trail entry linked to its predecessor by hash."""
    id: str
    timestamp: datetime
    service: str
    event_type: str
    tenant_id: Optional[str]
    resource_type: Optional[str]  # "document", "reconciliation", "breaker"
    resource_id: Optional[str]
    action: str
    outcome: str  # "success", "failure", "corrected"
    payload: Dict[str, Any]
    hash: str
    previous_hash: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["timestamp"] = self.timestamp.isoformat()
        return d
