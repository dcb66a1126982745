"""
Audit Hashing
=============
Hash chain computation and verification for the audit trail.
"""

import hashlib
import json
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import structlog

from .models import AuditEvent

logger = structlog.get_logger(__name__)


def compute_event_hash(
    previous_hash: Optional[str],
    timestamp: datetime,
    service: str,
    event_type: str,
    resource_id: Optional[str],
    payload: Dict[str, Any],
) -> str:
    """
    SHA-256 over the previous hash and the event's identifying fields.

    The payload is serialized with sorted keys; values that aren't JSON
    native (datetimes, enums) are rendered with ``str``.
    """
    hash_input = json.dumps(
        {
            "previous_hash": previous_hash,
            "timestamp": timestamp.isoformat(),
            "service": service,
            "event_type": event_type,
            "resource_id": resource_id,
            "payload": payload,
        },
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    return hashlib.sha256(hash_input.encode()).hexdigest()


def verify_chain_integrity(events: List[AuditEvent]) -> Tuple[bool, Optional[int]]:
    """
    Verify an audit chain in chronological order.

    Returns:
        (is_valid, first_invalid_index)
    """
    previous: Optional[str] = None
    for i, event in enumerate(events):
        if event.previous_hash != previous:
            logger.warning("audit_chain_linkage_broken", event_id=event.id, index=i)
            return False, i

        expected_hash = compute_event_hash(
            event.previous_hash,
            event.timestamp,
            event.service,
            event.event_type,
            event.resource_id,
            event.payload,
        )
        if event.hash != expected_hash:
            logger.warning(
                "audit_chain_integrity_violation",
                event_id=event.id,
                index=i,
                expected_hash=expected_hash[:16],
                actual_hash=event.hash[:16],
            )
            return False, i
        previous = event.hash

    return True, None
