"""
Reconciliation
==============
Periodic and on-demand correction of local/remote status drift.
"""

from .models import RECONCILABLE_STATUSES, ReconciliationDetail, ReconciliationReport
from .engine import ReconciliationEngine

__all__ = [
    "RECONCILABLE_STATUSES",
    "ReconciliationDetail",
    "ReconciliationReport",
    "ReconciliationEngine",
]
