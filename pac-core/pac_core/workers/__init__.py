"""
Workers
=======
Queue job handlers built on the resilience layer.
"""

from .submission import (
    DocumentSerializer,
    SubmissionJob,
    SubmissionOutcome,
    SubmissionProcessor,
    SubmissionResult,
)

__all__ = [
    "DocumentSerializer",
    "SubmissionJob",
    "SubmissionOutcome",
    "SubmissionProcessor",
    "SubmissionResult",
]
