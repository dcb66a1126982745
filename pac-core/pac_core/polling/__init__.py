"""
Status Polling
==============
Follow-up queries for documents the provider is still processing.
"""

from .models import PollOutcome, PollingResult, BatchPollSummary
from .poller import StatusPoller, DEFAULT_SCHEDULE, MAX_INTERVAL

__all__ = [
    "PollOutcome",
    "PollingResult",
    "BatchPollSummary",
    "StatusPoller",
    "DEFAULT_SCHEDULE",
    "MAX_INTERVAL",
]
