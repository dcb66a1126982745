"""
Clock
=====
Time source and suspending waits used by every retry/poll/batch loop.

All waits go through ``Clock.sleep`` so that a shutdown signal can abort
them and tests can substitute a fake clock.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Optional

from .errors.exceptions import OperationCancelled


class Clock:
    """Wall clock plus monotonic clock plus cancellation-aware sleep."""

    def monotonic(self) -> float:
        """Seconds from an arbitrary, never-decreasing origin."""
        return time.monotonic()

    def now(self) -> datetime:
        """Current UTC time."""
        return datetime.now(timezone.utc)

    async def sleep(
        self,
        seconds: float,
        cancel: Optional[asyncio.Event] = None,
    ) -> None:
        """
        Suspend the calling task for ``seconds``.

        Raises:
            OperationCancelled: If ``cancel`` is set before or during the wait
        """
        if cancel is None:
            await asyncio.sleep(max(0.0, seconds))
            return

        if cancel.is_set():
            raise OperationCancelled("Wait aborted by shutdown signal")

        try:
            await asyncio.wait_for(cancel.wait(), timeout=max(0.0, seconds))
        except asyncio.TimeoutError:
            return

        raise OperationCancelled("Wait aborted by shutdown signal")


SYSTEM_CLOCK = Clock()
