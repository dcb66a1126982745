"""
Call Metrics Buffer
===================
Bounded in-memory history of protected calls, one entry per terminal outcome.
"""

import asyncio
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, List, Optional

from ..errors.models import ClassifiedError


@dataclass(frozen=True)
class CallMetric:
    operation_name: str
    duration_ms: int
    success: bool
    attempts: int
    error: Optional[ClassifiedError] = None


class MetricsBuffer:
    """Ring buffer of CallMetric; the oldest entry is evicted on overflow."""

    def __init__(self, capacity: int = 100):
        self.capacity = capacity
        self._metrics: Deque[CallMetric] = deque(maxlen=capacity)
        self._lock = asyncio.Lock()

    async def record(self, metric: CallMetric) -> None:
        async with self._lock:
            self._metrics.append(metric)

    def snapshot(self) -> List[CallMetric]:
        return list(self._metrics)

    def __len__(self) -> int:
        return len(self._metrics)

    def summary(self) -> Dict[str, Any]:
        """
        Aggregate the buffer.

        Returns:
            Dict with total/successful/failed counts, success_rate (0..1),
            avg_duration_ms and a per-operation breakdown.
        """
        metrics = self.snapshot()
        total = len(metrics)
        successful = sum(1 for m in metrics if m.success)

        grouped: Dict[str, List[CallMetric]] = {}
        for m in metrics:
            grouped.setdefault(m.operation_name, []).append(m)

        by_operation = {
            name: {
                "count": len(items),
                "success_rate": sum(1 for m in items if m.success) / len(items),
                "avg_duration_ms": sum(m.duration_ms for m in items) / len(items),
            }
            for name, items in grouped.items()
        }

        return {
            "total_calls": total,
            "successful_calls": successful,
            "failed_calls": total - successful,
            "success_rate": successful / total if total else 0.0,
            "avg_duration_ms": sum(m.duration_ms for m in metrics) / total if total else 0.0,
            "by_operation": by_operation,
        }
