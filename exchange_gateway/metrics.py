"""
Exchange Gateway - Metrics.

============================================================
PURPOSE
============================================================
In-process counters for one adapter instance.

METRICS TRACKED:
- Request latency by endpoint key
- Success/failure counts
- Failures by canonical error category
- Retries and rate limiter wait time

============================================================
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Any, Optional


logger = logging.getLogger(__name__)


@dataclass
class LatencyStats:
    """Latency statistics."""

    count: int = 0
    total_ms: float = 0.0
    min_ms: float = float("inf")
    max_ms: float = 0.0

    @property
    def avg_ms(self) -> float:
        return self.total_ms / self.count if self.count > 0 else 0.0

    def record(self, latency_ms: float) -> None:
        self.count += 1
        self.total_ms += latency_ms
        self.min_ms = min(self.min_ms, latency_ms)
        self.max_ms = max(self.max_ms, latency_ms)

    def to_dict(self) -> Dict[str, float]:
        return {
            "count": self.count,
            "avg_ms": self.avg_ms,
            "min_ms": self.min_ms if self.count else 0.0,
            "max_ms": self.max_ms,
        }


class AdapterMetrics:
    """
    Metrics collector for one exchange adapter.
    """

    def __init__(self, exchange_id: str):
        self._exchange_id = exchange_id
        self.reset()

    # --------------------------------------------------------
    # RECORDING
    # --------------------------------------------------------

    def record_request(
        self,
        endpoint: str,
        latency_ms: float,
        success: bool,
        error_category: Optional[str] = None,
    ) -> None:
        """
        Record one HTTP round trip.

        Args:
            endpoint: Endpoint key
            latency_ms: Request latency in ms
            success: Whether the response classified as success
            error_category: ErrorCategory value when failed
        """
        self._latency[endpoint].record(latency_ms)
        self._latency["_all"].record(latency_ms)

        if success:
            self._success += 1
        else:
            self._failure += 1
            if error_category:
                self._errors_by_category[error_category] += 1

    def record_retry(self) -> None:
        self._retries += 1

    def record_throttle_wait(self, waited_seconds: float) -> None:
        if waited_seconds > 0:
            self._throttle_waits += 1
            self._throttle_wait_seconds += waited_seconds

    # --------------------------------------------------------
    # REPORTING
    # --------------------------------------------------------

    def get_summary(self) -> Dict[str, Any]:
        """
        Get metrics summary.

        Returns:
            Dict with all metrics
        """
        uptime = (datetime.now(timezone.utc) - self._start_time).total_seconds()
        total = self._success + self._failure

        return {
            "exchange_id": self._exchange_id,
            "uptime_seconds": uptime,
            "requests": {
                "total": total,
                "success": self._success,
                "failure": self._failure,
                "success_rate": self._success / total if total > 0 else 1.0,
            },
            "latency": self._latency.get("_all", LatencyStats()).to_dict(),
            "latency_by_endpoint": {
                endpoint: stats.to_dict()
                for endpoint, stats in self._latency.items()
                if endpoint != "_all"
            },
            "errors": dict(self._errors_by_category),
            "retries": self._retries,
            "throttle": {
                "waits": self._throttle_waits,
                "wait_seconds": self._throttle_wait_seconds,
            },
        }

    def reset(self) -> None:
        """Reset all metrics."""
        self._start_time = datetime.now(timezone.utc)
        self._latency: Dict[str, LatencyStats] = defaultdict(LatencyStats)
        self._success = 0
        self._failure = 0
        self._errors_by_category: Dict[str, int] = defaultdict(int)
        self._retries = 0
        self._throttle_waits = 0
        self._throttle_wait_seconds = 0.0
