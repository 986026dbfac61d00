"""Bounded in-memory history of recent alerts, most recent first."""

import threading
from collections import deque
from datetime import datetime

from .models import FraudAlert


class AlertHistory:
    """Fixed-capacity ring buffer; the oldest alert is evicted on overflow.

    The lock only guards append and copy, never I/O.
    """

    def __init__(self, max_size: int = 1000) -> None:
        self._alerts: deque[FraudAlert] = deque(maxlen=max_size)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._alerts)

    @property
    def max_size(self) -> int:
        return self._alerts.maxlen or 0

    def append(self, alert: FraudAlert) -> None:
        with self._lock:
            self._alerts.appendleft(alert)

    def recent(self, limit: int | None = None) -> list[FraudAlert]:
        with self._lock:
            alerts = list(self._alerts)
        return alerts if limit is None else alerts[:limit]

    def since(self, cutoff: datetime) -> list[FraudAlert]:
        return [a for a in self.recent() if a.timestamp > cutoff]
