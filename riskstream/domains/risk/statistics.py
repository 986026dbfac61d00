"""Rolling risk statistics: hourly counters in the store, snapshots from memory.

The two views have independent retention. Hourly buckets expire from the
store after ``bucket_ttl_seconds``; the snapshot only sees what the bounded
in-memory history still holds.
"""

from datetime import UTC, datetime, timedelta

import structlog

from riskstream.shared.store import KeyValueStore, StoreError

from .errors import DependencyUnavailable
from .history import AlertHistory
from .models import FraudAlert, HourlyBucket, Recommendation, RiskLevel, StatsSummary

logger = structlog.get_logger()

BUCKET_KEY_PREFIX = "fraud_stats"


def bucket_key(moment: datetime) -> str:
    moment = moment.astimezone(UTC)
    return f"{BUCKET_KEY_PREFIX}:{moment:%Y_%m_%d_%H}"


def bucket_fields(alert: FraudAlert) -> dict[str, int]:
    return {
        "total_transactions": 1,
        f"{alert.risk_level.value.lower()}_risk": 1,
        f"{alert.recommendation.value.lower()}_recommended": 1,
    }


class StatisticsAggregator:
    def __init__(
        self,
        store: KeyValueStore,
        history: AlertHistory,
        bucket_ttl_seconds: int = 24 * 3600,
        default_window_seconds: int = 3600,
    ) -> None:
        self._store = store
        self._history = history
        self._bucket_ttl = bucket_ttl_seconds
        self._default_window = default_window_seconds

    async def record(self, alert: FraudAlert) -> None:
        """Increment the bucket for the alert's creation hour."""
        try:
            await self._store.hash_increment(
                bucket_key(alert.timestamp),
                bucket_fields(alert),
                ttl_seconds=self._bucket_ttl,
            )
        except StoreError as exc:
            raise DependencyUnavailable("statistics_store", str(exc)) from exc

    def snapshot(
        self, window_seconds: int | None = None, now: datetime | None = None
    ) -> StatsSummary:
        window = window_seconds if window_seconds is not None else self._default_window
        now = now or datetime.now(UTC)
        recent = self._history.since(now - timedelta(seconds=window))

        total = len(recent)
        high = sum(1 for a in recent if a.risk_level == RiskLevel.HIGH)
        processing = sum(a.processing_time_ms for a in recent)

        return StatsSummary(
            total_transactions=len(self._history),
            recent_transactions=total,
            high_risk_count=high,
            medium_risk_count=sum(1 for a in recent if a.risk_level == RiskLevel.MEDIUM),
            low_risk_count=sum(1 for a in recent if a.risk_level == RiskLevel.LOW),
            blocked_count=sum(1 for a in recent if a.recommendation == Recommendation.BLOCK),
            review_count=sum(1 for a in recent if a.recommendation == Recommendation.REVIEW),
            approved_count=sum(1 for a in recent if a.recommendation == Recommendation.APPROVE),
            average_processing_time_ms=round(processing / total, 3) if total else 0.0,
            fraud_rate=high / total if total else 0.0,
            window_seconds=window,
            timestamp=now,
        )

    async def hourly_buckets(self, hours: int = 24, now: datetime | None = None) -> list[HourlyBucket]:
        """Counters for the trailing ``hours`` buckets, newest first."""
        now = (now or datetime.now(UTC)).astimezone(UTC)
        current = now.replace(minute=0, second=0, microsecond=0)
        buckets: list[HourlyBucket] = []
        for offset in range(hours):
            hour = current - timedelta(hours=offset)
            try:
                counts = await self._store.hash_get_all(bucket_key(hour))
            except StoreError as exc:
                raise DependencyUnavailable("statistics_store", str(exc)) from exc
            buckets.append(HourlyBucket(hour=hour, counts=counts))
        return buckets
