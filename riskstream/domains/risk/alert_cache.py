"""Short-TTL cache of per-transaction decisions for idempotent re-queries."""

import structlog
from pydantic import ValidationError

from riskstream.shared.store import KeyValueStore, StoreError

from .errors import DependencyUnavailable
from .models import FraudAlert

logger = structlog.get_logger()

RESULT_KEY_PREFIX = "fraud_result"


def result_key(transaction_id: str) -> str:
    return f"{RESULT_KEY_PREFIX}:{transaction_id}"


class AlertCache:
    def __init__(self, store: KeyValueStore, default_ttl_seconds: int = 3600) -> None:
        self._store = store
        self._default_ttl = default_ttl_seconds

    async def put(self, transaction_id: str, alert: FraudAlert, ttl_seconds: int | None = None) -> None:
        try:
            await self._store.set(
                result_key(transaction_id),
                alert.model_dump_json(),
                ttl_seconds=ttl_seconds or self._default_ttl,
            )
        except StoreError as exc:
            raise DependencyUnavailable("alert_cache", str(exc)) from exc

    async def get(self, transaction_id: str) -> FraudAlert | None:
        try:
            raw = await self._store.get(result_key(transaction_id))
        except StoreError as exc:
            raise DependencyUnavailable("alert_cache", str(exc)) from exc
        if raw is None:
            return None
        try:
            return FraudAlert.model_validate_json(raw)
        except ValidationError:
            # Treated as a miss; the next analysis overwrites it
            logger.warning("cached_alert_corrupt", transaction_id=transaction_id)
            return None
