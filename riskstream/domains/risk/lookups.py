"""Read-only lookups against profile, merchant and fraud-history sources.

Each capability has exactly one method and answers ``None`` on a miss. The
feature extractor owns the neutral defaults, so implementations never invent
values.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

import structlog

from riskstream.shared.store import KeyValueStore

logger = structlog.get_logger()

# Merchant category codes understood by the model manager
MERCHANT_CATEGORY_CODES: dict[str, int] = {
    "retail": 1,
    "grocery": 2,
    "gas": 3,
    "restaurant": 4,
    "online": 5,
    "gambling": 10,
    "crypto": 12,
    "adult": 15,
}

FRAUD_SCORE_KEY_PREFIX = "user_fraud_score"


@dataclass(frozen=True)
class UserProfile:
    age: int | None = None
    account_created_at: datetime | None = None


class MerchantCatalog(Protocol):
    async def category_code(self, merchant_id: str) -> int | None: ...


class UserProfileLookup(Protocol):
    async def profile(self, user_id: str) -> UserProfile | None: ...


class FraudHistoryLookup(Protocol):
    async def prior_fraud_score(self, user_id: str) -> float | None: ...


class StaticMerchantCatalog:
    """Maps merchant ids to category names from a fixed table."""

    def __init__(self, merchants: Mapping[str, str] | None = None) -> None:
        self._merchants = dict(merchants or {})

    async def category_code(self, merchant_id: str) -> int | None:
        category = self._merchants.get(merchant_id)
        if category is None:
            return None
        return MERCHANT_CATEGORY_CODES.get(category.lower())


class InMemoryProfileDirectory:
    def __init__(self, profiles: Mapping[str, UserProfile] | None = None) -> None:
        self._profiles = dict(profiles or {})

    async def profile(self, user_id: str) -> UserProfile | None:
        return self._profiles.get(user_id)


class StoreFraudHistory:
    """Reads the prior fraud score written by offline investigation tooling."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    async def prior_fraud_score(self, user_id: str) -> float | None:
        raw = await self._store.get(f"{FRAUD_SCORE_KEY_PREFIX}:{user_id}")
        if raw is None:
            return None
        try:
            return float(raw)
        except ValueError:
            logger.warning("fraud_score_unparseable", user_id=user_id, raw=raw)
            return None
