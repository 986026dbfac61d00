"""Derive the model feature vector from a transaction and the user's recent history."""

import asyncio
from collections.abc import Awaitable
from datetime import UTC, timedelta
from typing import TypeVar

import structlog

from .config import RiskConfig, default_config
from .errors import InputError
from .lookups import (
    FraudHistoryLookup,
    InMemoryProfileDirectory,
    MerchantCatalog,
    StaticMerchantCatalog,
    UserProfileLookup,
)
from .models import FeatureVector, TransactionEvent
from .signals import device_risk, geolocation_risk, network_risk
from .velocity import VelocityStore

logger = structlog.get_logger()

T = TypeVar("T")


class FeatureExtractor:
    """Builds a fully populated FeatureVector.

    Missing optional inputs and failed lookups fall back to the neutral
    defaults in ``RiskConfig.defaults``. Only an unresolvable user id or an
    unreachable velocity store fails the extraction.
    """

    def __init__(
        self,
        velocity_store: VelocityStore,
        fraud_history: FraudHistoryLookup,
        merchant_catalog: MerchantCatalog | None = None,
        profiles: UserProfileLookup | None = None,
        config: RiskConfig | None = None,
    ) -> None:
        self._velocity = velocity_store
        self._fraud_history = fraud_history
        self._merchants = merchant_catalog or StaticMerchantCatalog()
        self._profiles = profiles or InMemoryProfileDirectory()
        self._config = config or default_config

    async def extract(self, event: TransactionEvent) -> FeatureVector:
        user_id = event.user_id.strip()
        if not user_id:
            raise InputError("Transaction event has no resolvable user id")

        cfg = self._config
        now = event.timestamp
        since = now - timedelta(hours=cfg.velocity.window_hours)

        entries = await self._velocity.recent_entries(user_id, since)
        # The window is relative to the event, never to later entries or itself
        window = [
            e for e in entries if e.timestamp <= now and e.transaction_id != event.transaction_id
        ]
        frequency = len(window)
        recent_amount = sum(e.amount for e in window)
        velocity_score = min(
            cfg.velocity.score_cap,
            frequency * cfg.velocity.frequency_weight
            + recent_amount / cfg.velocity.amount_divisor,
        )

        merchant_category, profile, prior_fraud = await asyncio.gather(
            self._lookup("merchant_catalog", self._merchant_category(event.merchant_id), user_id),
            self._lookup("user_profile", self._profiles.profile(user_id), user_id),
            self._lookup(
                "fraud_history", self._fraud_history.prior_fraud_score(user_id), user_id
            ),
        )

        defaults = cfg.defaults
        user_age = defaults.user_age
        account_age = defaults.account_age_days
        if profile is not None:
            if profile.age is not None:
                user_age = profile.age
            if profile.account_created_at is not None:
                created = profile.account_created_at
                if created.tzinfo is None:
                    created = created.replace(tzinfo=UTC)
                account_age = max((now - created).days, 0)

        features = FeatureVector(
            transaction_amount=event.amount_float,
            transaction_frequency=frequency,
            time_of_day=now.hour,
            # Sunday == 0, matching the model manager's training data
            day_of_week=(now.weekday() + 1) % 7,
            merchant_category=(
                merchant_category if merchant_category is not None else defaults.merchant_category
            ),
            user_age=user_age,
            account_age=account_age,
            prior_fraud_score=(
                prior_fraud if prior_fraud is not None else defaults.prior_fraud_score
            ),
            velocity_score=velocity_score,
            device_risk=(
                device_risk(event.device_fingerprint)
                if event.device_fingerprint
                else defaults.device_risk
            ),
            geolocation_risk=(
                geolocation_risk(event.geolocation, cfg.signals, defaults.geolocation_risk)
                if event.geolocation
                else defaults.geolocation_risk
            ),
            network_risk=(
                network_risk(event.ip_address, cfg.signals)
                if event.ip_address
                else defaults.network_risk
            ),
        )

        logger.debug(
            "features_extracted",
            transaction_id=event.transaction_id,
            user_id=user_id,
            transaction_frequency=frequency,
            velocity_score=velocity_score,
        )
        return features

    async def _merchant_category(self, merchant_id: str | None) -> int | None:
        if not merchant_id:
            return None
        return await self._merchants.category_code(merchant_id)

    async def _lookup(self, source: str, call: Awaitable[T], user_id: str) -> T | None:
        try:
            return await call
        except Exception:
            logger.warning("feature_lookup_failed", source=source, user_id=user_id, exc_info=True)
            return None
