"""Unit tests for feature extraction."""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from riskstream.domains.risk.errors import DependencyUnavailable, InputError
from riskstream.domains.risk.feature_extractor import FeatureExtractor
from riskstream.domains.risk.lookups import (
    InMemoryProfileDirectory,
    StaticMerchantCatalog,
    StoreFraudHistory,
    UserProfile,
)
from riskstream.domains.risk.models import GeoLocation, VelocityEntry
from riskstream.domains.risk.velocity import VelocityStore
from riskstream.shared.store import InMemoryStore, StoreError
from tests.conftest import NOW, make_event


class BrokenLookup:
    async def category_code(self, merchant_id):
        raise ConnectionError("catalog down")

    async def profile(self, user_id):
        raise ConnectionError("profiles down")

    async def prior_fraud_score(self, user_id):
        raise ConnectionError("history down")


def _extractor(store, **kwargs) -> FeatureExtractor:
    return FeatureExtractor(
        velocity_store=VelocityStore(store),
        fraud_history=kwargs.pop("fraud_history", StoreFraudHistory(store)),
        **kwargs,
    )


async def _seed(store, user_id: str, *entries: tuple[str, float, datetime]) -> None:
    velocity = VelocityStore(store)
    for txn_id, amount, ts in entries:
        await velocity.append(
            user_id, VelocityEntry(transaction_id=txn_id, amount=amount, timestamp=ts)
        )


class TestFeatureExtractor:
    @pytest.mark.asyncio
    async def test_first_transaction_uses_neutral_defaults(self, store):
        features = await _extractor(store).extract(make_event(amount="25000"))
        assert features.transaction_amount == 25000.0
        assert features.transaction_frequency == 0
        assert features.velocity_score == 0.0
        assert features.time_of_day == 14
        assert features.day_of_week == 4
        assert features.merchant_category == 1
        assert features.user_age == 30
        assert features.account_age == 0
        assert features.prior_fraud_score == 0.0
        assert features.device_risk == 0.7
        assert features.geolocation_risk == 0.5
        assert features.network_risk == 0.5

    @pytest.mark.asyncio
    async def test_sunday_is_zero(self, store):
        sunday = datetime(2026, 1, 18, 9, 0, tzinfo=NOW.tzinfo)
        features = await _extractor(store).extract(make_event(timestamp=sunday))
        assert features.day_of_week == 0

    @pytest.mark.asyncio
    async def test_velocity_window(self, store):
        await _seed(
            store,
            "user-1",
            ("old", 500.0, NOW - timedelta(hours=25)),
            ("a", 1000.0, NOW - timedelta(hours=2)),
            ("b", 2000.0, NOW - timedelta(minutes=5)),
        )
        features = await _extractor(store).extract(make_event())
        assert features.transaction_frequency == 2
        # 2 * 10 + 3000 / 1000
        assert features.velocity_score == 23.0

    @pytest.mark.asyncio
    async def test_excludes_own_and_later_entries(self, store):
        await _seed(
            store,
            "user-1",
            ("txn-1", 100.0, NOW),
            ("later", 100.0, NOW + timedelta(minutes=10)),
            ("earlier", 100.0, NOW - timedelta(minutes=10)),
        )
        features = await _extractor(store).extract(make_event(transaction_id="txn-1"))
        assert features.transaction_frequency == 1

    @pytest.mark.asyncio
    async def test_velocity_score_capped(self, store):
        await _seed(
            store,
            "user-1",
            *[(f"t{i}", 50_000.0, NOW - timedelta(minutes=i + 1)) for i in range(15)],
        )
        features = await _extractor(store).extract(make_event())
        assert features.transaction_frequency == 15
        assert features.velocity_score == 100.0

    @pytest.mark.asyncio
    async def test_lookups_resolved(self, store):
        await store.set("user_fraud_score:user-1", "0.75")
        extractor = _extractor(
            store,
            merchant_catalog=StaticMerchantCatalog({"m-1": "Gambling"}),
            profiles=InMemoryProfileDirectory(
                {"user-1": UserProfile(age=41, account_created_at=NOW - timedelta(days=400))}
            ),
        )
        features = await extractor.extract(make_event(merchant_id="m-1"))
        assert features.merchant_category == 10
        assert features.user_age == 41
        assert features.account_age == 400
        assert features.prior_fraud_score == 0.75

    @pytest.mark.asyncio
    async def test_naive_account_creation_treated_as_utc(self, store):
        created = (NOW - timedelta(days=10)).replace(tzinfo=None)
        extractor = _extractor(
            store,
            profiles=InMemoryProfileDirectory({"user-1": UserProfile(account_created_at=created)}),
        )
        features = await extractor.extract(make_event())
        assert features.account_age == 10
        assert features.user_age == 30

    @pytest.mark.asyncio
    async def test_failed_lookups_fall_back_to_defaults(self, store):
        broken = BrokenLookup()
        extractor = _extractor(
            store, fraud_history=broken, merchant_catalog=broken, profiles=broken
        )
        features = await extractor.extract(make_event(merchant_id="m-1"))
        assert features.merchant_category == 1
        assert features.user_age == 30
        assert features.prior_fraud_score == 0.0

    @pytest.mark.asyncio
    async def test_optional_signals_present(self, store):
        event = make_event(
            device_fingerprint="a",
            ip_address="8.8.8.8",
            geolocation=GeoLocation(latitude=40.7, longitude=-74.0, country="US"),
        )
        features = await _extractor(store).extract(event)
        assert features.device_risk == 0.97
        assert features.network_risk == 0.1
        assert features.geolocation_risk == 0.1

    @pytest.mark.asyncio
    async def test_blank_user_rejected(self, store):
        event = make_event().model_copy(update={"user_id": "   "})
        with pytest.raises(InputError):
            await _extractor(store).extract(event)

    @pytest.mark.asyncio
    async def test_velocity_store_outage_fails_extraction(self):
        broken = InMemoryStore()
        broken.list_range = AsyncMock(side_effect=StoreError("down"))
        with pytest.raises(DependencyUnavailable):
            await _extractor(broken).extract(make_event())
