"""Shared test fixtures for riskstream tests."""

import os
import threading
import time
from datetime import UTC, datetime

import pytest

from riskstream.domains.risk.config import DispatcherSettings, RiskConfig
from riskstream.domains.risk.dispatcher import RealTimeDispatcher
from riskstream.domains.risk.models import FeatureVector, TransactionEvent
from riskstream.shared.store import InMemoryStore

os.environ.setdefault("REDIS_URL", "redis://localhost:6379/1")

NOW = datetime(2026, 1, 15, 14, 0, 0, tzinfo=UTC)


class FixedModel:
    """Always answers the same probability and records the features it saw."""

    def __init__(self, probability: float, explanation: list[str] | None = None) -> None:
        self.probability = probability
        self.explanation = explanation if explanation is not None else ["stubbed"]
        self.calls: list[FeatureVector] = []
        self._lock = threading.Lock()

    def predict(self, features: FeatureVector) -> dict:
        with self._lock:
            self.calls.append(features)
        return {
            "risk_score": round(self.probability * 100, 2),
            "fraud_probability": self.probability,
            "explanation": list(self.explanation),
            "model_version": "stub-1",
        }


class SlowModel:
    def __init__(self, delay_seconds: float) -> None:
        self.delay_seconds = delay_seconds

    def predict(self, features: FeatureVector) -> dict:
        time.sleep(self.delay_seconds)
        return {"risk_score": 10.0, "fraud_probability": 0.1}


class FailingModel:
    def predict(self, features: FeatureVector) -> dict:
        raise RuntimeError("model backend offline")


class RawModel:
    """Returns whatever it was given, for response-shape validation tests."""

    def __init__(self, response) -> None:
        self.response = response

    def predict(self, features: FeatureVector):
        return self.response


class FixedClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def make_event(**kwargs) -> TransactionEvent:
    defaults = {
        "transaction_id": "txn-1",
        "user_id": "user-1",
        "amount": "50.00",
        "timestamp": NOW,
    }
    defaults.update(kwargs)
    return TransactionEvent(**defaults)


def make_features(**kwargs) -> FeatureVector:
    defaults = {
        "transaction_amount": 50.0,
        "transaction_frequency": 0,
        "time_of_day": 14,
        "day_of_week": 4,
        "merchant_category": 1,
        "user_age": 30,
        "account_age": 0,
        "prior_fraud_score": 0.0,
        "velocity_score": 0.0,
        "device_risk": 0.7,
        "geolocation_risk": 0.5,
        "network_risk": 0.5,
    }
    defaults.update(kwargs)
    return FeatureVector(**defaults)


def make_config(**dispatcher_overrides) -> RiskConfig:
    settings = {"predictor_timeout_seconds": 10.0, "stats_interval_seconds": 0.05}
    settings.update(dispatcher_overrides)
    return RiskConfig(dispatcher=DispatcherSettings(**settings))


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def make_dispatcher(store, clock):
    def _make(model, config: RiskConfig | None = None, **kwargs) -> RealTimeDispatcher:
        return RealTimeDispatcher(
            store=store,
            model=model,
            config=config or make_config(),
            clock=clock,
            **kwargs,
        )

    return _make
