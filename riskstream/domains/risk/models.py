"""Pydantic models for the risk scoring pipeline."""

from datetime import UTC, datetime
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .errors import InputError


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class RiskLevel(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Recommendation(StrEnum):
    APPROVE = "APPROVE"
    REVIEW = "REVIEW"
    BLOCK = "BLOCK"


class GeoLocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    country: str | None = None


class TransactionEvent(BaseModel):
    """Inbound transaction. Accepts snake_case or camelCase field names."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    transaction_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    amount: Decimal = Field(gt=0)
    currency: str = "USD"
    merchant_id: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    device_fingerprint: str | None = None
    ip_address: str | None = None
    geolocation: GeoLocation | None = None

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @property
    def amount_float(self) -> float:
        return float(self.amount)


def parse_transaction(payload: dict) -> TransactionEvent:
    """Validate a raw payload, raising InputError instead of ValidationError."""
    try:
        return TransactionEvent.model_validate(payload)
    except ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        raise InputError(f"Invalid transaction event: {', '.join(fields)}") from exc


class FeatureVector(BaseModel):
    """Fixed-shape model input. Every field is required."""

    model_config = ConfigDict(frozen=True)

    transaction_amount: float
    transaction_frequency: int = Field(ge=0)
    time_of_day: int = Field(ge=0, le=23)
    day_of_week: int = Field(ge=0, le=6)
    merchant_category: int
    user_age: int
    account_age: int = Field(ge=0)
    prior_fraud_score: float
    velocity_score: float = Field(ge=0.0, le=100.0)
    device_risk: float = Field(ge=0.0, le=1.0)
    geolocation_risk: float = Field(ge=0.0, le=1.0)
    network_risk: float = Field(ge=0.0, le=1.0)


class RiskPrediction(BaseModel):
    risk_score: float
    fraud_probability: float = Field(ge=0.0, le=1.0)
    explanation: list[str] = Field(default_factory=list)
    model_version: str = "unknown"
    latency_ms: float = 0.0


class FraudAlert(BaseModel):
    """Per-transaction decision. Created once, never mutated."""

    model_config = ConfigDict(frozen=True)

    alert_id: str
    transaction_id: str
    user_id: str
    risk_score: float
    fraud_probability: float = Field(ge=0.0, le=1.0)
    risk_level: RiskLevel
    recommendation: Recommendation
    explanation: list[str] = Field(default_factory=list)
    timestamp: datetime
    processing_time_ms: float = Field(ge=0.0)


class VelocityEntry(BaseModel):
    transaction_id: str
    amount: float
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return _as_utc(value)


class StatsSummary(BaseModel):
    total_transactions: int = 0
    recent_transactions: int = 0
    high_risk_count: int = 0
    medium_risk_count: int = 0
    low_risk_count: int = 0
    blocked_count: int = 0
    review_count: int = 0
    approved_count: int = 0
    average_processing_time_ms: float = 0.0
    fraud_rate: float = 0.0
    window_seconds: int
    timestamp: datetime


class HourlyBucket(BaseModel):
    hour: datetime
    counts: dict[str, int] = Field(default_factory=dict)
