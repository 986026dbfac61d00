"""Risk pipeline configuration with sensible defaults."""

import os
from dataclasses import dataclass, field


@dataclass
class ClassifierThresholds:
    """Probability cut-offs. Lower bounds are inclusive: 0.8 is HIGH, 0.5 is MEDIUM."""

    high: float = 0.8
    medium: float = 0.5

    def __post_init__(self) -> None:
        if not 0.0 <= self.medium <= self.high <= 1.0:
            raise ValueError(
                f"Thresholds must satisfy 0 <= medium <= high <= 1, "
                f"got medium={self.medium}, high={self.high}"
            )


@dataclass
class VelocitySettings:
    window_hours: int = 24
    max_entries: int = 100
    # Idle users fall out of the store after this long
    key_ttl_seconds: int = 7 * 24 * 3600
    frequency_weight: float = 10.0
    amount_divisor: float = 1000.0
    score_cap: float = 100.0


@dataclass
class NeutralDefaults:
    """Substituted when a lookup misses or the input field is absent."""

    merchant_category: int = 1
    user_age: int = 30
    account_age_days: int = 0
    prior_fraud_score: float = 0.0
    device_risk: float = 0.7
    geolocation_risk: float = 0.5
    network_risk: float = 0.5


@dataclass
class SignalSettings:
    high_risk_countries: tuple[str, ...] = ("KP", "IR", "SY", "CU")
    home_countries: tuple[str, ...] = ("US",)
    suspicious_ips: tuple[str, ...] = ()


@dataclass
class CacheSettings:
    alert_ttl_seconds: int = 3600
    bucket_ttl_seconds: int = 24 * 3600


@dataclass
class DispatcherSettings:
    worker_count: int = 4
    queue_size: int = 10_000
    stats_interval_seconds: float = 5.0
    history_size: int = 1000
    snapshot_window_seconds: int = 3600
    predictor_timeout_seconds: float = 2.0


@dataclass
class RiskConfig:
    thresholds: ClassifierThresholds = field(default_factory=ClassifierThresholds)
    velocity: VelocitySettings = field(default_factory=VelocitySettings)
    defaults: NeutralDefaults = field(default_factory=NeutralDefaults)
    signals: SignalSettings = field(default_factory=SignalSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    dispatcher: DispatcherSettings = field(default_factory=DispatcherSettings)

    @classmethod
    def from_env(cls) -> "RiskConfig":
        """Load config with env var overrides. Env vars use RISK_ prefix."""
        config = cls()

        # Thresholds are re-validated as a pair
        high = os.getenv("RISK_HIGH_THRESHOLD")
        medium = os.getenv("RISK_MEDIUM_THRESHOLD")
        if high or medium:
            config.thresholds = ClassifierThresholds(
                high=float(high) if high else config.thresholds.high,
                medium=float(medium) if medium else config.thresholds.medium,
            )

        if v := os.getenv("RISK_VELOCITY_MAX_ENTRIES"):
            config.velocity.max_entries = int(v)
        if v := os.getenv("RISK_VELOCITY_WINDOW_HOURS"):
            config.velocity.window_hours = int(v)

        if v := os.getenv("RISK_ALERT_TTL_SECONDS"):
            config.cache.alert_ttl_seconds = int(v)
        if v := os.getenv("RISK_BUCKET_TTL_SECONDS"):
            config.cache.bucket_ttl_seconds = int(v)

        if v := os.getenv("RISK_WORKER_COUNT"):
            config.dispatcher.worker_count = int(v)
        if v := os.getenv("RISK_QUEUE_SIZE"):
            config.dispatcher.queue_size = int(v)
        if v := os.getenv("RISK_STATS_INTERVAL_SECONDS"):
            config.dispatcher.stats_interval_seconds = float(v)
        if v := os.getenv("RISK_HISTORY_SIZE"):
            config.dispatcher.history_size = int(v)
        if v := os.getenv("RISK_PREDICTOR_TIMEOUT_SECONDS"):
            config.dispatcher.predictor_timeout_seconds = float(v)

        if v := os.getenv("RISK_HIGH_RISK_COUNTRIES"):
            config.signals.high_risk_countries = tuple(
                c.strip().upper() for c in v.split(",") if c.strip()
            )
        if v := os.getenv("RISK_SUSPICIOUS_IPS"):
            config.signals.suspicious_ips = tuple(ip.strip() for ip in v.split(",") if ip.strip())

        return config


# Module-level default instance
default_config = RiskConfig()
