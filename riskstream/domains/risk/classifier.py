"""Map a fraud probability to a risk tier and recommended action."""

from .config import ClassifierThresholds
from .models import Recommendation, RiskLevel

_TIER_RECOMMENDATIONS = {
    RiskLevel.LOW: Recommendation.APPROVE,
    RiskLevel.MEDIUM: Recommendation.REVIEW,
    RiskLevel.HIGH: Recommendation.BLOCK,
}


def classify(
    fraud_probability: float, thresholds: ClassifierThresholds | None = None
) -> tuple[RiskLevel, Recommendation]:
    """Lower bounds are inclusive: exactly ``high`` is HIGH, exactly ``medium`` is MEDIUM."""
    t = thresholds or ClassifierThresholds()
    if fraud_probability >= t.high:
        level = RiskLevel.HIGH
    elif fraud_probability >= t.medium:
        level = RiskLevel.MEDIUM
    else:
        level = RiskLevel.LOW
    return level, _TIER_RECOMMENDATIONS[level]
