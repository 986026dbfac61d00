"""Deterministic weighted-feature model used when no trained model is wired in."""

from typing import Any

from .models import FeatureVector

MODEL_VERSION = "heuristic-v1"


def _unusual_hour(hour: int) -> bool:
    return hour < 6 or hour > 22


class HeuristicModelManager:
    """Additive risk weights over the feature vector.

    The risk score and the fraud probability come from the same weighted sum,
    capped at 1.0, so the classifier tiers follow the explanation strings.
    """

    def predict(self, features: FeatureVector) -> dict[str, Any]:
        score = 0.0

        # Amount
        if features.transaction_amount > 1000:
            score += 0.2
        if features.transaction_amount > 5000:
            score += 0.3

        # Frequency
        if features.transaction_frequency > 20:
            score += 0.15
        if features.transaction_frequency > 50:
            score += 0.25

        if _unusual_hour(features.time_of_day):
            score += 0.1

        score += features.prior_fraud_score * 0.4
        score += features.velocity_score / 100 * 0.3
        score += features.geolocation_risk * 0.2
        score += features.network_risk * 0.2

        probability = round(min(score, 1.0), 4)
        return {
            "risk_score": round(probability * 100, 2),
            "fraud_probability": probability,
            "explanation": self._explain(features, probability),
            "model_version": MODEL_VERSION,
        }

    def _explain(self, features: FeatureVector, probability: float) -> list[str]:
        reasons: list[str] = []
        if features.transaction_amount > 5000:
            reasons.append("High transaction amount detected")
        if features.transaction_frequency > 50:
            reasons.append("Unusually high transaction frequency")
        if _unusual_hour(features.time_of_day):
            reasons.append("Transaction made during unusual hours")
        if features.prior_fraud_score > 0.5:
            reasons.append("Previous fraud history detected")
        if features.velocity_score > 70:
            reasons.append("High velocity transaction pattern")
        if features.geolocation_risk > 0.7:
            reasons.append("High-risk geographic location")
        if features.network_risk > 0.8:
            reasons.append("Suspicious network activity detected")

        if probability >= 0.8:
            reasons.append("Multiple risk factors detected")
        elif probability >= 0.5:
            reasons.append("Some risk factors present")
        else:
            reasons.append("Low risk transaction")
        return reasons
