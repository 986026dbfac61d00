"""Unit tests for probability-to-tier classification."""

import pytest

from riskstream.domains.risk.classifier import classify
from riskstream.domains.risk.config import ClassifierThresholds
from riskstream.domains.risk.models import Recommendation, RiskLevel

ORDER = {RiskLevel.LOW: 0, RiskLevel.MEDIUM: 1, RiskLevel.HIGH: 2}


class TestClassify:
    @pytest.mark.parametrize(
        "probability,level,recommendation",
        [
            (0.0, RiskLevel.LOW, Recommendation.APPROVE),
            (0.49, RiskLevel.LOW, Recommendation.APPROVE),
            (0.5, RiskLevel.MEDIUM, Recommendation.REVIEW),
            (0.79, RiskLevel.MEDIUM, Recommendation.REVIEW),
            (0.8, RiskLevel.HIGH, Recommendation.BLOCK),
            (0.81, RiskLevel.HIGH, Recommendation.BLOCK),
            (1.0, RiskLevel.HIGH, Recommendation.BLOCK),
        ],
    )
    def test_tiers(self, probability, level, recommendation):
        assert classify(probability) == (level, recommendation)

    def test_monotonic_in_probability(self):
        previous = RiskLevel.LOW
        for step in range(101):
            level, _ = classify(step / 100)
            assert ORDER[level] >= ORDER[previous]
            previous = level

    def test_recommendation_follows_tier(self):
        for step in range(101):
            level, recommendation = classify(step / 100)
            expected = {
                RiskLevel.LOW: Recommendation.APPROVE,
                RiskLevel.MEDIUM: Recommendation.REVIEW,
                RiskLevel.HIGH: Recommendation.BLOCK,
            }[level]
            assert recommendation == expected

    def test_custom_thresholds(self):
        thresholds = ClassifierThresholds(high=0.9, medium=0.3)
        assert classify(0.85, thresholds)[0] == RiskLevel.MEDIUM
        assert classify(0.3, thresholds)[0] == RiskLevel.MEDIUM
        assert classify(0.29, thresholds)[0] == RiskLevel.LOW
        assert classify(0.9, thresholds)[0] == RiskLevel.HIGH


class TestClassifierThresholds:
    def test_defaults(self):
        thresholds = ClassifierThresholds()
        assert thresholds.high == 0.8
        assert thresholds.medium == 0.5

    def test_medium_above_high_rejected(self):
        with pytest.raises(ValueError):
            ClassifierThresholds(high=0.4, medium=0.6)

    def test_out_of_unit_interval_rejected(self):
        with pytest.raises(ValueError):
            ClassifierThresholds(high=1.2, medium=0.5)
