"""Unit tests for the bounded alert history."""

from datetime import timedelta

from riskstream.domains.risk.history import AlertHistory
from riskstream.domains.risk.models import FraudAlert, Recommendation, RiskLevel
from tests.conftest import NOW


def _alert(n: int, minutes_ago: int = 0) -> FraudAlert:
    return FraudAlert(
        alert_id=f"alert_{n}",
        transaction_id=f"txn-{n}",
        user_id="user-1",
        risk_score=10.0,
        fraud_probability=0.1,
        risk_level=RiskLevel.LOW,
        recommendation=Recommendation.APPROVE,
        timestamp=NOW - timedelta(minutes=minutes_ago),
        processing_time_ms=1.0,
    )


class TestAlertHistory:
    def test_most_recent_first(self):
        history = AlertHistory(max_size=10)
        for i in range(3):
            history.append(_alert(i))
        assert [a.alert_id for a in history.recent()] == ["alert_2", "alert_1", "alert_0"]

    def test_evicts_oldest(self):
        history = AlertHistory(max_size=1000)
        for i in range(1001):
            history.append(_alert(i))
        assert len(history) == 1000
        ids = {a.alert_id for a in history.recent()}
        assert "alert_0" not in ids
        assert "alert_1000" in ids

    def test_limit(self):
        history = AlertHistory(max_size=10)
        for i in range(5):
            history.append(_alert(i))
        assert [a.alert_id for a in history.recent(2)] == ["alert_4", "alert_3"]

    def test_since_is_exclusive(self):
        history = AlertHistory()
        history.append(_alert(1, minutes_ago=60))
        history.append(_alert(2, minutes_ago=30))
        cutoff = NOW - timedelta(minutes=60)
        assert [a.alert_id for a in history.since(cutoff)] == ["alert_2"]

    def test_recent_returns_copy(self):
        history = AlertHistory()
        history.append(_alert(1))
        history.recent().clear()
        assert len(history) == 1

    def test_max_size(self):
        assert AlertHistory(max_size=7).max_size == 7
