"""Real-time transaction risk scoring domain."""

from .alert_cache import AlertCache
from .classifier import classify
from .config import RiskConfig, default_config
from .dispatcher import RealTimeDispatcher
from .errors import (
    DependencyUnavailable,
    InputError,
    PredictionInvalid,
    QueueFullError,
    RiskPipelineError,
)
from .feature_extractor import FeatureExtractor
from .heuristic_model import HeuristicModelManager
from .history import AlertHistory
from .models import (
    FeatureVector,
    FraudAlert,
    Recommendation,
    RiskLevel,
    RiskPrediction,
    StatsSummary,
    TransactionEvent,
)
from .predictor import ModelManager, RiskPredictor
from .pubsub import TOPIC_HIGH_RISK, TOPIC_RESULTS, TOPIC_STATS, Broker
from .statistics import StatisticsAggregator
from .velocity import VelocityStore

__all__ = [
    "TOPIC_HIGH_RISK",
    "TOPIC_RESULTS",
    "TOPIC_STATS",
    "AlertCache",
    "AlertHistory",
    "Broker",
    "DependencyUnavailable",
    "FeatureExtractor",
    "FeatureVector",
    "FraudAlert",
    "HeuristicModelManager",
    "InputError",
    "ModelManager",
    "PredictionInvalid",
    "QueueFullError",
    "RealTimeDispatcher",
    "Recommendation",
    "RiskConfig",
    "RiskLevel",
    "RiskPipelineError",
    "RiskPrediction",
    "RiskPredictor",
    "StatisticsAggregator",
    "StatsSummary",
    "TransactionEvent",
    "VelocityStore",
    "classify",
    "default_config",
]
