"""Adapter between the pipeline and the external model manager.

The adapter never guesses: a failed, slow, or malformed model answer fails
the analysis with ``DependencyUnavailable`` (or its ``PredictionInvalid``
subclass) instead of substituting a score.
"""

import asyncio
import inspect
import math
import time
from collections.abc import Mapping
from typing import Any, Protocol

import structlog

from .errors import DependencyUnavailable, PredictionInvalid
from .models import FeatureVector, RiskPrediction

logger = structlog.get_logger()


class ModelManager(Protocol):
    """Returns a mapping with ``risk_score``, ``fraud_probability`` and
    optionally ``explanation`` and ``model_version``. camelCase keys are
    accepted as well."""

    def predict(self, features: FeatureVector) -> Mapping[str, Any]: ...


def _field(raw: Mapping[str, Any], name: str) -> Any:
    if name in raw:
        return raw[name]
    head, *rest = name.split("_")
    camel = head + "".join(part.title() for part in rest)
    return raw.get(camel)


def _number(raw: Mapping[str, Any], name: str) -> float:
    value = _field(raw, name)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise PredictionInvalid(f"{name} missing or not numeric: {value!r}")
    value = float(value)
    if not math.isfinite(value):
        raise PredictionInvalid(f"{name} is not finite: {value!r}")
    return value


class RiskPredictor:
    def __init__(self, model: ModelManager, timeout_seconds: float = 2.0) -> None:
        self._model = model
        self._timeout = timeout_seconds

    async def predict(self, features: FeatureVector) -> RiskPrediction:
        start = time.perf_counter()
        try:
            if inspect.iscoroutinefunction(self._model.predict):
                call = self._model.predict(features)
            else:
                # Synchronous models run off the event loop
                call = asyncio.to_thread(self._model.predict, features)
            raw = await asyncio.wait_for(call, timeout=self._timeout)
        except TimeoutError as exc:
            logger.warning("model_prediction_timeout", timeout_seconds=self._timeout)
            raise DependencyUnavailable(
                "model_manager", f"prediction timed out after {self._timeout}s"
            ) from exc
        except Exception as exc:
            logger.warning("model_prediction_failed", error=str(exc))
            raise DependencyUnavailable("model_manager", f"prediction failed: {exc}") from exc
        latency_ms = round((time.perf_counter() - start) * 1000, 3)

        if not isinstance(raw, Mapping):
            raise PredictionInvalid(f"model returned {type(raw).__name__}, expected a mapping")

        probability = _number(raw, "fraud_probability")
        if not 0.0 <= probability <= 1.0:
            logger.error("model_probability_out_of_bounds", fraud_probability=probability)
            raise PredictionInvalid(f"fraud_probability {probability} outside [0, 1]")

        explanation = _field(raw, "explanation") or []
        if isinstance(explanation, str) or not isinstance(explanation, (list, tuple)):
            raise PredictionInvalid(f"explanation must be a list, got {type(explanation).__name__}")

        return RiskPrediction(
            risk_score=_number(raw, "risk_score"),
            fraud_probability=probability,
            explanation=[str(reason) for reason in explanation],
            model_version=str(_field(raw, "model_version") or "unknown"),
            latency_ms=latency_ms,
        )
