"""Error taxonomy for the risk scoring pipeline.

Every error here is fatal to the single transaction being analyzed and is
surfaced to its caller. None of them is ever converted into a risk tier: a
transaction that could not be scored is never reported as LOW risk.
"""


class RiskPipelineError(Exception):
    """Base class for all pipeline failures."""


class InputError(RiskPipelineError, ValueError):
    """The transaction event is missing or has malformed required fields."""


class DependencyUnavailable(RiskPipelineError):
    """An external collaborator (store, cache, model) failed or timed out."""

    def __init__(self, dependency: str, message: str = "") -> None:
        self.dependency = dependency
        super().__init__(message or f"{dependency} unavailable")


class PredictionInvalid(DependencyUnavailable):
    """The model manager answered with an out-of-bounds or malformed prediction."""

    def __init__(self, message: str) -> None:
        super().__init__("model_manager", message)


class QueueFullError(RiskPipelineError):
    """The background analysis queue is at capacity."""
