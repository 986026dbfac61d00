"""Global exception handling."""

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse

from riskstream.domains.risk.errors import (
    DependencyUnavailable,
    InputError,
    QueueFullError,
    RiskPipelineError,
)

logger = structlog.get_logger()


async def risk_pipeline_exception_handler(request: Request, exc: RiskPipelineError) -> JSONResponse:
    """Pipeline failures are never reported as a risk tier."""
    request_id = getattr(request.state, "request_id", "unknown")

    if isinstance(exc, InputError):
        logger.warning("invalid_transaction", request_id=request_id, error=str(exc))
        return JSONResponse(
            status_code=400,
            content={"error": "invalid_transaction", "message": str(exc), "request_id": request_id},
        )

    if isinstance(exc, DependencyUnavailable):
        logger.warning(
            "scoring_unavailable",
            request_id=request_id,
            dependency=exc.dependency,
            error=str(exc),
        )
        return JSONResponse(
            status_code=503,
            content={
                "error": "scoring_unavailable",
                "dependency": exc.dependency,
                "message": str(exc),
                "request_id": request_id,
            },
        )

    if isinstance(exc, QueueFullError):
        logger.warning("queue_full", request_id=request_id, error=str(exc))
        return JSONResponse(
            status_code=503,
            content={"error": "queue_full", "message": str(exc), "request_id": request_id},
            headers={"Retry-After": "1"},
        )

    logger.error("pipeline_error", request_id=request_id, error=str(exc))
    return JSONResponse(
        status_code=500,
        content={"error": "pipeline_error", "message": str(exc), "request_id": request_id},
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")

    if isinstance(exc, ValueError):
        logger.warning("bad_request", request_id=request_id, error=str(exc))
        return JSONResponse(
            status_code=400,
            content={"error": "bad_request", "message": str(exc), "request_id": request_id},
        )

    if isinstance(exc, (KeyError, LookupError)):
        logger.warning("not_found", request_id=request_id, error=str(exc))
        return JSONResponse(
            status_code=404,
            content={"error": "not_found", "message": str(exc), "request_id": request_id},
        )

    logger.exception("unhandled_exception", request_id=request_id, error=str(exc))
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred",
            "request_id": request_id,
        },
    )
