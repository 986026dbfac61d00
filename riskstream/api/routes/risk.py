"""Transaction risk analysis endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query

from riskstream.api.dependencies import get_dispatcher
from riskstream.domains.risk.dispatcher import RealTimeDispatcher
from riskstream.domains.risk.models import TransactionEvent

router = APIRouter(prefix="/api/v1/risk", tags=["risk"])


@router.post("/analyze")
async def analyze_transaction(
    transaction: TransactionEvent,
    dispatcher: RealTimeDispatcher = Depends(get_dispatcher),  # noqa: B008
) -> dict:
    alert = await dispatcher.analyze(transaction)
    return alert.model_dump(mode="json")


@router.post("/enqueue", status_code=202)
async def enqueue_transaction(
    transaction: TransactionEvent,
    dispatcher: RealTimeDispatcher = Depends(get_dispatcher),  # noqa: B008
) -> dict:
    dispatcher.enqueue(transaction)
    return {
        "status": "queued",
        "transaction_id": transaction.transaction_id,
        "queue_depth": dispatcher.queue_depth,
    }


@router.get("/results/{transaction_id}")
async def get_result(
    transaction_id: str,
    dispatcher: RealTimeDispatcher = Depends(get_dispatcher),  # noqa: B008
) -> dict:
    alert = await dispatcher.get_result(transaction_id)
    if alert is None:
        raise HTTPException(status_code=404, detail=f"No cached result for {transaction_id}")
    return alert.model_dump(mode="json")


@router.get("/alerts")
async def list_alerts(
    dispatcher: RealTimeDispatcher = Depends(get_dispatcher),  # noqa: B008
    limit: int = Query(default=100, ge=1, le=1000),
    risk_level: str | None = Query(default=None, pattern="^(LOW|MEDIUM|HIGH)$"),
) -> dict:
    alerts = dispatcher.recent_alerts(limit=dispatcher.history.max_size)
    if risk_level:
        alerts = [a for a in alerts if a.risk_level.value == risk_level]
    items = alerts[:limit]
    return {
        "items": [a.model_dump(mode="json") for a in items],
        "count": len(items),
        "limit": limit,
    }


@router.get("/stats")
async def get_stats(
    dispatcher: RealTimeDispatcher = Depends(get_dispatcher),  # noqa: B008
    window_minutes: int = Query(default=60, ge=1, le=24 * 60),
) -> dict:
    return dispatcher.current_stats(window_seconds=window_minutes * 60).model_dump(mode="json")


@router.get("/stats/hourly")
async def get_hourly_stats(
    dispatcher: RealTimeDispatcher = Depends(get_dispatcher),  # noqa: B008
    hours: int = Query(default=24, ge=1, le=24),
) -> dict:
    buckets = await dispatcher.hourly_stats(hours=hours)
    return {"buckets": [b.model_dump(mode="json") for b in buckets], "hours": hours}


@router.get("/config/thresholds")
async def get_thresholds(
    dispatcher: RealTimeDispatcher = Depends(get_dispatcher),  # noqa: B008
) -> dict:
    thresholds = dispatcher.config.thresholds
    return {
        "high": thresholds.high,
        "medium": thresholds.medium,
        "inclusive_lower_bounds": True,
        "tiers": {
            "HIGH": {"min_probability": thresholds.high, "recommendation": "BLOCK"},
            "MEDIUM": {"min_probability": thresholds.medium, "recommendation": "REVIEW"},
            "LOW": {"min_probability": 0.0, "recommendation": "APPROVE"},
        },
    }
