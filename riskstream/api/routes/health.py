"""Health and readiness endpoints."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from riskstream.api.dependencies import get_store
from riskstream.config import settings
from riskstream.shared.store import KeyValueStore

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    from riskstream.main import get_uptime

    return {
        "status": "healthy",
        "version": settings.app_version,
        "uptime_seconds": get_uptime(),
    }


@router.get("/ready")
async def ready(store: KeyValueStore | None = Depends(get_store)) -> JSONResponse:  # noqa: B008
    store_ok = await store.ping() if store is not None else False

    return JSONResponse(
        status_code=200 if store_ok else 503,
        content={
            "status": "ready" if store_ok else "degraded",
            "store": store_ok,
        },
    )
