"""Per-request correlation id and access logging."""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """Binds a request id for every log line emitted while serving the request.

    An upstream ``X-Request-ID`` is reused so a transaction can be traced
    across the gateway and the scoring service. 5xx answers log at warning
    level since they mean a transaction went unscored.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        log = logger.bind(method=request.method, path=request.url.path)

        started = time.perf_counter()
        with structlog.contextvars.bound_contextvars(request_id=request_id):
            try:
                response = await call_next(request)
            except Exception:
                log.exception("http_request_failed", duration_ms=_elapsed_ms(started))
                raise

            status = response.status_code
            emit = log.warning if status >= 500 else log.info
            emit("http_request", status_code=status, duration_ms=_elapsed_ms(started))

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
