"""FastAPI application entry point for riskstream."""

import asyncio
import contextlib
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from riskstream.api.middleware.error_handler import (
    global_exception_handler,
    risk_pipeline_exception_handler,
)
from riskstream.api.middleware.logging import StructuredLoggingMiddleware
from riskstream.api.routes.health import router as health_router
from riskstream.api.routes.risk import router as risk_router
from riskstream.api.routes.stream import router as stream_router
from riskstream.config import settings
from riskstream.domains.risk.config import RiskConfig
from riskstream.domains.risk.dispatcher import RealTimeDispatcher
from riskstream.domains.risk.errors import RiskPipelineError
from riskstream.domains.risk.heuristic_model import HeuristicModelManager
from riskstream.shared.logging import setup_logging
from riskstream.shared.store import RedisStore

logger = structlog.get_logger()

# Track app start time for uptime calculation
APP_START_TIME: float = 0.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup and shutdown logic."""
    global APP_START_TIME
    APP_START_TIME = time.time()
    setup_logging(settings.log_level)

    logger.info(
        "riskstream_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
    )

    store = RedisStore.from_url(settings.redis_url)
    dispatcher = RealTimeDispatcher(
        store=store,
        model=HeuristicModelManager(),
        config=RiskConfig.from_env(),
    )
    app.state.store = store
    app.state.dispatcher = dispatcher
    await dispatcher.start()

    # Kafka ingress/egress is optional; the HTTP and WebSocket paths work without it
    producer = None
    forwarder = None
    consumer = None
    consumer_task: asyncio.Task | None = None
    if settings.kafka_enabled:
        try:
            from riskstream.consumers.transaction_consumer import TransactionConsumer
            from riskstream.shared.kafka_utils import AlertForwarder, create_producer

            producer = await create_producer(settings.kafka_bootstrap_servers)
            forwarder = AlertForwarder(dispatcher.broker, producer, settings.kafka_alert_topic)
            forwarder.start()

            consumer = TransactionConsumer(
                dispatcher=dispatcher,
                bootstrap_servers=settings.kafka_bootstrap_servers,
                topic=settings.kafka_transaction_topic,
                group_id=settings.kafka_consumer_group,
            )
            consumer_task = asyncio.create_task(consumer.start())
            logger.info("kafka_bridge_started", topic=settings.kafka_transaction_topic)
        except Exception:
            logger.warning("kafka_bridge_failed_to_start", exc_info=True)

    yield

    if consumer is not None:
        with contextlib.suppress(Exception):
            await consumer.stop()
    if consumer_task is not None:
        consumer_task.cancel()
    if forwarder is not None:
        await forwarder.stop()
    if producer is not None:
        with contextlib.suppress(Exception):
            await producer.stop()
    await dispatcher.stop()
    await store.close()
    logger.info("riskstream_shutting_down")


app = FastAPI(
    title="riskstream",
    description="Real-time transaction risk scoring service",
    version=settings.app_version,
    lifespan=lifespan,
)

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Structured logging middleware
app.add_middleware(StructuredLoggingMiddleware)

# Exception handlers
app.add_exception_handler(RiskPipelineError, risk_pipeline_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# Register routers
app.include_router(health_router)
app.include_router(risk_router)
app.include_router(stream_router)


def get_uptime() -> int:
    """Get application uptime in seconds."""
    if APP_START_TIME == 0.0:
        return 0
    return int(time.time() - APP_START_TIME)
