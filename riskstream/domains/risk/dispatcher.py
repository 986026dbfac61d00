"""Real-time dispatcher: runs the scoring pipeline and fans out results.

Per-transaction flow:
    received -> features_extracted -> scored -> classified -> recorded -> published

Recording writes the velocity entry and the hourly bucket before the alert
cache entry, which commits the decision. A failure before the commit leaves
no cached alert, so a retry runs the pipeline again.

Any failure ends the transaction in the errored state and is raised to the
caller. Nothing is retried here; callers retry externally if they want to.
"""

import asyncio
import time
import uuid
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from enum import StrEnum
from functools import partial

import structlog

from riskstream.shared.store import KeyValueStore

from .alert_cache import AlertCache
from .classifier import classify
from .config import RiskConfig, default_config
from .errors import InputError, QueueFullError, RiskPipelineError
from .feature_extractor import FeatureExtractor
from .history import AlertHistory
from .lookups import FraudHistoryLookup, MerchantCatalog, StoreFraudHistory, UserProfileLookup
from .models import (
    FraudAlert,
    HourlyBucket,
    RiskLevel,
    StatsSummary,
    TransactionEvent,
    VelocityEntry,
    parse_transaction,
)
from .predictor import ModelManager, RiskPredictor
from .pubsub import TOPIC_HIGH_RISK, TOPIC_RESULTS, TOPIC_STATS, Broker
from .statistics import StatisticsAggregator
from .velocity import VelocityStore

logger = structlog.get_logger()


class AnalysisStage(StrEnum):
    RECEIVED = "received"
    FEATURES_EXTRACTED = "features_extracted"
    SCORED = "scored"
    CLASSIFIED = "classified"
    RECORDED = "recorded"
    PUBLISHED = "published"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RealTimeDispatcher:
    """Orchestrates concurrent analyses, the backlog worker pool and stats emission.

    Analyses for different transactions never share a lock. Concurrent
    requests for the same transaction id join one in-flight task, and a
    transaction already in the alert cache is answered from the cache rather
    than re-scored (re-scoring would count the transaction in its own velocity
    window). Once the cache entry expires the next request is a fresh analysis.
    """

    def __init__(
        self,
        store: KeyValueStore,
        model: ModelManager,
        config: RiskConfig | None = None,
        broker: Broker | None = None,
        merchant_catalog: MerchantCatalog | None = None,
        profiles: UserProfileLookup | None = None,
        fraud_history: FraudHistoryLookup | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config or default_config
        cfg = self._config
        self._clock = clock

        self._velocity = VelocityStore(store, cfg.velocity)
        self._extractor = FeatureExtractor(
            velocity_store=self._velocity,
            fraud_history=fraud_history or StoreFraudHistory(store),
            merchant_catalog=merchant_catalog,
            profiles=profiles,
            config=cfg,
        )
        self._predictor = RiskPredictor(model, cfg.dispatcher.predictor_timeout_seconds)
        self._cache = AlertCache(store, cfg.cache.alert_ttl_seconds)
        self._history = AlertHistory(cfg.dispatcher.history_size)
        self._stats = StatisticsAggregator(
            store,
            self._history,
            bucket_ttl_seconds=cfg.cache.bucket_ttl_seconds,
            default_window_seconds=cfg.dispatcher.snapshot_window_seconds,
        )
        self.broker = broker or Broker()

        self._queue: asyncio.Queue[TransactionEvent] = asyncio.Queue(
            maxsize=cfg.dispatcher.queue_size
        )
        self._in_flight: dict[str, asyncio.Task[FraudAlert]] = {}
        self._tasks: list[asyncio.Task] = []
        self._running = False

        self.processed_count = 0
        self.failed_count = 0

    @property
    def config(self) -> RiskConfig:
        return self._config

    @property
    def cache(self) -> AlertCache:
        return self._cache

    @property
    def history(self) -> AlertHistory:
        return self._history

    @property
    def statistics(self) -> StatisticsAggregator:
        return self._stats

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def queue_depth(self) -> int:
        return self._queue.qsize()

    # Lifecycle

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        for i in range(self._config.dispatcher.worker_count):
            self._tasks.append(asyncio.create_task(self._worker(f"worker-{i}")))
        self._tasks.append(asyncio.create_task(self._stats_loop()))
        logger.info(
            "dispatcher_started",
            worker_count=self._config.dispatcher.worker_count,
            queue_size=self._config.dispatcher.queue_size,
            stats_interval_seconds=self._config.dispatcher.stats_interval_seconds,
        )

    async def stop(self) -> None:
        self._running = False
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info(
            "dispatcher_stopped",
            processed_count=self.processed_count,
            failed_count=self.failed_count,
            queue_depth=self.queue_depth,
        )

    async def drain(self) -> None:
        """Wait until every queued transaction has been analyzed."""
        await self._queue.join()

    # Ingress

    async def analyze(self, transaction: TransactionEvent | Mapping) -> FraudAlert:
        event = self._coerce(transaction)
        txn_id = event.transaction_id

        # Registered before any await so a second request can never miss both
        # the in-flight task and the cache entry it commits
        task = self._in_flight.get(txn_id)
        if task is None:
            task = asyncio.create_task(self._analyze_once(event), name=f"analyze-{txn_id}")
            self._in_flight[txn_id] = task
            task.add_done_callback(partial(self._forget, txn_id))
        # Shielded so a departing caller does not abort recording
        return await asyncio.shield(task)

    def enqueue(self, transaction: TransactionEvent | Mapping) -> None:
        event = self._coerce(transaction)
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull as exc:
            logger.warning(
                "analysis_queue_full",
                transaction_id=event.transaction_id,
                queue_size=self._config.dispatcher.queue_size,
            )
            raise QueueFullError(
                f"analysis queue at capacity ({self._config.dispatcher.queue_size})"
            ) from exc
        logger.debug("transaction_enqueued", transaction_id=event.transaction_id)

    # Queries

    async def get_result(self, transaction_id: str) -> FraudAlert | None:
        return await self._cache.get(transaction_id)

    def recent_alerts(self, limit: int = 100) -> list[FraudAlert]:
        return self._history.recent(limit)

    def current_stats(self, window_seconds: int | None = None) -> StatsSummary:
        return self._stats.snapshot(window_seconds, now=self._clock())

    async def hourly_stats(self, hours: int = 24) -> list[HourlyBucket]:
        return await self._stats.hourly_buckets(hours, now=self._clock())

    # Pipeline

    def _coerce(self, transaction: TransactionEvent | Mapping) -> TransactionEvent:
        if isinstance(transaction, TransactionEvent):
            return transaction
        if isinstance(transaction, Mapping):
            return parse_transaction(dict(transaction))
        raise InputError(f"Unsupported transaction payload: {type(transaction).__name__}")

    def _forget(self, transaction_id: str, task: asyncio.Task) -> None:
        self._in_flight.pop(transaction_id, None)
        if not task.cancelled():
            # Marks the exception retrieved when every caller has gone away
            task.exception()

    async def _analyze_once(self, event: TransactionEvent) -> FraudAlert:
        cached = await self._cache.get(event.transaction_id)
        if cached is not None:
            logger.info(
                "analysis_cache_hit",
                transaction_id=event.transaction_id,
                alert_id=cached.alert_id,
            )
            return cached
        return await self._run_pipeline(event)

    async def _run_pipeline(self, event: TransactionEvent) -> FraudAlert:
        log = logger.bind(transaction_id=event.transaction_id, user_id=event.user_id)
        start = time.perf_counter()
        stage = AnalysisStage.RECEIVED

        try:
            features = await self._extractor.extract(event)
            stage = AnalysisStage.FEATURES_EXTRACTED

            prediction = await self._predictor.predict(features)
            stage = AnalysisStage.SCORED

            risk_level, recommendation = classify(
                prediction.fraud_probability, self._config.thresholds
            )
            stage = AnalysisStage.CLASSIFIED

            alert = FraudAlert(
                alert_id=f"alert_{uuid.uuid4().hex}",
                transaction_id=event.transaction_id,
                user_id=event.user_id,
                risk_score=prediction.risk_score,
                fraud_probability=prediction.fraud_probability,
                risk_level=risk_level,
                recommendation=recommendation,
                explanation=prediction.explanation,
                timestamp=self._clock(),
                processing_time_ms=round((time.perf_counter() - start) * 1000, 3),
            )

            await self._velocity.append(
                event.user_id,
                VelocityEntry(
                    transaction_id=event.transaction_id,
                    amount=event.amount_float,
                    timestamp=event.timestamp,
                ),
            )
            await self._stats.record(alert)
            # The cache entry commits the decision; retries short-circuit on it
            await self._cache.put(event.transaction_id, alert)
            self._history.append(alert)
            stage = AnalysisStage.RECORDED
        except RiskPipelineError as exc:
            self.failed_count += 1
            log.warning(
                "transaction_analysis_failed",
                failed_after=stage.value,
                error_type=type(exc).__name__,
                dependency=getattr(exc, "dependency", None),
                error=str(exc),
            )
            raise
        except Exception:
            self.failed_count += 1
            log.exception("transaction_analysis_error", failed_after=stage.value)
            raise

        self.processed_count += 1
        try:
            if alert.risk_level == RiskLevel.HIGH:
                delivered = self.broker.publish(TOPIC_HIGH_RISK, alert)
                log.warning(
                    "high_risk_alert_broadcast",
                    alert_id=alert.alert_id,
                    fraud_probability=alert.fraud_probability,
                    subscribers=delivered,
                )
            stage = AnalysisStage.PUBLISHED
        except Exception:
            # Already committed; subscribers miss this one, the caller still gets it
            log.exception("high_risk_broadcast_failed", failed_after=stage.value)

        log.info(
            "transaction_analyzed",
            alert_id=alert.alert_id,
            risk_level=alert.risk_level.value,
            recommendation=alert.recommendation.value,
            fraud_probability=alert.fraud_probability,
            processing_time_ms=alert.processing_time_ms,
            model_latency_ms=prediction.latency_ms,
            stage=stage.value,
        )
        return alert

    # Background

    async def _worker(self, name: str) -> None:
        while self._running:
            event = await self._queue.get()
            try:
                alert = await self.analyze(event)
                self.broker.publish(TOPIC_RESULTS, alert)
            except RiskPipelineError as exc:
                logger.warning(
                    "background_analysis_failed",
                    worker=name,
                    transaction_id=event.transaction_id,
                    error=str(exc),
                )
            except Exception:
                logger.exception(
                    "background_analysis_error", worker=name, transaction_id=event.transaction_id
                )
            finally:
                self._queue.task_done()

    async def _stats_loop(self) -> None:
        interval = self._config.dispatcher.stats_interval_seconds
        while self._running:
            await asyncio.sleep(interval)
            try:
                self.broker.publish(TOPIC_STATS, self.current_stats())
            except Exception:
                logger.exception("stats_snapshot_failed")
