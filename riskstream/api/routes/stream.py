"""WebSocket channel for interactive analysis and live alert/stat feeds.

Client -> server messages::

    {"type": "analyze_transaction", "transaction": {...}}
    {"type": "subscribe_alerts"}
    {"type": "unsubscribe_alerts"}

Server -> client messages carry ``type`` and ``data``: ``fraud_stats`` on
connect, ``fraud_result`` or ``error`` per analysis request, ``fraud_result``
for every transaction completed by the background workers, and, while
subscribed, ``fraud_alert`` for every HIGH result and ``fraud_stats_update``
for each periodic snapshot.
"""

import asyncio
import contextlib
import json
from typing import Any

import structlog
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from riskstream.api.dependencies import get_dispatcher
from riskstream.domains.risk.dispatcher import RealTimeDispatcher
from riskstream.domains.risk.errors import DependencyUnavailable, InputError, RiskPipelineError
from riskstream.domains.risk.pubsub import (
    TOPIC_HIGH_RISK,
    TOPIC_RESULTS,
    TOPIC_STATS,
    Subscription,
)

logger = structlog.get_logger()
router = APIRouter(tags=["stream"])

_TOPIC_MESSAGE_TYPES = {
    TOPIC_RESULTS: "fraud_result",
    TOPIC_HIGH_RISK: "fraud_alert",
    TOPIC_STATS: "fraud_stats_update",
}


def _error_code(exc: RiskPipelineError) -> str:
    if isinstance(exc, InputError):
        return "invalid_transaction"
    if isinstance(exc, DependencyUnavailable):
        return "scoring_unavailable"
    return "pipeline_error"


class StreamSession:
    """One connected client. Sends are serialized; analyses run concurrently."""

    def __init__(self, websocket: WebSocket, dispatcher: RealTimeDispatcher) -> None:
        self._ws = websocket
        self._dispatcher = dispatcher
        self._send_lock = asyncio.Lock()
        self._subscription: Subscription | None = None
        self._forwarder: asyncio.Task | None = None
        self._analyses: set[asyncio.Task] = set()
        self._results: Subscription | None = None
        self._results_forwarder: asyncio.Task | None = None

    async def send(self, message_type: str, data: Any) -> None:
        async with self._send_lock:
            await self._ws.send_json({"type": message_type, "data": data})

    async def run(self) -> None:
        self._results = self._dispatcher.broker.subscribe(TOPIC_RESULTS)
        self._results_forwarder = asyncio.create_task(self._forward(self._results))
        try:
            await self.send(
                "fraud_stats", self._dispatcher.current_stats().model_dump(mode="json")
            )
            while True:
                raw = await self._ws.receive_text()
                try:
                    message = json.loads(raw)
                except json.JSONDecodeError:
                    await self.send("error", {"error": "invalid_json", "message": "Malformed message"})
                    continue
                await self._handle(message)
        except WebSocketDisconnect:
            logger.info("stream_client_disconnected")
        finally:
            await self._close()

    async def _handle(self, message: Any) -> None:
        message_type = message.get("type") if isinstance(message, dict) else None
        if message_type == "analyze_transaction":
            task = asyncio.create_task(self._analyze(message.get("transaction")))
            self._analyses.add(task)
            task.add_done_callback(self._analyses.discard)
        elif message_type == "subscribe_alerts":
            self._subscribe()
        elif message_type == "unsubscribe_alerts":
            await self._unsubscribe()
        else:
            await self.send("error", {"error": "unknown_message", "message": f"{message_type!r}"})

    async def _analyze(self, payload: Any) -> None:
        transaction_id = payload.get("transaction_id") if isinstance(payload, dict) else None
        try:
            alert = await self._dispatcher.analyze(payload if payload is not None else {})
        except RiskPipelineError as exc:
            await self.send(
                "error",
                {
                    "error": _error_code(exc),
                    "message": str(exc),
                    "transaction_id": transaction_id,
                },
            )
            return
        except Exception:
            logger.exception("stream_analysis_error", transaction_id=transaction_id)
            await self.send(
                "error",
                {
                    "error": "internal_error",
                    "message": "Failed to analyze transaction",
                    "transaction_id": transaction_id,
                },
            )
            return
        await self.send("fraud_result", alert.model_dump(mode="json"))

    def _subscribe(self) -> None:
        if self._subscription is not None:
            return
        self._subscription = self._dispatcher.broker.subscribe(TOPIC_HIGH_RISK, TOPIC_STATS)
        self._forwarder = asyncio.create_task(self._forward(self._subscription))
        logger.info("stream_client_subscribed")

    async def _unsubscribe(self) -> None:
        if self._subscription is None:
            return
        self._subscription.close()
        self._subscription = None
        if self._forwarder is not None:
            self._forwarder.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._forwarder
            self._forwarder = None
        logger.info("stream_client_unsubscribed")

    async def _forward(self, subscription: Subscription) -> None:
        while True:
            topic, message = await subscription.get()
            await self.send(_TOPIC_MESSAGE_TYPES[topic], message.model_dump(mode="json"))

    async def _close(self) -> None:
        await self._unsubscribe()
        if self._results is not None:
            self._results.close()
            self._results = None
        if self._results_forwarder is not None:
            self._results_forwarder.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._results_forwarder
            self._results_forwarder = None
        # The dispatcher still records these; only delivery to this client stops
        for task in list(self._analyses):
            task.cancel()


@router.websocket("/ws/risk")
async def risk_stream(
    websocket: WebSocket,
    dispatcher: RealTimeDispatcher = Depends(get_dispatcher),  # noqa: B008
) -> None:
    await websocket.accept()
    logger.info("stream_client_connected")
    await StreamSession(websocket, dispatcher).run()
