"""Consumer that feeds transaction events into the background analysis queue."""

from typing import Any

import structlog

from riskstream.domains.risk.dispatcher import RealTimeDispatcher
from riskstream.domains.risk.errors import InputError, QueueFullError

from .base import BaseConsumer

logger = structlog.get_logger()

TRANSACTION_EVENT_TYPES = [
    "transaction-initiated",
]


class TransactionConsumer(BaseConsumer):
    def __init__(
        self,
        dispatcher: RealTimeDispatcher,
        bootstrap_servers: str,
        topic: str = "payments.transaction.events",
        group_id: str = "riskstream",
    ) -> None:
        super().__init__(
            topics=[topic],
            bootstrap_servers=bootstrap_servers,
            group_id=group_id,
        )
        self._dispatcher = dispatcher
        for event_type in TRANSACTION_EVENT_TYPES:
            self.register_handler(event_type, self._handle_transaction_event)

    async def _handle_transaction_event(self, event: dict[str, Any]) -> None:
        payload = event.get("payload", {})
        txn_id = payload.get("transaction_id")
        logger.info(
            "transaction_event_received",
            event_type=event.get("event_type"),
            transaction_id=txn_id,
            event_id=event.get("event_id"),
        )
        try:
            self._dispatcher.enqueue(self._to_transaction(payload, event))
        except InputError as exc:
            logger.warning("transaction_event_rejected", transaction_id=txn_id, error=str(exc))
        except QueueFullError:
            # The queue already logged; the event is dropped for this delivery
            logger.error("transaction_event_dropped", transaction_id=txn_id)

    @staticmethod
    def _to_transaction(payload: dict[str, Any], event: dict[str, Any]) -> dict[str, Any]:
        transaction = {
            "transaction_id": payload.get("transaction_id"),
            "user_id": payload.get("user_id"),
            "amount": payload.get("amount"),
            "currency": payload.get("currency", "USD"),
            "merchant_id": payload.get("merchant_id"),
            "device_fingerprint": payload.get("device_fingerprint") or payload.get("device_id"),
            "ip_address": payload.get("ip_address"),
            "geolocation": payload.get("geolocation") or payload.get("geo_location"),
        }
        timestamp = payload.get("initiated_at") or event.get("timestamp")
        if timestamp:
            transaction["timestamp"] = timestamp
        return transaction
