"""Per-user rolling window of recent transactions."""

from datetime import datetime

import structlog
from pydantic import ValidationError

from riskstream.shared.store import KeyValueStore, StoreError

from .config import VelocitySettings
from .errors import DependencyUnavailable
from .models import VelocityEntry

logger = structlog.get_logger()

HISTORY_KEY_PREFIX = "user_tx_history"


def history_key(user_id: str) -> str:
    return f"{HISTORY_KEY_PREFIX}:{user_id}"


class VelocityStore:
    """Bounded append-only list per user, oldest entries trimmed by the store.

    Appends are a single atomic store operation, so concurrent writers never
    lose entries. Reads may lag the latest append.
    """

    def __init__(self, store: KeyValueStore, settings: VelocitySettings | None = None) -> None:
        self._store = store
        self._settings = settings or VelocitySettings()

    async def append(self, user_id: str, entry: VelocityEntry) -> None:
        try:
            await self._store.list_append(
                history_key(user_id),
                entry.model_dump_json(),
                max_length=self._settings.max_entries,
                ttl_seconds=self._settings.key_ttl_seconds,
            )
        except StoreError as exc:
            raise DependencyUnavailable("velocity_store", str(exc)) from exc

    async def recent_entries(self, user_id: str, since: datetime) -> list[VelocityEntry]:
        """Entries with timestamp >= since, in insertion order."""
        try:
            raw = await self._store.list_range(history_key(user_id))
        except StoreError as exc:
            raise DependencyUnavailable("velocity_store", str(exc)) from exc

        entries: list[VelocityEntry] = []
        for item in raw:
            try:
                entry = VelocityEntry.model_validate_json(item)
            except ValidationError:
                logger.warning("velocity_entry_corrupt", user_id=user_id)
                continue
            if entry.timestamp >= since:
                entries.append(entry)
        return entries
