"""Whole-collection snapshots persisted through a KeyValueStore."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, List

from prometheus_client import Counter

from ..domain.errors import StoreReadError, StoreWriteError
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

store_read_failures_total = Counter(
    "store_read_failures_total",
    "Persisted collections that could not be read and were treated as empty",
    ["collection"],
)
store_write_failures_total = Counter(
    "store_write_failures_total",
    "Failed attempts to persist a collection snapshot",
    ["collection"],
)


class SnapshotCollection:
    """A JSON array stored under a single key and rewritten on every change.

    Subclasses keep the decoded collection in memory as the source of truth,
    load it once, and call ``_persist`` after each mutation while holding
    ``self._lock``.
    """

    def __init__(self, store: KeyValueStore, key: str, name: str):
        self._store = store
        self._key = key
        self._name = name
        self._lock = asyncio.Lock()
        self._loaded = False

    async def _read_items(self) -> List[Any]:
        """Read the stored array; unreadable content counts as no data yet."""
        try:
            raw = await self._store.get(self._key)
            if not raw:
                return []
            try:
                data = json.loads(raw)
            except ValueError as e:
                raise StoreReadError(f"{self._name} snapshot is not valid JSON") from e
            if not isinstance(data, list):
                raise StoreReadError(f"{self._name} snapshot is not a JSON array")
            return data
        except StoreReadError as e:
            store_read_failures_total.labels(collection=self._name).inc()
            logger.warning("Treating %s as empty: %s", self._name, e)
            return []

    async def _persist(self, items: List[Any]) -> bool:
        """Rewrite the whole collection; on failure memory stays ahead of disk."""
        try:
            await self._store.set(self._key, json.dumps(items))
            return True
        except StoreWriteError as e:
            store_write_failures_total.labels(collection=self._name).inc()
            logger.error("Failed to persist %s: %s", self._name, e)
            return False
