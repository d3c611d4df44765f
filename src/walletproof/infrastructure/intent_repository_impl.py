"""Pending intent repository over a whole-collection snapshot."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List
from uuid import UUID

from pydantic import ValidationError as ModelValidationError

from ..domain.entities import PaymentIntent
from ..domain.repositories import PendingIntentRepository
from .snapshot import SnapshotCollection
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

PENDING_INTENTS_KEY = "walletproof:intents:pending"


class PendingIntentRepositoryImpl(SnapshotCollection, PendingIntentRepository):
    """Pending intents held in an insertion-ordered dict and snapshotted on change."""

    def __init__(self, store: KeyValueStore, key: str = PENDING_INTENTS_KEY):
        super().__init__(store, key, name="pending intents")
        self._intents: Dict[UUID, PaymentIntent] = {}

    async def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        for item in await self._read_items():
            try:
                intent = PaymentIntent.model_validate(item)
            except ModelValidationError as e:
                logger.warning("Skipping unreadable pending intent: %s", e)
                continue
            if intent.is_pending:
                self._intents[intent.id] = intent
        self._loaded = True

    async def _flush(self) -> None:
        await self._persist(
            [intent.model_dump(mode="json") for intent in self._intents.values()]
        )

    async def add(self, intent: PaymentIntent) -> PaymentIntent:
        async with self._lock:
            await self._ensure_loaded()
            self._intents[intent.id] = intent.model_copy(deep=True)
            await self._flush()
        return intent

    async def list_pending(self) -> List[PaymentIntent]:
        async with self._lock:
            await self._ensure_loaded()
            return [intent.model_copy(deep=True) for intent in self._intents.values()]

    async def remove(self, intent_ids: Iterable[UUID]) -> int:
        async with self._lock:
            await self._ensure_loaded()
            removed = 0
            for intent_id in intent_ids:
                if self._intents.pop(intent_id, None) is not None:
                    removed += 1
            if removed:
                await self._flush()
            return removed

    async def remove_expired(self, now: datetime) -> List[PaymentIntent]:
        async with self._lock:
            await self._ensure_loaded()
            expired: List[PaymentIntent] = []
            for intent_id, intent in list(self._intents.items()):
                if intent.is_expired(now):
                    del self._intents[intent_id]
                    intent.expire()
                    expired.append(intent)
            if expired:
                await self._flush()
            return expired
