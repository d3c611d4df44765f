"""Append-only verified record log over a whole-collection snapshot."""

from __future__ import annotations

import logging
from typing import Iterable, List, Set
from uuid import UUID

from pydantic import ValidationError as ModelValidationError

from ..domain.entities import VerifiedRecord
from ..domain.repositories import VerifiedRecordRepository
from .snapshot import SnapshotCollection
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

VERIFIED_RECORDS_KEY = "walletproof:verified"


class VerifiedRecordRepositoryImpl(SnapshotCollection, VerifiedRecordRepository):
    """Verified records; at most one record per intent id."""

    def __init__(self, store: KeyValueStore, key: str = VERIFIED_RECORDS_KEY):
        super().__init__(store, key, name="verified records")
        self._records: List[VerifiedRecord] = []
        self._intent_ids: Set[UUID] = set()

    async def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        for item in await self._read_items():
            try:
                record = VerifiedRecord.model_validate(item)
            except ModelValidationError as e:
                logger.warning("Skipping unreadable verified record: %s", e)
                continue
            if record.intent_id in self._intent_ids:
                continue
            self._records.append(record)
            self._intent_ids.add(record.intent_id)
        self._loaded = True

    async def append(self, records: Iterable[VerifiedRecord]) -> List[VerifiedRecord]:
        async with self._lock:
            await self._ensure_loaded()
            appended: List[VerifiedRecord] = []
            for record in records:
                if record.intent_id in self._intent_ids:
                    logger.warning(
                        "Intent %s is already verified; ignoring signature %s",
                        record.intent_id,
                        record.signature,
                    )
                    continue
                self._records.append(record)
                self._intent_ids.add(record.intent_id)
                appended.append(record)
            if appended:
                await self._persist(
                    [record.model_dump(mode="json") for record in self._records]
                )
            return appended

    async def get_all(self, skip: int = 0, limit: int = 100) -> List[VerifiedRecord]:
        async with self._lock:
            await self._ensure_loaded()
            return list(self._records[skip : skip + limit])

    async def intent_ids(self) -> Set[UUID]:
        async with self._lock:
            await self._ensure_loaded()
            return set(self._intent_ids)
