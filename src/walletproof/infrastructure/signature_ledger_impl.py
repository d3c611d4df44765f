"""Consumed signature ledger over a whole-collection snapshot."""

from __future__ import annotations

from typing import Dict

from ..domain.repositories import SignatureLedger
from .snapshot import SnapshotCollection
from .storage import KeyValueStore

CONSUMED_SIGNATURES_KEY = "walletproof:signatures:consumed"
DEFAULT_MAX_SIGNATURES = 10_000


class SignatureLedgerImpl(SnapshotCollection, SignatureLedger):
    """Remembers the most recent ``max_signatures`` consumed signatures.

    The poller only ever looks at the newest few signatures of the receiving
    address, so evicting the oldest entries never readmits a signature it can
    still see.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str = CONSUMED_SIGNATURES_KEY,
        max_signatures: int = DEFAULT_MAX_SIGNATURES,
    ):
        super().__init__(store, key, name="consumed signatures")
        self._max_signatures = max_signatures
        # dict preserves insertion order, oldest first
        self._signatures: Dict[str, None] = {}

    async def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        for item in await self._read_items():
            if isinstance(item, str):
                self._signatures[item] = None
        self._loaded = True

    async def is_consumed(self, signature: str) -> bool:
        async with self._lock:
            await self._ensure_loaded()
            return signature in self._signatures

    async def mark_consumed(self, signature: str) -> bool:
        async with self._lock:
            await self._ensure_loaded()
            if signature in self._signatures:
                return False
            self._signatures[signature] = None
            while len(self._signatures) > self._max_signatures:
                del self._signatures[next(iter(self._signatures))]
            await self._persist(list(self._signatures))
            return True
