"""Repository interfaces for the verification domain."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Set
from uuid import UUID

from .entities import PaymentIntent, VerifiedRecord


class PendingIntentRepository(ABC):
    """Pending payment intents, kept in insertion order."""

    @abstractmethod
    async def add(self, intent: PaymentIntent) -> PaymentIntent:
        """Persist a new pending intent."""
        pass

    @abstractmethod
    async def list_pending(self) -> List[PaymentIntent]:
        """Return copies of all pending intents in insertion order."""
        pass

    @abstractmethod
    async def remove(self, intent_ids: Iterable[UUID]) -> int:
        """Remove intents by id; ids that are already absent are ignored."""
        pass

    @abstractmethod
    async def remove_expired(self, now: datetime) -> List[PaymentIntent]:
        """Expire and remove every intent with ``expires_at <= now``."""
        pass


class VerifiedRecordRepository(ABC):
    """Append-only log of verified records."""

    @abstractmethod
    async def append(self, records: Iterable[VerifiedRecord]) -> List[VerifiedRecord]:
        """Append records, skipping intent ids already present; return those appended."""
        pass

    @abstractmethod
    async def get_all(self, skip: int = 0, limit: int = 100) -> List[VerifiedRecord]:
        """Return verified records, oldest first, with pagination."""
        pass

    @abstractmethod
    async def intent_ids(self) -> Set[UUID]:
        """Return the ids of every verified intent."""
        pass


class SignatureLedger(ABC):
    """Set of chain signatures that have already been examined."""

    @abstractmethod
    async def is_consumed(self, signature: str) -> bool:
        pass

    @abstractmethod
    async def mark_consumed(self, signature: str) -> bool:
        """Record a signature; return False when it was already consumed."""
        pass
