"""Matching of chain observations against pending payment intents."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable, List

from prometheus_client import Counter, Histogram

from ..domain.entities import (
    PaymentIntent,
    TransferObservation,
    VerifiedRecord,
    utcnow,
)
from ..domain.errors import UpstreamUnavailable
from ..domain.repositories import (
    PendingIntentRepository,
    SignatureLedger,
    VerifiedRecordRepository,
)
from .chain_poller import ChainPoller, ExaminedTransaction
from .notifier import Notifier

logger = logging.getLogger(__name__)

reconciliation_ticks_total = Counter(
    "reconciliation_ticks_total",
    "Reconciliation ticks by outcome",
    ["status"],
)
reconciliation_tick_duration_seconds = Histogram(
    "reconciliation_tick_duration_seconds",
    "Wall time of a reconciliation tick",
    ["status"],
)
signatures_examined_total = Counter(
    "signatures_examined_total", "Chain signatures examined and consumed"
)
intents_verified_total = Counter(
    "intents_verified_total", "Payment intents verified by a matching transfer"
)


class MatchPolicy(str, Enum):
    """How many pending intents a single transfer may verify."""

    ALL = "all"
    FIRST = "first"


def matches(intent: PaymentIntent, observation: TransferObservation, now: datetime) -> bool:
    """The four-predicate match between an intent and an observed transfer."""
    if not intent.is_pending or intent.is_expired(now):
        return False
    if (
        intent.receiving_address
        and intent.receiving_address != observation.destination_address
    ):
        return False
    if observation.source_address != intent.identity.wallet_address:
        return False
    return observation.lamports == intent.lamports


class Reconciler:
    """Selects the pending intents an observation verifies.

    With ``MatchPolicy.ALL`` every pending intent sharing the observed
    (wallet, amount) pair is verified by one transfer. ``MatchPolicy.FIRST``
    verifies only the oldest of them.
    """

    def __init__(self, policy: MatchPolicy = MatchPolicy.ALL):
        self.policy = policy

    def match(
        self,
        observation: TransferObservation,
        pending: Iterable[PaymentIntent],
        now: datetime,
    ) -> List[PaymentIntent]:
        matched: List[PaymentIntent] = []
        for intent in pending:
            if matches(intent, observation, now):
                matched.append(intent)
                if self.policy is MatchPolicy.FIRST:
                    break
        return matched


@dataclass
class TickResult:
    """Outcome of one reconciliation tick."""

    skipped: bool = False
    aborted: bool = False
    examined: int = 0
    observations: int = 0
    verified: List[VerifiedRecord] = field(default_factory=list)


class ReconciliationService:
    """Polls the chain and advances pending intents to verified."""

    def __init__(
        self,
        poller: ChainPoller,
        reconciler: Reconciler,
        intent_repository: PendingIntentRepository,
        verified_repository: VerifiedRecordRepository,
        ledger: SignatureLedger,
        notifier: Notifier,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.poller = poller
        self.reconciler = reconciler
        self.intent_repository = intent_repository
        self.verified_repository = verified_repository
        self.ledger = ledger
        self.notifier = notifier
        self._clock = clock
        self._tick_lock = asyncio.Lock()

    @property
    def tick_in_progress(self) -> bool:
        return self._tick_lock.locked()

    async def run_tick(self) -> TickResult:
        """Run one poll and reconcile pass; skipped if one is already running."""
        if self._tick_lock.locked():
            reconciliation_ticks_total.labels(status="skipped").inc()
            logger.debug("Reconciliation tick still in progress; skipping")
            return TickResult(skipped=True)

        async with self._tick_lock:
            start_time = time.perf_counter()
            result = TickResult()
            status = "success"
            try:
                async for examined in self.poller.iter_new_transactions():
                    result.examined += 1
                    result.observations += len(examined.observations)
                    result.verified.extend(await self.process(examined))
            except UpstreamUnavailable as e:
                status = "upstream_error"
                result.aborted = True
                logger.warning("Chain RPC unavailable, aborting tick: %s", e)
            finally:
                reconciliation_ticks_total.labels(status=status).inc()
                reconciliation_tick_duration_seconds.labels(status=status).observe(
                    time.perf_counter() - start_time
                )
            return result

    async def process(self, examined: ExaminedTransaction) -> List[VerifiedRecord]:
        """Reconcile one transaction and consume its signature.

        Effects happen in order: verified records appended, pending intents
        removed, signature consumed, events published.
        """
        if await self.ledger.is_consumed(examined.signature):
            return []

        now = self._clock()
        pending = await self.intent_repository.list_pending()
        records: List[VerifiedRecord] = []
        for observation in examined.observations:
            for intent in self.reconciler.match(observation, pending, now):
                records.append(intent.verify(observation.signature, now))
            pending = [intent for intent in pending if intent.is_pending]

        appended: List[VerifiedRecord] = []
        if records:
            appended = await self.verified_repository.append(records)
            await self.intent_repository.remove(record.intent_id for record in records)

        await self.ledger.mark_consumed(examined.signature)
        signatures_examined_total.inc()

        for record in appended:
            intents_verified_total.inc()
            logger.info(
                "Payment verified for external id %s (wallet %s, tx %s)",
                record.identity.external_id,
                record.identity.wallet_address,
                record.signature,
            )
            self.notifier.publish(record.to_event())
        return appended

    async def repair(self) -> int:
        """Drop pending intents that already have a verified record."""
        verified_ids = await self.verified_repository.intent_ids()
        pending = await self.intent_repository.list_pending()
        stale = [intent.id for intent in pending if intent.id in verified_ids]
        if not stale:
            return 0
        removed = await self.intent_repository.remove(stale)
        logger.warning(
            "Removed %d pending intents that were already verified", removed
        )
        return removed
