"""Retrieval and decoding of incoming transfers to the receiving address."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, AsyncIterator, Callable, Dict, List, Tuple

from ..domain.chain import ChainClientProtocol
from ..domain.entities import TransferObservation, utcnow
from ..domain.repositories import SignatureLedger

logger = logging.getLogger(__name__)

SYSTEM_PROGRAM = "system"
TRANSFER = "transfer"


@dataclass(frozen=True)
class ExaminedTransaction:
    """A fetched transaction and the transfers it made to the receiving address."""

    signature: str
    observations: Tuple[TransferObservation, ...] = ()


def decode_transfers(
    signature: str,
    transaction: Dict[str, Any],
    receiving_address: str,
    observed_at: datetime,
) -> List[TransferObservation]:
    """Extract System Program transfers to ``receiving_address``.

    Failed transactions moved no funds and yield nothing. Other instruction
    types and transfers to other destinations are ignored.
    """
    meta = transaction.get("meta") or {}
    if meta.get("err") is not None:
        return []

    message = (transaction.get("transaction") or {}).get("message") or {}
    observations: List[TransferObservation] = []
    for ix in message.get("instructions") or []:
        if not isinstance(ix, dict) or ix.get("program") != SYSTEM_PROGRAM:
            continue
        parsed = ix.get("parsed")
        if not isinstance(parsed, dict) or parsed.get("type") != TRANSFER:
            continue
        info = parsed.get("info") or {}
        if info.get("destination") != receiving_address:
            continue
        lamports = info.get("lamports")
        source = info.get("source")
        if not isinstance(lamports, int) or isinstance(lamports, bool) or not source:
            continue
        observations.append(
            TransferObservation(
                signature=signature,
                source_address=source,
                destination_address=receiving_address,
                lamports=lamports,
                observed_at=observed_at,
            )
        )
    return observations


class ChainPoller:
    """Fetches recent transactions for the receiving address that are not yet consumed."""

    def __init__(
        self,
        chain_client: ChainClientProtocol,
        receiving_address: str,
        ledger: SignatureLedger,
        signature_limit: int = 10,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.chain_client = chain_client
        self.receiving_address = receiving_address
        self.ledger = ledger
        self.signature_limit = signature_limit
        self._clock = clock

    async def iter_new_transactions(self) -> AsyncIterator[ExaminedTransaction]:
        """Yield unconsumed transactions oldest first.

        Raises ``UpstreamUnavailable`` from the chain client mid-iteration;
        transactions already yielded stay yielded. A signature whose
        transaction is not available yet is skipped and seen again next poll.
        """
        infos = await self.chain_client.get_signatures_for_address(
            self.receiving_address, self.signature_limit
        )
        # RPC returns newest first
        for info in reversed(infos):
            signature = info.get("signature") if isinstance(info, dict) else None
            if not signature or await self.ledger.is_consumed(signature):
                continue

            transaction = await self.chain_client.get_transaction(signature)
            if transaction is None:
                logger.debug("Transaction %s not available yet", signature)
                continue

            observations = decode_transfers(
                signature, transaction, self.receiving_address, self._clock()
            )
            yield ExaminedTransaction(signature, tuple(observations))
