"""Issuance of payment intents and expiry of stale ones."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from prometheus_client import Counter

from ..domain.amounts import (
    DEFAULT_MAX_LAMPORTS,
    DEFAULT_MIN_LAMPORTS,
    allocate_lamports,
    lamports_to_amount,
)
from ..domain.entities import Identity, PaymentIntent, utcnow
from ..domain.errors import ValidationError
from ..domain.repositories import PendingIntentRepository
from .dtos import PaymentInstructionsDTO, PaymentRequestDTO

logger = logging.getLogger(__name__)

DEFAULT_INTENT_TTL = timedelta(minutes=15)

WALLET_ADDRESS_PATTERN = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")
EXTERNAL_ID_PATTERN = re.compile(r"^\d{17,20}$")
SECONDARY_HANDLE_PATTERN = re.compile(r"^[A-Za-z0-9_]{1,15}$")

intents_created_total = Counter(
    "intents_created_total", "Payment intents issued"
)
intents_expired_total = Counter(
    "intents_expired_total", "Pending payment intents removed by the expiry sweep"
)


def validate_identity(dto: PaymentRequestDTO) -> Identity:
    """Build an Identity from request fields or raise ValidationError."""
    wallet_address = (dto.wallet_address or "").strip()
    external_id = (dto.external_id or "").strip()
    secondary_handle = (dto.secondary_handle or "").strip().lstrip("@") or None

    missing = [
        name
        for name, value in (
            ("walletAddress", wallet_address),
            ("externalId", external_id),
        )
        if not value
    ]
    if missing:
        raise ValidationError(f"Missing {', '.join(missing)}")
    if not WALLET_ADDRESS_PATTERN.match(wallet_address):
        raise ValidationError(
            "Invalid walletAddress: must be 32-44 base58 characters"
        )
    if not EXTERNAL_ID_PATTERN.match(external_id):
        raise ValidationError("Invalid externalId: must be 17-20 digits")
    if secondary_handle is not None and not SECONDARY_HANDLE_PATTERN.match(
        secondary_handle
    ):
        raise ValidationError(
            "Invalid secondaryHandle: letters, digits and underscores, max 15 characters"
        )
    return Identity(
        wallet_address=wallet_address,
        external_id=external_id,
        secondary_handle=secondary_handle,
    )


class IssuerService:
    """Creates pending intents; the caller learns the amount, never the intent id."""

    def __init__(
        self,
        intent_repository: PendingIntentRepository,
        receiving_address: str,
        ttl: timedelta = DEFAULT_INTENT_TTL,
        min_lamports: int = DEFAULT_MIN_LAMPORTS,
        max_lamports: int = DEFAULT_MAX_LAMPORTS,
        collision_retries: int = 0,
        clock: Callable[[], datetime] = utcnow,
        allocator: Callable[..., int] = allocate_lamports,
    ):
        self.intent_repository = intent_repository
        self.receiving_address = receiving_address
        self.ttl = ttl
        self.min_lamports = min_lamports
        self.max_lamports = max_lamports
        self.collision_retries = collision_retries
        self._clock = clock
        self._allocator = allocator

    async def create_intent(self, dto: PaymentRequestDTO) -> PaymentInstructionsDTO:
        """Validate the identity, allocate an amount and persist a pending intent."""
        identity = validate_identity(dto)

        await self.sweep()

        exclude: Optional[set[int]] = None
        if self.collision_retries > 0:
            pending = await self.intent_repository.list_pending()
            exclude = {intent.lamports for intent in pending}
        lamports = self._allocator(
            self.min_lamports,
            self.max_lamports,
            exclude=exclude or (),
            attempts=self.collision_retries + 1,
        )

        now = self._clock()
        intent = PaymentIntent(
            identity=identity,
            amount=lamports_to_amount(lamports),
            lamports=lamports,
            receiving_address=self.receiving_address,
            created_at=now,
            expires_at=now + self.ttl,
        )
        await self.intent_repository.add(intent)
        intents_created_total.inc()
        logger.info(
            "Issued payment intent for external id %s (wallet %s, %s lamports)",
            identity.external_id,
            identity.wallet_address,
            lamports,
        )

        return PaymentInstructionsDTO(
            amount=intent.amount,
            receiving_address=self.receiving_address,
            expires_at=intent.expires_at,
        )

    async def sweep(self) -> int:
        """Remove every pending intent whose expiry has passed."""
        expired: List[PaymentIntent] = await self.intent_repository.remove_expired(
            self._clock()
        )
        if expired:
            intents_expired_total.inc(len(expired))
            logger.info("Removed %d expired payment intents", len(expired))
        return len(expired)
