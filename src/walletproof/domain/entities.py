"""Domain entities: payment intents, verified records and chain observations."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Literal, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator
from pydantic.alias_generators import to_camel

from .amounts import amount_to_lamports, format_amount


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _check_amount_matches_lamports(amount: Decimal, lamports: int) -> None:
    if amount_to_lamports(amount) != lamports:
        raise ValueError(
            f"amount {format_amount(amount)} does not equal {lamports} lamports"
        )


class IntentState(str, Enum):
    """Lifecycle of a payment intent."""

    PENDING = "pending"
    VERIFIED = "verified"
    EXPIRED = "expired"


class Identity(BaseModel):
    """Off-chain identity claiming ownership of a wallet."""

    model_config = ConfigDict(frozen=True)

    wallet_address: str
    external_id: str
    secondary_handle: Optional[str] = None


class PaymentIntent(BaseModel):
    """A request to prove wallet ownership by sending an exact amount."""

    id: UUID = Field(default_factory=uuid4)
    identity: Identity
    amount: Decimal
    lamports: int = Field(..., gt=0)
    receiving_address: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime
    state: IntentState = IntentState.PENDING

    @model_validator(mode="after")
    def validate_amount(self) -> "PaymentIntent":
        _check_amount_matches_lamports(self.amount, self.lamports)
        return self

    @field_serializer("id")
    def serialize_id(self, value: UUID) -> str:
        return str(value)

    @field_serializer("amount")
    def serialize_amount(self, value: Decimal) -> str:
        return format_amount(value)

    @field_serializer("created_at", "expires_at")
    def serialize_datetime(self, value: datetime) -> str:
        return value.isoformat()

    @property
    def is_pending(self) -> bool:
        return self.state is IntentState.PENDING

    def is_expired(self, now: datetime) -> bool:
        """An intent is expired from its ``expires_at`` instant onwards."""
        return self.expires_at <= now

    def expire(self) -> None:
        """Mark a pending intent as expired."""
        if not self.is_pending:
            raise ValueError(f"Intent is already {self.state.value}.")
        self.state = IntentState.EXPIRED

    def verify(self, signature: str, verified_at: datetime) -> "VerifiedRecord":
        """Mark the intent verified and return an independent verified record."""
        if not self.is_pending:
            raise ValueError(f"Intent is already {self.state.value}.")
        if self.is_expired(verified_at):
            raise ValueError("Intent has expired.")
        self.state = IntentState.VERIFIED
        return VerifiedRecord(
            intent_id=self.id,
            identity=self.identity.model_copy(),
            amount=self.amount,
            lamports=self.lamports,
            receiving_address=self.receiving_address,
            created_at=self.created_at,
            verified_at=verified_at,
            signature=signature,
        )


class VerifiedRecord(BaseModel):
    """Confirmed identity to wallet binding, appended to the verified log."""

    model_config = ConfigDict(frozen=True)

    intent_id: UUID
    identity: Identity
    amount: Decimal
    lamports: int
    receiving_address: Optional[str] = None
    created_at: datetime
    verified_at: datetime
    signature: str

    @model_validator(mode="after")
    def validate_amount(self) -> "VerifiedRecord":
        _check_amount_matches_lamports(self.amount, self.lamports)
        return self

    @field_serializer("intent_id")
    def serialize_intent_id(self, value: UUID) -> str:
        return str(value)

    @field_serializer("amount")
    def serialize_amount(self, value: Decimal) -> str:
        return format_amount(value)

    @field_serializer("created_at", "verified_at")
    def serialize_datetime(self, value: datetime) -> str:
        return value.isoformat()

    def to_event(self) -> "VerifiedEvent":
        return VerifiedEvent(
            wallet_address=self.identity.wallet_address,
            external_id=self.identity.external_id,
            secondary_handle=self.identity.secondary_handle,
            amount=self.amount,
            verified_at=self.verified_at,
            signature=self.signature,
        )


class TransferObservation(BaseModel):
    """A native-currency transfer to the receiving address seen on chain."""

    model_config = ConfigDict(frozen=True)

    signature: str
    source_address: str
    destination_address: str
    lamports: int
    observed_at: datetime = Field(default_factory=utcnow)


class VerifiedEvent(BaseModel):
    """Message pushed to stream subscribers when an identity is verified."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    status: Literal["confirmed"] = "confirmed"
    wallet_address: str
    external_id: str
    secondary_handle: Optional[str] = None
    amount: Decimal
    verified_at: datetime
    signature: str

    @field_serializer("amount")
    def serialize_amount(self, value: Decimal) -> str:
        return format_amount(value)

    @field_serializer("verified_at")
    def serialize_verified_at(self, value: datetime) -> str:
        return value.isoformat()

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)
