"""Data Transfer Objects for the verification API.

Wire format uses camelCase keys; snake_case is accepted on input as well.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_serializer
from pydantic.alias_generators import to_camel

from ..domain.amounts import format_amount
from ..domain.entities import VerifiedRecord


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PaymentRequestDTO(CamelModel):
    """Identity fields submitted to start a verification.

    Fields are optional at the schema level so that missing fields are
    reported by the issuer as a validation error (HTTP 400).
    """

    wallet_address: Optional[str] = None
    external_id: Optional[str] = None
    secondary_handle: Optional[str] = None


class PaymentInstructionsDTO(CamelModel):
    """What the user must send, where, and by when."""

    amount: Decimal
    receiving_address: str
    expires_at: datetime

    @field_serializer("amount")
    def serialize_amount(self, value: Decimal) -> str:
        return format_amount(value)

    @field_serializer("expires_at")
    def serialize_expires_at(self, value: datetime) -> str:
        return value.isoformat()


class AddressDTO(BaseModel):
    """Human-facing receiving address."""

    address: str


class StatusDTO(BaseModel):
    message: str


class VerifiedRecordDTO(CamelModel):
    """Verified binding as exposed to downstream consumers."""

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

    @classmethod
    def from_record(cls, record: VerifiedRecord) -> "VerifiedRecordDTO":
        return cls(
            wallet_address=record.identity.wallet_address,
            external_id=record.identity.external_id,
            secondary_handle=record.identity.secondary_handle,
            amount=record.amount,
            verified_at=record.verified_at,
            signature=record.signature,
        )
