"""Verification API routes."""

from __future__ import annotations

import logging
import time
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from prometheus_client import Counter, Histogram

from ...application.dtos import (
    AddressDTO,
    PaymentInstructionsDTO,
    PaymentRequestDTO,
    VerifiedRecordDTO,
)
from ...application.issuer import IssuerService
from ...domain.errors import ValidationError
from ...domain.repositories import VerifiedRecordRepository
from ...env import Settings
from ..dependencies import get_app_settings, get_issuer_service, get_verified_repository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/verification", tags=["verification"])

payment_requests_total = Counter(
    "payment_requests_total",
    "Total payment requests processed",
    ["status"],
)

payment_request_duration_seconds = Histogram(
    "payment_request_duration_seconds",
    "Wall time to process a payment request",
    ["status"],
)


@router.post(
    "/payment-request",
    response_model=PaymentInstructionsDTO,
    status_code=status.HTTP_201_CREATED,
)
async def create_payment_request(
    request_data: PaymentRequestDTO,
    issuer_service: IssuerService = Depends(get_issuer_service),
) -> PaymentInstructionsDTO:
    """Issue payment instructions that prove ownership of the given wallet."""
    start_time = time.perf_counter()
    try:
        result = await issuer_service.create_intent(request_data)
        payment_requests_total.labels(status="success").inc()
        elapsed = time.perf_counter() - start_time
        payment_request_duration_seconds.labels(status="success").observe(elapsed)
        return result
    except ValidationError as e:
        payment_requests_total.labels(status="client_error").inc()
        elapsed = time.perf_counter() - start_time
        payment_request_duration_seconds.labels(status="client_error").observe(elapsed)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.exception("Internal server error while issuing payment request: %s", e)
        payment_requests_total.labels(status="server_error").inc()
        elapsed = time.perf_counter() - start_time
        payment_request_duration_seconds.labels(status="server_error").observe(elapsed)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error while issuing payment request",
        )


@router.get("/address", response_model=AddressDTO)
async def get_receiving_address(
    settings: Settings = Depends(get_app_settings),
) -> AddressDTO:
    """Return the address users should send to, as displayed to them."""
    return AddressDTO(address=settings.display_address)


@router.get("/verified", response_model=List[VerifiedRecordDTO])
async def list_verified(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    verified_repository: VerifiedRecordRepository = Depends(get_verified_repository),
) -> List[VerifiedRecordDTO]:
    """List verified identity to wallet bindings, oldest first."""
    records = await verified_repository.get_all(skip=skip, limit=limit)
    return [VerifiedRecordDTO.from_record(record) for record in records]
