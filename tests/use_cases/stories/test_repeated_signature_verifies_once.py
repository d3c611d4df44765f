"""Story: the RPC returns the same signature on consecutive polls."""

from __future__ import annotations

import pytest

from walletproof.application.dtos import PaymentRequestDTO
from tests.fixtures import make_transfer_transaction
from tests.fixtures.identities import EXTERNAL_ID, RECEIVING_ADDRESS, WALLET_ADDRESS


@pytest.mark.asyncio
async def test_repeated_signature_verifies_once(
    story_issuer,
    reconciliation_service,
    chain_client,
    intent_repository,
    verified_repository,
) -> None:
    """
    Story: one transfer, two polls.

    Only the first poll that sees the signature changes any state; the
    second sees it as already consumed.
    """
    request = PaymentRequestDTO(wallet_address=WALLET_ADDRESS, external_id=EXTERNAL_ID)
    await story_issuer.create_intent(request)
    chain_client.add_transaction(
        "sig-c", make_transfer_transaction(WALLET_ADDRESS, RECEIVING_ADDRESS, 4210)
    )

    # When: two consecutive polls return the same signature
    first = await reconciliation_service.run_tick()
    # a fresh request for the same amount is issued between polls
    await story_issuer.create_intent(request)
    second = await reconciliation_service.run_tick()

    # Then: only the first poll verified anything
    assert len(first.verified) == 1
    assert second.verified == []
    assert len(await verified_repository.get_all()) == 1
    assert len(await intent_repository.list_pending()) == 1
