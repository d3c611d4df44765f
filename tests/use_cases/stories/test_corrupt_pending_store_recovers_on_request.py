"""Story: the persisted pending collection is corrupt."""

from __future__ import annotations

import json

import pytest

from walletproof.application.dtos import PaymentRequestDTO
from walletproof.infrastructure.intent_repository_impl import PENDING_INTENTS_KEY
from tests.fixtures.identities import EXTERNAL_ID, WALLET_ADDRESS


@pytest.mark.asyncio
async def test_corrupt_pending_store_recovers_on_request(
    story_issuer, intent_repository, store
) -> None:
    """
    Story: the snapshot on disk is garbage.

    Issuing a new intent still succeeds and the rewritten snapshot holds
    only the new intent.
    """
    # Given: a corrupt snapshot
    store.put_raw(PENDING_INTENTS_KEY, "{not valid json")

    # When: a user requests payment instructions
    instructions = await story_issuer.create_intent(
        PaymentRequestDTO(wallet_address=WALLET_ADDRESS, external_id=EXTERNAL_ID)
    )

    # Then: the request succeeds and the snapshot is rebuilt
    assert instructions.model_dump(by_alias=True)["amount"] == "0.000004210"
    [pending] = await intent_repository.list_pending()
    assert pending.identity.external_id == EXTERNAL_ID

    snapshot = json.loads(store.raw(PENDING_INTENTS_KEY))
    assert len(snapshot) == 1
    assert snapshot[0]["identity"]["external_id"] == EXTERNAL_ID
    assert snapshot[0]["amount"] == "0.000004210"
