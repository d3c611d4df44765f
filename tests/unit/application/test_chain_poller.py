"""Tests for transfer decoding and the chain poller."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from walletproof.application.chain_poller import ChainPoller, decode_transfers
from walletproof.domain.errors import UpstreamUnavailable
from tests.fixtures import make_transfer_transaction
from tests.fixtures.identities import (
    OTHER_WALLET_ADDRESS,
    RECEIVING_ADDRESS,
    WALLET_ADDRESS,
)

NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_decode_system_transfer_to_receiving_address() -> None:
    tx = make_transfer_transaction(WALLET_ADDRESS, RECEIVING_ADDRESS, 4210)

    [observation] = decode_transfers("sig-1", tx, RECEIVING_ADDRESS, NOW)

    assert observation.signature == "sig-1"
    assert observation.source_address == WALLET_ADDRESS
    assert observation.destination_address == RECEIVING_ADDRESS
    assert observation.lamports == 4210
    assert observation.observed_at == NOW


def test_failed_transaction_yields_nothing() -> None:
    tx = make_transfer_transaction(
        WALLET_ADDRESS, RECEIVING_ADDRESS, 4210, err={"InstructionError": [0, "Custom"]}
    )

    assert decode_transfers("sig-1", tx, RECEIVING_ADDRESS, NOW) == []


@pytest.mark.parametrize(
    "overrides",
    [
        {"program": "spl-token"},
        {"ix_type": "createAccount"},
        {"destination": OTHER_WALLET_ADDRESS},
    ],
)
def test_unrelated_instructions_are_ignored(overrides) -> None:
    kwargs = {"program": "system", "ix_type": "transfer", **overrides}
    destination = kwargs.pop("destination", RECEIVING_ADDRESS)
    tx = make_transfer_transaction(WALLET_ADDRESS, destination, 4210, **kwargs)

    assert decode_transfers("sig-1", tx, RECEIVING_ADDRESS, NOW) == []


def test_multiple_transfers_in_one_transaction() -> None:
    tx = make_transfer_transaction(WALLET_ADDRESS, RECEIVING_ADDRESS, 4210)
    second = make_transfer_transaction(OTHER_WALLET_ADDRESS, RECEIVING_ADDRESS, 77)
    tx["transaction"]["message"]["instructions"].extend(
        second["transaction"]["message"]["instructions"]
    )

    observations = decode_transfers("sig-1", tx, RECEIVING_ADDRESS, NOW)

    assert [(o.source_address, o.lamports) for o in observations] == [
        (WALLET_ADDRESS, 4210),
        (OTHER_WALLET_ADDRESS, 77),
    ]


def test_malformed_transaction_yields_nothing() -> None:
    assert decode_transfers("sig-1", {}, RECEIVING_ADDRESS, NOW) == []


@pytest.fixture
def poller(chain_client, signature_ledger, clock) -> ChainPoller:
    return ChainPoller(
        chain_client,
        receiving_address=RECEIVING_ADDRESS,
        ledger=signature_ledger,
        clock=clock,
    )


@pytest.mark.asyncio
async def test_yields_oldest_first(poller, chain_client) -> None:
    for i in range(3):
        chain_client.add_transaction(
            f"sig-{i}", make_transfer_transaction(WALLET_ADDRESS, RECEIVING_ADDRESS, 100 + i)
        )

    examined = [tx async for tx in poller.iter_new_transactions()]

    assert [tx.signature for tx in examined] == ["sig-0", "sig-1", "sig-2"]
    assert [tx.observations[0].lamports for tx in examined] == [100, 101, 102]


@pytest.mark.asyncio
async def test_consumed_signatures_are_not_fetched(
    poller, chain_client, signature_ledger
) -> None:
    chain_client.add_transaction(
        "sig-old", make_transfer_transaction(WALLET_ADDRESS, RECEIVING_ADDRESS, 100)
    )
    chain_client.add_transaction(
        "sig-new", make_transfer_transaction(WALLET_ADDRESS, RECEIVING_ADDRESS, 200)
    )
    await signature_ledger.mark_consumed("sig-old")

    examined = [tx async for tx in poller.iter_new_transactions()]

    assert [tx.signature for tx in examined] == ["sig-new"]
    assert chain_client.transaction_calls == ["sig-new"]


@pytest.mark.asyncio
async def test_unavailable_transaction_is_skipped_for_now(
    poller, chain_client
) -> None:
    chain_client.add_transaction("sig-pending", None)

    assert [tx async for tx in poller.iter_new_transactions()] == []


@pytest.mark.asyncio
async def test_failed_transaction_is_yielded_without_observations(
    poller, chain_client
) -> None:
    chain_client.add_transaction(
        "sig-failed",
        make_transfer_transaction(
            WALLET_ADDRESS, RECEIVING_ADDRESS, 100, err={"InstructionError": [0, "x"]}
        ),
    )

    [examined] = [tx async for tx in poller.iter_new_transactions()]

    assert examined.signature == "sig-failed"
    assert examined.observations == ()


@pytest.mark.asyncio
async def test_respects_signature_limit(chain_client, signature_ledger, clock) -> None:
    poller = ChainPoller(
        chain_client,
        receiving_address=RECEIVING_ADDRESS,
        ledger=signature_ledger,
        signature_limit=2,
        clock=clock,
    )
    for i in range(5):
        chain_client.add_transaction(
            f"sig-{i}", make_transfer_transaction(WALLET_ADDRESS, RECEIVING_ADDRESS, 100)
        )

    examined = [tx async for tx in poller.iter_new_transactions()]

    assert [tx.signature for tx in examined] == ["sig-3", "sig-4"]


@pytest.mark.asyncio
async def test_upstream_failure_propagates(poller, chain_client) -> None:
    chain_client.fail_signatures = True

    with pytest.raises(UpstreamUnavailable):
        [tx async for tx in poller.iter_new_transactions()]
