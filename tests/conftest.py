"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from walletproof.application.chain_poller import ChainPoller
from walletproof.application.issuer import IssuerService
from walletproof.application.notifier import Notifier
from walletproof.application.reconciler import ReconciliationService, Reconciler
from walletproof.infrastructure.intent_repository_impl import (
    PendingIntentRepositoryImpl,
)
from walletproof.infrastructure.signature_ledger_impl import SignatureLedgerImpl
from walletproof.infrastructure.verified_repository_impl import (
    VerifiedRecordRepositoryImpl,
)
from tests.fixtures import FakeChainClient, FakeClock, InMemoryKeyValueStore
from tests.fixtures.identities import RECEIVING_ADDRESS


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def intent_repository(store: InMemoryKeyValueStore) -> PendingIntentRepositoryImpl:
    return PendingIntentRepositoryImpl(store)


@pytest.fixture
def verified_repository(store: InMemoryKeyValueStore) -> VerifiedRecordRepositoryImpl:
    return VerifiedRecordRepositoryImpl(store)


@pytest.fixture
def signature_ledger(store: InMemoryKeyValueStore) -> SignatureLedgerImpl:
    return SignatureLedgerImpl(store)


@pytest.fixture
def chain_client() -> FakeChainClient:
    return FakeChainClient()


@pytest.fixture
def notifier() -> Notifier:
    return Notifier(queue_size=10)


@pytest.fixture
def issuer_service(
    intent_repository: PendingIntentRepositoryImpl, clock: FakeClock
) -> IssuerService:
    return IssuerService(
        intent_repository, receiving_address=RECEIVING_ADDRESS, clock=clock
    )


@pytest.fixture
def reconciliation_service(
    chain_client: FakeChainClient,
    intent_repository: PendingIntentRepositoryImpl,
    verified_repository: VerifiedRecordRepositoryImpl,
    signature_ledger: SignatureLedgerImpl,
    notifier: Notifier,
    clock: FakeClock,
) -> ReconciliationService:
    poller = ChainPoller(
        chain_client,
        receiving_address=RECEIVING_ADDRESS,
        ledger=signature_ledger,
        clock=clock,
    )
    return ReconciliationService(
        poller=poller,
        reconciler=Reconciler(),
        intent_repository=intent_repository,
        verified_repository=verified_repository,
        ledger=signature_ledger,
        notifier=notifier,
        clock=clock,
    )
