"""Pytest fixtures for end-to-end verification stories."""

from __future__ import annotations

from typing import AsyncGenerator, List

import pytest

from walletproof.application.issuer import IssuerService
from walletproof.application.notifier import Notifier
from walletproof.infrastructure.intent_repository_impl import (
    PendingIntentRepositoryImpl,
)
from tests.fixtures import FakeClock
from tests.fixtures.identities import RECEIVING_ADDRESS

STORY_LAMPORTS = 4210


class RecordingSubscriber:
    """Collects pushed messages in arrival order."""

    def __init__(self) -> None:
        self.messages: List[str] = []

    async def send_text(self, data: str) -> None:
        self.messages.append(data)


@pytest.fixture
def story_issuer(
    intent_repository: PendingIntentRepositoryImpl, clock: FakeClock
) -> IssuerService:
    """Issuer whose allocator always draws the same amount."""
    return IssuerService(
        intent_repository,
        receiving_address=RECEIVING_ADDRESS,
        clock=clock,
        allocator=lambda low, high, exclude=(), attempts=1: STORY_LAMPORTS,
    )


@pytest.fixture
async def subscribers(
    notifier: Notifier,
) -> AsyncGenerator[List[RecordingSubscriber], None]:
    """Two live subscribers attached to the notifier."""
    recorders = [RecordingSubscriber(), RecordingSubscriber()]
    for recorder in recorders:
        notifier.subscribe(recorder)
    yield recorders
    await notifier.close()
