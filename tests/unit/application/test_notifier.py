"""Tests for the verified-event notifier."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import List

import pytest

from walletproof.application.notifier import Notifier
from walletproof.domain.entities import VerifiedEvent
from walletproof.domain.errors import SubscriberDeliveryError


def _event(signature: str = "sig-1") -> VerifiedEvent:
    return VerifiedEvent(
        wallet_address="wallet",
        external_id="123456789012345678",
        amount=Decimal("0.000004210"),
        verified_at=datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc),
        signature=signature,
    )


async def _drain() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


class RecordingSubscriber:
    def __init__(self) -> None:
        self.messages: List[str] = []

    async def send_text(self, data: str) -> None:
        self.messages.append(data)


class BlockedSubscriber(RecordingSubscriber):
    def __init__(self) -> None:
        super().__init__()
        self.release = asyncio.Event()

    async def send_text(self, data: str) -> None:
        await self.release.wait()
        await super().send_text(data)


class BrokenSubscriber:
    def __init__(self, error: Exception) -> None:
        self.error = error

    async def send_text(self, data: str) -> None:
        raise self.error


@pytest.mark.asyncio
async def test_publish_without_subscribers() -> None:
    notifier = Notifier()
    assert notifier.publish(_event()) == 0


@pytest.mark.asyncio
async def test_events_reach_every_subscriber_in_order() -> None:
    notifier = Notifier()
    first, second = RecordingSubscriber(), RecordingSubscriber()
    notifier.subscribe(first)
    notifier.subscribe(second)

    assert notifier.publish(_event("sig-1")) == 2
    assert notifier.publish(_event("sig-2")) == 2
    await _drain()

    for subscriber in (first, second):
        assert [json.loads(m)["signature"] for m in subscriber.messages] == [
            "sig-1",
            "sig-2",
        ]
    await notifier.close()


@pytest.mark.asyncio
async def test_slow_subscriber_does_not_block_others() -> None:
    notifier = Notifier()
    slow, fast = BlockedSubscriber(), RecordingSubscriber()
    notifier.subscribe(slow)
    notifier.subscribe(fast)

    notifier.publish(_event())
    await _drain()

    assert len(fast.messages) == 1
    assert slow.messages == []

    slow.release.set()
    await _drain()
    assert len(slow.messages) == 1
    await notifier.close()


@pytest.mark.asyncio
async def test_full_queue_drops_event_for_that_subscriber_only() -> None:
    notifier = Notifier(queue_size=1)
    subscriber = RecordingSubscriber()
    notifier.subscribe(subscriber)

    assert notifier.publish(_event("sig-1")) == 1
    assert notifier.publish(_event("sig-2")) == 0
    await _drain()

    assert [json.loads(m)["signature"] for m in subscriber.messages] == ["sig-1"]
    assert notifier.subscriber_count == 1
    await notifier.close()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error", [SubscriberDeliveryError("closed"), RuntimeError("unexpected")]
)
async def test_failed_delivery_detaches_subscriber(error: Exception) -> None:
    notifier = Notifier()
    notifier.subscribe(BrokenSubscriber(error))
    healthy = RecordingSubscriber()
    notifier.subscribe(healthy)

    notifier.publish(_event())
    await _drain()

    assert notifier.subscriber_count == 1
    assert len(healthy.messages) == 1
    await notifier.close()


@pytest.mark.asyncio
async def test_unsubscribe_is_idempotent() -> None:
    notifier = Notifier()
    subscription = notifier.subscribe(RecordingSubscriber())

    notifier.unsubscribe(subscription)
    notifier.unsubscribe(subscription)
    await _drain()

    assert notifier.subscriber_count == 0
    assert subscription.task is not None and subscription.task.done()


@pytest.mark.asyncio
async def test_close_stops_all_sender_tasks() -> None:
    notifier = Notifier()
    subscriptions = [notifier.subscribe(BlockedSubscriber()) for _ in range(3)]
    notifier.publish(_event())
    await _drain()

    await notifier.close()

    assert notifier.subscriber_count == 0
    assert all(s.task is not None and s.task.done() for s in subscriptions)
