"""Best-effort fan-out of verified events to live subscribers.

Delivery is at-most-once: each subscriber has a bounded queue drained by its
own task, a full queue drops the event for that subscriber only, and a failed
send detaches the subscriber. Events published while a subscriber is
disconnected are not replayed.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional, Protocol, Set

from prometheus_client import Counter, Gauge

from ..domain.entities import VerifiedEvent
from ..domain.errors import SubscriberDeliveryError

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100

notifier_events_published_total = Counter(
    "notifier_events_published_total", "Verified events published to the notifier"
)
notifier_events_dropped_total = Counter(
    "notifier_events_dropped_total",
    "Events dropped for a subscriber whose queue was full",
)
notifier_subscribers = Gauge(
    "notifier_subscribers",
    "Currently connected event stream subscribers",
    multiprocess_mode="livesum",
)


class Subscriber(Protocol):
    async def send_text(self, data: str) -> None:
        """Send one serialized event; raise SubscriberDeliveryError on failure."""
        ...


class Subscription:
    """A subscriber together with its pending queue and sender task."""

    def __init__(self, subscriber: Subscriber, queue_size: int):
        self.subscriber = subscriber
        self.queue: asyncio.Queue[str] = asyncio.Queue(maxsize=queue_size)
        self.task: Optional[asyncio.Task[None]] = None


class Notifier:
    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE):
        self.queue_size = queue_size
        self._subscriptions: Set[Subscription] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, subscriber: Subscriber) -> Subscription:
        """Attach a subscriber; must be called from the running event loop."""
        subscription = Subscription(subscriber, self.queue_size)
        subscription.task = asyncio.create_task(self._pump(subscription))
        self._subscriptions.add(subscription)
        notifier_subscribers.inc()
        logger.info("Subscriber connected. Total: %d", len(self._subscriptions))
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Detach a subscriber; safe to call more than once."""
        if subscription not in self._subscriptions:
            return
        self._subscriptions.discard(subscription)
        notifier_subscribers.dec()
        if subscription.task is not None and subscription.task is not asyncio.current_task():
            subscription.task.cancel()
        logger.info("Subscriber disconnected. Total: %d", len(self._subscriptions))

    def publish(self, event: VerifiedEvent) -> int:
        """Queue ``event`` for every subscriber without waiting; return how many accepted it."""
        notifier_events_published_total.inc()
        message = event.to_json()
        accepted = 0
        for subscription in list(self._subscriptions):
            try:
                subscription.queue.put_nowait(message)
                accepted += 1
            except asyncio.QueueFull:
                notifier_events_dropped_total.inc()
                logger.warning("Subscriber queue full; dropping event")
        return accepted

    async def close(self) -> None:
        """Detach every subscriber and wait for their sender tasks to finish."""
        subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            self.unsubscribe(subscription)
        for subscription in subscriptions:
            if subscription.task is not None:
                with contextlib.suppress(asyncio.CancelledError):
                    await subscription.task

    async def _pump(self, subscription: Subscription) -> None:
        while True:
            message = await subscription.queue.get()
            try:
                await subscription.subscriber.send_text(message)
            except SubscriberDeliveryError as e:
                logger.info("Dropping subscriber after failed delivery: %s", e)
                self.unsubscribe(subscription)
                return
            except Exception:
                logger.exception("Unexpected error delivering event to subscriber")
                self.unsubscribe(subscription)
                return
