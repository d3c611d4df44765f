"""Subscriber side of the verified-event stream.

Downstream consumers (the chat bot granting roles, for instance) iterate
``VerificationStreamClient.events()`` and receive every event pushed while
they are connected. Lost connections are retried with bounded exponential
backoff; events pushed in between are not replayed.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import AsyncIterator, Awaitable, Callable, Optional

import aiohttp
from pydantic import ValidationError as ModelValidationError

from ..domain.entities import VerifiedEvent
from ..domain.errors import UpstreamUnavailable
from .http.retry import backoff_delay

logger = logging.getLogger(__name__)


class VerificationStreamClient:
    INITIAL_BACKOFF_SECONDS = 1.0
    BACKOFF_MULTIPLIER = 2.0
    MAX_BACKOFF_SECONDS = 60.0

    def __init__(
        self,
        url: str,
        session: Optional[aiohttp.ClientSession] = None,
        max_reconnect_attempts: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.url = url
        self._session = session
        self._owns_session = session is None
        self._max_reconnect_attempts = max_reconnect_attempts
        self._sleep = sleep
        self._reconnect_attempts = 0
        self._running = False

    def _calculate_backoff(self) -> float:
        """Calculate exponential backoff delay."""
        return backoff_delay(
            self._reconnect_attempts - 1,
            self.INITIAL_BACKOFF_SECONDS,
            self.BACKOFF_MULTIPLIER,
            self.MAX_BACKOFF_SECONDS,
        )

    @staticmethod
    def _decode(data: str) -> Optional[VerifiedEvent]:
        try:
            return VerifiedEvent.model_validate(json.loads(data))
        except (ValueError, ModelValidationError) as e:
            logger.warning("Ignoring malformed stream message: %s", e)
            return None

    def stop(self) -> None:
        self._running = False

    async def events(self) -> AsyncIterator[VerifiedEvent]:
        """Yield verified events until ``stop()`` is called.

        Raises UpstreamUnavailable once ``max_reconnect_attempts`` consecutive
        connection attempts have failed.
        """
        if self._session is None:
            self._session = aiohttp.ClientSession()
        self._running = True
        try:
            while self._running:
                try:
                    async with self._session.ws_connect(self.url, heartbeat=30) as ws:
                        self._reconnect_attempts = 0
                        logger.info("Connected to verification stream at %s", self.url)
                        async for msg in ws:
                            if msg.type == aiohttp.WSMsgType.TEXT:
                                event = self._decode(msg.data)
                                if event is not None:
                                    yield event
                            elif msg.type == aiohttp.WSMsgType.ERROR:
                                logger.error("Stream error: %s", ws.exception())
                                break
                            if not self._running:
                                break
                    logger.warning("Verification stream closed")
                except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                    logger.error("Verification stream connection failed: %s", e)

                if not self._running:
                    break
                self._reconnect_attempts += 1
                if (
                    self._max_reconnect_attempts is not None
                    and self._reconnect_attempts > self._max_reconnect_attempts
                ):
                    raise UpstreamUnavailable(
                        f"Verification stream unreachable after "
                        f"{self._max_reconnect_attempts} reconnect attempts"
                    )
                backoff = self._calculate_backoff()
                logger.info("Reconnecting in %.1fs", backoff)
                await self._sleep(backoff)
        finally:
            self._running = False
            if self._owns_session and self._session is not None:
                await self._session.close()
                self._session = None
