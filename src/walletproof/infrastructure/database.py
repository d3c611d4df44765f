"""Redis connection management."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import redis.asyncio as redis


class DatabaseClient:
    """Owns the pooled async Redis client used by ``RedisKeyValueStore``.

    The pool is created on first use, so building the client never touches
    the network.
    """

    def __init__(self, database_url: str, client: Optional[redis.Redis] = None):
        self.database_url = database_url
        self._redis = client

    @property
    def client(self) -> redis.Redis:
        if self._redis is None:
            # Expecting URL like: redis://host:port/0
            self._redis = redis.from_url(self.database_url, decode_responses=True)
        return self._redis

    @asynccontextmanager
    async def get_connection(self) -> AsyncGenerator[redis.Redis, None]:
        """Yield the pooled client; connections return to the pool on their own."""
        yield self.client

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
