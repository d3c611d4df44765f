"""Key-value storage abstraction with Redis and JSON-file backends.

Repositories persist each collection as one document under one key and
rewrite it wholesale on every mutation, so the stores only need whole-value
``get``/``set``/``delete``. Backend failures surface as ``StoreReadError`` or
``StoreWriteError``.
"""

from __future__ import annotations

import asyncio
import os
import re
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Protocol

from redis.exceptions import RedisError

from ..domain.errors import StoreReadError, StoreWriteError
from .database import DatabaseClient


class KeyValueStore(ABC):
    """Abstract key-value store with the minimal operations used by repositories."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    async def delete(self, key: str) -> int:
        pass

    async def close(self) -> None:
        """Release backend resources; a no-op for stores that hold none."""


class RedisKeyValueStore(KeyValueStore):
    """Redis-backed implementation of KeyValueStore."""

    def __init__(self, db_client: DatabaseClient):
        self._db_client = db_client

    async def get(self, key: str) -> Optional[str]:
        try:
            async with self._db_client.get_connection() as conn:
                return await conn.get(key)
        except RedisError as e:
            raise StoreReadError(f"Failed to read {key!r} from Redis: {e}") from e

    async def set(self, key: str, value: str) -> None:
        try:
            async with self._db_client.get_connection() as conn:
                await conn.set(key, value)
        except RedisError as e:
            raise StoreWriteError(f"Failed to write {key!r} to Redis: {e}") from e

    async def delete(self, key: str) -> int:
        try:
            async with self._db_client.get_connection() as conn:
                return await conn.delete(key)
        except RedisError as e:
            raise StoreWriteError(f"Failed to delete {key!r} from Redis: {e}") from e

    async def close(self) -> None:
        await self._db_client.close()


_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class FileKeyValueStore(KeyValueStore):
    """One JSON file per key inside a data directory.

    Writes go to a temporary file in the same directory followed by
    ``os.replace``, so a reader sees either the previous or the new document.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{_UNSAFE_KEY_CHARS.sub('_', key)}.json"

    def _read(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StoreReadError(f"Failed to read {path}: {e}") from e

    def _write(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.directory, prefix=f".{path.stem}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(value)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StoreWriteError(f"Failed to write {path}: {e}") from e

    def _delete(self, key: str) -> int:
        path = self._path(key)
        try:
            path.unlink()
            return 1
        except FileNotFoundError:
            return 0
        except OSError as e:
            raise StoreWriteError(f"Failed to delete {path}: {e}") from e

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._read, key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, key, value)

    async def delete(self, key: str) -> int:
        return await asyncio.to_thread(self._delete, key)


class HasStorageSettings(Protocol):
    database_url: str


def build_key_value_store(settings: HasStorageSettings) -> KeyValueStore:
    """Select a backend from ``database_url``.

    ``redis://``, ``rediss://`` and ``unix://`` (Redis over a Unix socket) URLs
    use Redis; ``file://`` URLs and plain paths use the JSON file store.
    """
    url = settings.database_url
    if url.startswith(("redis://", "rediss://", "unix://")):
        return RedisKeyValueStore(DatabaseClient(url))
    if url.startswith("file://"):
        url = url[len("file://") :]
    return FileKeyValueStore(Path(url))
