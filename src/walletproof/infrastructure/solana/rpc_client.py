"""Solana JSON-RPC client for the calls the chain poller needs."""

from __future__ import annotations

import itertools
from types import TracebackType
from typing import Any, Dict, List, Optional, Type

import httpx

from ...domain.errors import UpstreamUnavailable
from ..http.http_client import AsyncHttpClient
from ..http.retry import retry_async

CONFIRMED = "confirmed"


class RpcError(Exception):
    """JSON-RPC error object returned by the node."""

    def __init__(self, method: str, error: Any):
        self.method = method
        self.error = error
        super().__init__(f"{method} failed: {error}")


class SolanaRpcClient:
    """Reads signatures and parsed transactions at ``confirmed`` commitment."""

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 10.0,
        max_attempts: int = 3,
        retry_delay: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._http = AsyncHttpClient(rpc_url, timeout=timeout, transport=transport)
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay
        self._ids = itertools.count(1)

    async def _call(self, method: str, params: List[Any]) -> Any:
        async def attempt() -> Any:
            payload = {
                "jsonrpc": "2.0",
                "id": next(self._ids),
                "method": method,
                "params": params,
            }
            resp = await self._http.post("", json=payload)
            body = resp.json()
            if not isinstance(body, dict):
                raise RpcError(method, "malformed response")
            if body.get("error") is not None:
                raise RpcError(method, body["error"])
            return body.get("result")

        try:
            return await retry_async(
                attempt,
                attempts=self._max_attempts,
                delay=self._retry_delay,
                retry_on=(httpx.HTTPError, RpcError, ValueError),
                description=method,
            )
        except (httpx.HTTPError, RpcError, ValueError) as e:
            raise UpstreamUnavailable(f"{method} unavailable: {e}") from e

    async def get_signatures_for_address(
        self, address: str, limit: int
    ) -> List[Dict[str, Any]]:
        result = await self._call(
            "getSignaturesForAddress",
            [address, {"limit": limit, "commitment": CONFIRMED}],
        )
        return list(result or [])

    async def get_transaction(self, signature: str) -> Optional[Dict[str, Any]]:
        return await self._call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "jsonParsed",
                    "commitment": CONFIRMED,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "SolanaRpcClient":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        await self.aclose()
