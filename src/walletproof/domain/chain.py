"""Protocol for chain RPC clients used by the poller."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol


class ChainClientProtocol(Protocol):
    """Minimal read-only view of a Solana JSON-RPC endpoint.

    Implementations raise ``UpstreamUnavailable`` when the endpoint cannot be
    reached after their own retry policy is exhausted.
    """

    async def get_signatures_for_address(
        self, address: str, limit: int
    ) -> List[Dict[str, Any]]:
        """Return signature infos for ``address``, newest first."""
        ...

    async def get_transaction(self, signature: str) -> Optional[Dict[str, Any]]:
        """Return the parsed transaction, or None when it is not yet available."""
        ...
