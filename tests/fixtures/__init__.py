"""Test fixtures for in-memory implementations."""

from .clock import FakeClock
from .fake_chain import FakeChainClient, make_transfer_transaction
from .in_memory_storage import InMemoryKeyValueStore

__all__ = [
    "FakeChainClient",
    "FakeClock",
    "InMemoryKeyValueStore",
    "make_transfer_transaction",
]
