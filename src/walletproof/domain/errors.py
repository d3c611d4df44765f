"""Domain-specific exceptions."""

from __future__ import annotations


class ValidationError(ValueError):
    """Raised when identity fields of a verification request are missing or malformed."""


class StoreReadError(Exception):
    """Raised when a persisted collection cannot be read or decoded."""


class StoreWriteError(Exception):
    """Raised when a persisted collection cannot be written."""


class UpstreamUnavailable(Exception):
    """Raised when the chain RPC endpoint fails after all retry attempts."""


class SubscriberDeliveryError(Exception):
    """Raised when an event cannot be delivered to a single subscriber."""
