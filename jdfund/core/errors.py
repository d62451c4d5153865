"""Error taxonomy shared by the settings store, the feed and the fetcher."""

from __future__ import annotations


class TickerError(Exception):
    """Base class for every error raised by jdfund."""


class PersistenceError(TickerError):
    """Durable storage could not be opened, decoded or written."""


class StateAccessError(TickerError):
    """Shared settings state could not be accessed safely."""


class LockContentionError(StateAccessError):
    """The settings lock could not be acquired in time."""


class PoisonedStateError(StateAccessError):
    """A mutator failed unexpectedly while holding the settings lock."""


class UnknownFieldError(TickerError):
    def __init__(self, field_id: str) -> None:
        super().__init__(f"Unknown platform: {field_id}")
        self.field_id = field_id


class UnsupportedMethodError(TickerError):
    def __init__(self, method: str) -> None:
        super().__init__(f"Unsupported method: {method}")
        self.method = method


class TransportError(TickerError):
    """Connection, handshake, read or write failure."""


class UnsupportedResponseError(TickerError):
    """A response body could not be decoded."""
