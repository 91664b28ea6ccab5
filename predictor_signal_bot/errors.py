from __future__ import annotations


class SignalBotError(Exception):
    """Base class for errors raised by the signal bot."""


class UpstreamDataError(SignalBotError):
    """Market data could not be fetched, or too few samples came back."""


class PersistenceError(SignalBotError):
    """The signal store rejected a read or write."""
