"""
Error taxonomy for the Pokedex core.

Every failure raised by the gateway, the aggregation layers and the roster
repository derives from `PokedexError`, except out-of-range slot and stored
roster indexes which use the built-in `IndexError`.
"""

from typing import Optional


class PokedexError(Exception):
    """Base class for errors raised by the package."""

    pass


class NetworkError(PokedexError):
    """
    Raised when a request to the external API cannot be completed.

    Covers connection failures, timeouts, non-success HTTP statuses and
    requests rejected by an open circuit breaker.

    Attributes:
        url: The URL that was being requested, if known.
        status: The HTTP status code, if a response was received.
    """

    def __init__(
        self, message: str, url: Optional[str] = None, status: Optional[int] = None
    ):
        super().__init__(message)
        self.url = url
        self.status = status


class DecodeError(PokedexError):
    """Raised when a payload is not valid JSON or does not have the expected shape."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class ValidationError(PokedexError, ValueError):
    """Raised when caller input violates a precondition (e.g. saving an empty team)."""

    pass
