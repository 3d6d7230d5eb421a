"""Exception hierarchy for httphop.

Every failure of a logical request operation surfaces as exactly one
``HttpHopError`` subclass. None of them are retried internally.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models.events import RedirectChain


class HttpHopError(Exception):
    """Base class for all httphop errors."""


class TransportError(HttpHopError):
    """Connection, DNS or TLS failure reported by the underlying transport."""

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class IncompleteBody(HttpHopError):
    """The body stream ended before all of its bytes were received."""

    def __init__(self, message: str, expected: int | None = None, received: int = 0) -> None:
        super().__init__(message)
        self.expected = expected
        self.received = received


class TooManyRedirects(HttpHopError):
    """The redirect chain grew beyond the configured maximum."""

    def __init__(self, max_redirects: int, chain: RedirectChain) -> None:
        super().__init__(f"Exceeded maximum of {max_redirects} redirects")
        self.max_redirects = max_redirects
        self.chain = chain


class MalformedRedirect(HttpHopError):
    """A redirect status arrived without a usable Location header."""

    def __init__(self, status_code: int, location: str | None = None) -> None:
        if location is None:
            message = f"Redirect status {status_code} without a Location header"
        else:
            message = f"Redirect status {status_code} with unusable Location {location!r}"
        super().__init__(message)
        self.status_code = status_code
        self.location = location


class SinkWriteError(HttpHopError):
    """The caller's destination sink rejected a write."""


class RequestCancelled(HttpHopError):
    """The caller aborted the operation by closing its sink."""
