"""Protocol definitions for the HTTP transport abstraction."""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator, Mapping
from typing import Optional, Protocol

from ..models.request import RequestSpec


class TransportResponse(Protocol):
    """
    A response whose headers have arrived but whose body is unread.

    Attributes:
        status_code: HTTP status code (200, 302, etc.)
        headers: Response headers (case-insensitive lookup)
        url: Location that produced this response
    """

    status_code: int
    headers: Mapping[str, str]
    url: str

    @property
    def content_length(self) -> Optional[int]:
        """Declared body size from Content-Length, if any."""
        ...

    def iter_chunks(self) -> AsyncIterator[bytes]:
        """
        Yield body chunks as they arrive.

        Raises:
            IncompleteBody: If the connection dies mid-body
            TransportError: On other network failures
        """
        ...

    async def drain(self) -> None:
        """Read and discard the remaining body, then release the connection."""
        ...

    async def close(self) -> None:
        """Close the underlying connection without reading further."""
        ...


class Transport(Protocol):
    """
    Protocol for HTTP transports.

    This abstraction allows for:
    - Mock implementations in tests
    - Different backends (aiohttp, httpx, etc.)
    - Keeping wire parsing, TLS and pooling out of the redirect logic

    A transport never follows redirects itself.
    """

    async def send(
        self,
        spec: RequestSpec,
        body: Optional[AsyncIterable[bytes]],
    ) -> TransportResponse:
        """
        Send one request and wait for the response headers.

        Args:
            spec: Method, URL and headers for this hop
            body: Request body chunks, or None for no body

        Returns:
            TransportResponse with an unread body

        Raises:
            TransportError: On connection, DNS or TLS failures
        """
        ...

    async def close(self) -> None:
        """Release any pooled connections."""
        ...


def parse_content_length(headers: Mapping[str, str]) -> Optional[int]:
    """
    Read Content-Length from a header mapping.

    Returns:
        The declared size, or None when absent or not a valid integer
    """
    value = headers.get("Content-Length") or headers.get("content-length")
    if value is None:
        return None
    value = value.strip()
    if not value.isdigit():
        return None
    return int(value)


def expected_body_size(method: str, status_code: int, content_length: Optional[int]) -> Optional[int]:
    """
    Number of body bytes a response must deliver, if known.

    HEAD responses and 1xx, 204 and 304 responses never carry a body, even
    when they repeat the Content-Length of the corresponding GET.

    Returns:
        The declared size, or None when it does not describe a body
    """
    if method.upper() == "HEAD" or 100 <= status_code < 200 or status_code in (204, 304):
        return None
    return content_length
