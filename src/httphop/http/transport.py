"""aiohttp-backed transport that sends one hop at a time."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterable, AsyncIterator
from types import TracebackType
from typing import Optional

import aiohttp

from .. import __version__
from ..errors import IncompleteBody, TransportError
from ..models.config import NetworkConfig
from ..models.request import RequestSpec
from .protocols import parse_content_length

logger = logging.getLogger(__name__)

# Exceptions that mean the network, not the caller, failed
NETWORK_EXCEPTIONS = (
    aiohttp.ClientError,
    asyncio.TimeoutError,
    OSError,
)


class AiohttpResponse:
    """TransportResponse wrapping an aiohttp.ClientResponse."""

    def __init__(self, response: aiohttp.ClientResponse) -> None:
        self._response = response
        self.status_code = response.status
        self.headers = response.headers
        self.url = str(response.url)

    @property
    def content_length(self) -> Optional[int]:
        return parse_content_length(self.headers)

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.content.iter_any():
                yield chunk
        except aiohttp.ClientPayloadError as e:
            raise IncompleteBody(f"Response body from {self.url} was cut short: {e}") from e
        except NETWORK_EXCEPTIONS as e:
            raise TransportError(f"Error reading body from {self.url}: {e}", url=self.url) from e

    async def drain(self) -> None:
        try:
            async for _ in self.iter_chunks():
                pass
        except (IncompleteBody, TransportError) as e:
            # The redirect body is discarded anyway; just drop the connection
            logger.debug(f"Discarding unreadable redirect body from {self.url}: {e}")
            self._response.close()
            return
        except BaseException:
            # Cancelled mid-drain: the connection cannot be reused
            self._response.close()
            raise
        self._response.release()

    async def close(self) -> None:
        self._response.close()


class AiohttpTransport:
    """
    Transport built on a single aiohttp.ClientSession.

    Redirects are never followed here (allow_redirects=False); the
    orchestrator decides about every hop.

    Example:
        async with AiohttpTransport(NetworkConfig(timeout=10)) as transport:
            response = await transport.send(spec, None)
            async for chunk in response.iter_chunks():
                ...
    """

    def __init__(
        self,
        network: Optional[NetworkConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        """
        Initialize the transport.

        Args:
            network: Timeouts, proxy and User-Agent settings
            session: Existing session to use; it is not closed by close()
        """
        self.network = network or NetworkConfig()
        self._session = session
        self._owns_session = session is None

        user_agent = self.network.user_agent
        if user_agent is None:
            user_agent = f"httphop/{__version__}"
        self._user_agent = user_agent

    async def __aenter__(self) -> AiohttpTransport:
        self._get_session()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        """Get or lazily create the session (needs a running loop)."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit_per_host=self.network.limit_per_host,
                ttl_dns_cache=300,  # DNS cache TTL
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers={"User-Agent": self._user_agent},
                timeout=aiohttp.ClientTimeout(
                    total=None,
                    connect=self.network.connect_timeout,
                    sock_read=self.network.timeout,
                ),
            )
            self._owns_session = True
        return self._session

    async def send(
        self,
        spec: RequestSpec,
        body: Optional[AsyncIterable[bytes]],
    ) -> AiohttpResponse:
        session = self._get_session()
        url = str(spec.url)

        logger.debug(f"{spec.method} {url}")
        try:
            response = await session.request(
                spec.method,
                url,
                headers=dict(spec.headers),
                data=body,
                allow_redirects=False,
                proxy=self.network.proxy,
            )
        except NETWORK_EXCEPTIONS as e:
            raise TransportError(f"{spec.method} {url} failed: {e}", url=url) from e

        return AiohttpResponse(response)

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None
