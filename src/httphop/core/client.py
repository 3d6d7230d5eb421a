"""Public entry points: request(), HopClient and fetch_blocking()."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from types import TracebackType
from typing import Any, Optional, Union

from ..buffer import CompletionCallback, buffer_response_content
from ..http.protocols import Transport
from ..http.transport import AiohttpTransport
from ..models.config import NetworkConfig, RequestOptions
from ..models.events import FetchResult
from ..models.request import RequestSpec, TargetUrl
from ..sinks import BytesSink, Sink
from .orchestrator import EventEmitter, RequestHandle, RequestOrchestrator, ResponseCallback

logger = logging.getLogger(__name__)


def build_spec(url: Union[str, TargetUrl], options: RequestOptions) -> RequestSpec:
    """Turn a URL and request options into the first hop's RequestSpec."""
    target = url if isinstance(url, TargetUrl) else TargetUrl.parse(url)
    return RequestSpec(
        method=options.method,
        url=target,
        headers=options.headers,
        follow_redirects=options.follow_redirects,
        max_redirects=options.max_redirects,
        preserve_method=options.preserve_method,
    )


def request(
    url: Union[str, TargetUrl],
    sink: Sink,
    options: Optional[RequestOptions] = None,
    *,
    transport: Optional[Transport] = None,
    on_response: Optional[ResponseCallback] = None,
    on_event: Optional[EventEmitter] = None,
    logger: Optional[logging.Logger] = None,
) -> RequestHandle:
    """
    Start a request whose terminal response body is piped into ``sink``.

    Must be called while an event loop is running. The operation starts
    immediately in its own task; write the request body through the
    returned handle and call end() (also for requests without a body)
    unless ``options.body`` is set, in which case that happens here.

    Args:
        url: Absolute URL string or TargetUrl
        sink: Destination for the terminal response body
        options: Method, redirect and header options
        transport: Transport to use; a private AiohttpTransport is
            created (and closed afterwards) when None
        on_response: Called once with the terminal status code
        on_event: Optional callback receiving HopEvents
        logger: Logger injected into the orchestrator

    Returns:
        RequestHandle to write the body through and await

    Example:
        sink = BytesSink()
        handle = request(
            "http://redirectinghost/some/resource",
            sink,
            RequestOptions(method="POST", follow_redirects=True),
            on_response=lambda status: print(status),
        )
        handle.write("pretty")
        handle.write("please")
        handle.end()
        await handle
        print(sink.getvalue())
    """
    options = options or RequestOptions()
    spec = build_spec(url, options)

    owned_transport = None
    if transport is None:
        transport = owned_transport = AiohttpTransport()

    orchestrator = RequestOrchestrator(
        transport,
        spec,
        sink,
        on_response=on_response,
        on_event=on_event,
        logger=logger,
    )
    if options.body is not None:
        orchestrator.body.end(options.body)

    return RequestHandle(orchestrator, owned_transport=owned_transport)


class HopClient:
    """
    Shared-transport client for many independent request operations.

    Each request() gets its own orchestrator, body and sink; only the
    transport's connection pool is shared.

    Example:
        async with HopClient(NetworkConfig(timeout=10)) as client:
            result = await client.fetch(
                "http://redirectinghost/some/resource",
                RequestOptions(follow_redirects=True),
            )
            print(result.status_code, result.text)
    """

    def __init__(
        self,
        network: Optional[NetworkConfig] = None,
        transport: Optional[Transport] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            network: Settings for the default AiohttpTransport
            transport: Transport to use instead of AiohttpTransport
            logger: Logger injected into every orchestrator
        """
        self.network = network or NetworkConfig()
        self._transport = transport
        self._owns_transport = transport is None
        self._logger = logger

    async def __aenter__(self) -> HopClient:
        if self._transport is None:
            self._transport = AiohttpTransport(self.network)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._transport is not None and self._owns_transport:
            await self._transport.close()
            self._transport = None

    @property
    def transport(self) -> Transport:
        if self._transport is None:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")
        return self._transport

    def request(
        self,
        url: Union[str, TargetUrl],
        sink: Sink,
        options: Optional[RequestOptions] = None,
        *,
        on_response: Optional[ResponseCallback] = None,
        on_event: Optional[EventEmitter] = None,
    ) -> RequestHandle:
        """Start a request on the shared transport. See request()."""
        return request(
            url,
            sink,
            options,
            transport=self.transport,
            on_response=on_response,
            on_event=on_event,
            logger=self._logger,
        )

    async def fetch(
        self,
        url: Union[str, TargetUrl],
        options: Optional[RequestOptions] = None,
        *,
        on_event: Optional[EventEmitter] = None,
    ) -> FetchResult:
        """
        Run a request to completion and return its body in memory.

        The request body is taken from ``options.body`` (empty if None).

        Returns:
            FetchResult with the terminal status, content and redirect chain
        """
        sink = BytesSink()
        handle = self.request(url, sink, options, on_event=on_event)
        handle.end()
        result = await handle
        return FetchResult(
            status_code=result.status_code,
            content=sink.getvalue(),
            url=result.url,
            chain=result.chain,
        )

    async def buffer(
        self,
        url: Union[str, TargetUrl],
        options: Optional[RequestOptions] = None,
        *,
        on_end: Optional[CompletionCallback] = None,
    ) -> tuple[int, bytearray, int]:
        """
        Send a single request (no redirect following) and buffer its body.

        Returns:
            Tuple of (status_code, storage, written_length)
        """
        options = options or RequestOptions()
        spec = build_spec(url, options)
        body = None
        if options.body:

            async def _body() -> AsyncIterator[bytes]:
                yield options.body

            body = _body()

        response = await self.transport.send(spec, body)
        storage, written_length = await buffer_response_content(response, on_end=on_end, method=spec.method)
        return response.status_code, storage, written_length


def fetch_blocking(url: str, network: Optional[NetworkConfig] = None, **kwargs: Any) -> FetchResult:
    """
    Blocking fetch for sync code that can't use async/await.

    WARNING: Do not call from within an existing event loop (e.g., Jupyter,
    asyncio-based frameworks). Use HopClient instead.

    Args:
        url: The URL to fetch
        network: Transport settings
        **kwargs: RequestOptions fields (method, follow_redirects, ...)

    Returns:
        FetchResult with the terminal status and content

    Example:
        result = fetch_blocking("http://example.com/", follow_redirects=True)
        print(result.status_code)
    """
    # Detect if we're already in an async context
    try:
        asyncio.get_running_loop()
        raise RuntimeError("fetch_blocking() called from async context. Use 'async with HopClient()' instead.")
    except RuntimeError as e:
        if "no running event loop" not in str(e).lower():
            raise

    options = RequestOptions(**kwargs)

    async def _run() -> FetchResult:
        async with HopClient(network) as client:
            return await client.fetch(url, options)

    return asyncio.run(_run())
