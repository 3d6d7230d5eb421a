"""
httphop - Redirect-following HTTP requests and adaptive response buffering.

Usage:
    from httphop import BytesSink, RequestOptions, request

    sink = BytesSink()
    handle = request(
        "http://redirectinghost/some/resource",
        sink,
        RequestOptions(method="POST", follow_redirects=True),
        on_response=lambda status: print(status),
    )
    handle.write(b"payload")
    handle.end()
    result = await handle
"""

__version__ = "1.0.0"

from .buffer import (
    DoublingGrowth,
    PreallocatedGrowth,
    ResponseBuffer,
    ResponseCollector,
    buffer_response_content,
    create_buffer,
)
from .core import (
    CapturedBody,
    HopClient,
    RequestHandle,
    RequestOrchestrator,
    decide,
    fetch_blocking,
    request,
)
from .errors import (
    HttpHopError,
    IncompleteBody,
    MalformedRedirect,
    RequestCancelled,
    SinkWriteError,
    TooManyRedirects,
    TransportError,
)
from .http import AiohttpTransport, Transport, TransportResponse
from .models import (
    EventType,
    FetchResult,
    HopEvent,
    NetworkConfig,
    RedirectChain,
    RequestOptions,
    RequestSpec,
    RequestState,
    TargetUrl,
    TerminalResult,
)
from .sinks import BytesSink, FileSink, Sink, StreamSink

__all__ = [
    "__version__",
    # Requests
    "request",
    "fetch_blocking",
    "HopClient",
    "RequestHandle",
    "RequestOrchestrator",
    "CapturedBody",
    "decide",
    # Buffering
    "buffer_response_content",
    "create_buffer",
    "ResponseBuffer",
    "ResponseCollector",
    "DoublingGrowth",
    "PreallocatedGrowth",
    # Transport
    "AiohttpTransport",
    "Transport",
    "TransportResponse",
    # Sinks
    "Sink",
    "BytesSink",
    "FileSink",
    "StreamSink",
    # Models
    "EventType",
    "FetchResult",
    "HopEvent",
    "NetworkConfig",
    "RedirectChain",
    "RequestOptions",
    "RequestSpec",
    "RequestState",
    "TargetUrl",
    "TerminalResult",
    # Errors
    "HttpHopError",
    "IncompleteBody",
    "MalformedRedirect",
    "RequestCancelled",
    "SinkWriteError",
    "TooManyRedirects",
    "TransportError",
]
