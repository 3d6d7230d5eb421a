"""httphop configuration, request and event models."""

from .config import DEFAULT_MAX_REDIRECTS, NetworkConfig, RequestOptions
from .events import (
    EventType,
    FetchResult,
    HopEvent,
    RedirectChain,
    RedirectHop,
    RequestState,
    TerminalResult,
)
from .request import RequestSpec, TargetUrl

__all__ = [
    # Config
    "DEFAULT_MAX_REDIRECTS",
    "NetworkConfig",
    "RequestOptions",
    # Request
    "RequestSpec",
    "TargetUrl",
    # Events and results
    "EventType",
    "FetchResult",
    "HopEvent",
    "RedirectChain",
    "RedirectHop",
    "RequestState",
    "TerminalResult",
]
