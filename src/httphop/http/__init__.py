"""HTTP transport abstraction for httphop."""

from .protocols import Transport, TransportResponse, expected_body_size, parse_content_length
from .transport import AiohttpResponse, AiohttpTransport

__all__ = [
    "AiohttpResponse",
    "AiohttpTransport",
    "Transport",
    "TransportResponse",
    "expected_body_size",
    "parse_content_length",
]
