"""Response buffering for httphop."""

from .collector import CompletionCallback, ResponseCollector, buffer_response_content
from .growable import (
    DEFAULT_BUFFER_SIZE,
    DoublingGrowth,
    GrowthStrategy,
    PreallocatedGrowth,
    ResponseBuffer,
    create_buffer,
)

__all__ = [
    "CompletionCallback",
    "DEFAULT_BUFFER_SIZE",
    "DoublingGrowth",
    "GrowthStrategy",
    "PreallocatedGrowth",
    "ResponseBuffer",
    "ResponseCollector",
    "buffer_response_content",
    "create_buffer",
]
