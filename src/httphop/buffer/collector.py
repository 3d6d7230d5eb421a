"""Collect a response body of unknown length into a ResponseBuffer."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable
from typing import Callable, Optional

from ..errors import IncompleteBody
from ..http.protocols import TransportResponse, expected_body_size
from .growable import DEFAULT_BUFFER_SIZE, ResponseBuffer, create_buffer

logger = logging.getLogger(__name__)

# Receives (storage, written_length) once the body is complete
CompletionCallback = Callable[[bytearray, int], None]


class ResponseCollector:
    """
    Drains a byte stream into a growable buffer.

    The stream may deliver any number of chunks of any size, including
    none at all. A stream that raises before it ends, or that ends short
    of the declared size, surfaces IncompleteBody instead of a truncated
    result.

    Example:
        collector = ResponseCollector(response.iter_chunks(), declared_size=response.content_length)
        storage, length = await collector.collect()
        body = bytes(storage[:length])
    """

    def __init__(
        self,
        chunks: AsyncIterable[bytes],
        declared_size: Optional[int] = None,
        on_complete: Optional[CompletionCallback] = None,
        baseline: int = DEFAULT_BUFFER_SIZE,
    ) -> None:
        """
        Initialize the collector.

        Args:
            chunks: Async iterable yielding body chunks
            declared_size: Size known up front (Content-Length), if any
            on_complete: Called once with (storage, written_length)
            baseline: Starting capacity when no size is declared
        """
        self._chunks = chunks
        self.declared_size = declared_size
        self._on_complete = on_complete
        self.buffer: ResponseBuffer = create_buffer(declared_size, baseline=baseline)
        self._collected = False

    async def collect(self) -> tuple[bytearray, int]:
        """
        Read the stream to its end.

        Returns:
            Tuple of (storage, written_length)

        Raises:
            IncompleteBody: If the stream died early or ended short
            RuntimeError: If called more than once
        """
        if self._collected:
            raise RuntimeError("Response body already collected")
        self._collected = True

        buffer = self.buffer
        try:
            async for chunk in self._chunks:
                buffer.append(chunk)
        except Exception as e:
            logger.warning(f"Body stream failed after {buffer.written_length} bytes: {e}")
            raise IncompleteBody(
                f"Body stream ended prematurely after {buffer.written_length} bytes: {e}",
                expected=self.declared_size,
                received=buffer.written_length,
            ) from e

        if self.declared_size is not None and buffer.written_length < self.declared_size:
            raise IncompleteBody(
                f"Expected {self.declared_size} bytes, received {buffer.written_length}",
                expected=self.declared_size,
                received=buffer.written_length,
            )

        storage, written_length = buffer.finalize()
        logger.debug(
            f"Collected {written_length} bytes ({buffer.strategy.name}, "
            f"{buffer.reallocations} reallocations)"
        )

        if self._on_complete:
            self._on_complete(storage, written_length)
        return storage, written_length


async def buffer_response_content(
    response: TransportResponse,
    *,
    on_end: Optional[CompletionCallback] = None,
    method: str = "GET",
    baseline: int = DEFAULT_BUFFER_SIZE,
) -> tuple[bytearray, int]:
    """
    Buffer a whole response body in memory.

    The Content-Length header, when present, pre-sizes the buffer so no
    reallocation happens; otherwise the buffer grows by doubling. It is
    ignored for HEAD requests and for 1xx, 204 and 304 responses, which
    have no body.

    Args:
        response: Response whose body has not been consumed yet
        on_end: Called once with (storage, written_length)
        method: Method of the request that produced the response
        baseline: Starting capacity when Content-Length is absent

    Returns:
        Tuple of (storage, written_length)

    Example:
        response = await transport.send(spec, None)
        storage, length = await buffer_response_content(response)
        print(bytes(storage[:length]).decode())
    """
    collector = ResponseCollector(
        response.iter_chunks(),
        declared_size=expected_body_size(method, response.status_code, response.content_length),
        on_complete=on_end,
        baseline=baseline,
    )
    try:
        return await collector.collect()
    finally:
        await response.close()
