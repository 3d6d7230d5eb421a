"""Destinations for the terminal response body."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import BinaryIO, Callable, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Sink(Protocol):
    """
    Caller-owned destination for a response body.

    Closing a sink before the operation finishes aborts the operation.
    A write or close that raises aborts it with SinkWriteError.
    """

    @property
    def closed(self) -> bool:
        """True once the sink accepts no more data."""
        ...

    async def write(self, chunk: bytes) -> None:
        """Accept one body chunk."""
        ...

    async def close(self) -> None:
        """Signal end of stream."""
        ...


class BytesSink:
    """
    Collect the body in memory and hand it over once the stream ends.

    Example:
        sink = BytesSink(on_complete=lambda content: print(len(content)))
        await request("http://example.com/", sink).result()
        print(sink.getvalue())
    """

    def __init__(self, on_complete: Optional[Callable[[bytes], None]] = None) -> None:
        self._parts: list[bytes] = []
        self._on_complete = on_complete
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def write(self, chunk: bytes) -> None:
        if self._closed:
            raise ValueError("write to closed sink")
        self._parts.append(chunk)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._on_complete:
            self._on_complete(self.getvalue())

    def abort(self) -> None:
        """Close without firing on_complete (caller-side cancellation)."""
        self._closed = True

    def getvalue(self) -> bytes:
        return b"".join(self._parts)


class FileSink:
    """Write the body to a file, creating parent directories as needed."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._file: Optional[BinaryIO] = None
        self._closed = False
        self.bytes_written = 0

    def _open(self) -> BinaryIO:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        return self.path.open("wb")

    @property
    def closed(self) -> bool:
        return self._closed

    async def write(self, chunk: bytes) -> None:
        if self._closed:
            raise ValueError("write to closed sink")
        if self._file is None:
            self._file = await asyncio.to_thread(self._open)
        # File I/O runs in a worker thread to keep the event loop free
        await asyncio.to_thread(self._file.write, chunk)
        self.bytes_written += len(chunk)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._file is None:
            # Empty body still produces an (empty) file
            self._file = await asyncio.to_thread(self._open)
        await asyncio.to_thread(self._file.close)
        self._file = None
        logger.debug(f"Wrote {self.bytes_written} bytes to {self.path}")


class StreamSink:
    """Write the body to an already-open binary stream such as stdout."""

    def __init__(self, stream: BinaryIO, close_stream: bool = False) -> None:
        self._stream = stream
        self._close_stream = close_stream
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def write(self, chunk: bytes) -> None:
        if self._closed:
            raise ValueError("write to closed sink")
        await asyncio.to_thread(self._stream.write, chunk)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await asyncio.to_thread(self._stream.flush)
        if self._close_stream:
            await asyncio.to_thread(self._stream.close)
