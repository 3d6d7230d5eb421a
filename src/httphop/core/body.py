"""Captured request body that can be replayed to every redirect hop."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Union

Chunk = Union[bytes, bytearray, memoryview, str]


class CapturedBody:
    """
    Ordered request-body chunks plus an end marker.

    The producer writes at its own pace with write() and finishes with
    end(). Each hop consumes the body through its own replay(), which
    yields everything written so far and then waits for more, so a
    redirected hop sees exactly the same bytes as the first one without
    the producer writing anything twice.

    Example:
        body = CapturedBody()
        body.write(b"pretty")
        body.write(b"please")
        body.end()

        async for chunk in body.replay():
            ...  # b"pretty", b"please"
    """

    def __init__(self) -> None:
        self._chunks: list[bytes] = []
        self._ended = False
        self._waiters: list[asyncio.Future[None]] = []

    @property
    def ended(self) -> bool:
        return self._ended

    @property
    def size(self) -> int:
        """Bytes written so far."""
        return sum(len(chunk) for chunk in self._chunks)

    @property
    def chunks(self) -> list[bytes]:
        return list(self._chunks)

    def _notify(self) -> None:
        for waiter in self._waiters:
            if not waiter.done():
                waiter.set_result(None)
        self._waiters.clear()

    async def _wait_for_change(self) -> None:
        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        finally:
            if waiter in self._waiters:
                self._waiters.remove(waiter)

    def write(self, chunk: Chunk) -> None:
        """
        Queue one chunk.

        Args:
            chunk: Bytes-like object, or str (encoded as UTF-8)

        Raises:
            RuntimeError: If end() was already called
        """
        if self._ended:
            raise RuntimeError("Cannot write to a request body after end()")
        if isinstance(chunk, str):
            data = chunk.encode("utf-8")
        else:
            data = bytes(chunk)
        if not data:
            return
        self._chunks.append(data)
        self._notify()

    def end(self, chunk: Chunk | None = None) -> None:
        """Mark the body complete, optionally writing a final chunk first."""
        if self._ended:
            return
        if chunk is not None:
            self.write(chunk)
        self._ended = True
        self._notify()

    async def wait_for_content(self) -> bool:
        """
        Wait until the body is known to be non-empty or to have ended.

        Returns:
            True if at least one chunk exists, False if it ended empty
        """
        while not self._chunks and not self._ended:
            await self._wait_for_change()
        return bool(self._chunks)

    async def replay(self) -> AsyncIterator[bytes]:
        """Yield every chunk, waiting for the producer until end()."""
        index = 0
        while True:
            while index < len(self._chunks):
                yield self._chunks[index]
                index += 1
            if self._ended:
                return
            await self._wait_for_change()

    async def read(self) -> bytes:
        """Wait for end() and return the whole body."""
        while not self._ended:
            await self._wait_for_change()
        return b"".join(self._chunks)
