"""Growable in-memory byte buffer with pluggable growth strategies."""

from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 16 * 1024  # 16 KB


class GrowthStrategy(Protocol):
    """
    Decides how much storage a ResponseBuffer allocates.

    Chosen once when the buffer is created, so the append/copy logic in
    ResponseBuffer never has to know whether a size was declared.
    """

    name: str

    def initial_capacity(self) -> int:
        """Capacity to allocate before the first byte arrives."""
        ...

    def next_capacity(self, capacity: int, required: int) -> int:
        """
        Capacity to grow to when ``required`` bytes no longer fit.

        Args:
            capacity: Current capacity
            required: Minimum capacity needed

        Returns:
            New capacity, always >= required
        """
        ...


def _double_until(capacity: int, required: int) -> int:
    new_capacity = max(capacity, 1)
    while new_capacity < required:
        new_capacity *= 2
    return new_capacity


class DoublingGrowth:
    """Start at a baseline capacity and double whenever it overflows."""

    name = "doubling"

    def __init__(self, baseline: int = DEFAULT_BUFFER_SIZE) -> None:
        if baseline <= 0:
            raise ValueError(f"Baseline capacity must be positive, got {baseline}")
        self.baseline = baseline

    def initial_capacity(self) -> int:
        return self.baseline

    def next_capacity(self, capacity: int, required: int) -> int:
        return _double_until(capacity, required)


class PreallocatedGrowth:
    """
    Allocate exactly the declared size once.

    If the peer sends more than it declared, the buffer still grows
    (doubling) so that no byte is dropped.
    """

    name = "preallocated"

    def __init__(self, size: int) -> None:
        if size < 0:
            raise ValueError(f"Declared size must not be negative, got {size}")
        self.size = size

    def initial_capacity(self) -> int:
        return self.size

    def next_capacity(self, capacity: int, required: int) -> int:
        logger.debug(f"Body exceeded declared size {self.size}, growing past {capacity} bytes")
        return _double_until(capacity, required)


class ResponseBuffer:
    """
    Byte buffer that tracks written length separately from capacity.

    Invariants:
        - written_length <= capacity
        - growth copies the written prefix unchanged
        - finalize() happens at most once; no writes afterwards

    Example:
        buffer = ResponseBuffer(DoublingGrowth(baseline=4))
        buffer.append(b"Small ")
        buffer.append(b"Resource")
        storage, length = buffer.finalize()
        assert bytes(storage[:length]) == b"Small Resource"
    """

    def __init__(self, strategy: GrowthStrategy) -> None:
        self.strategy = strategy
        self.storage = bytearray(strategy.initial_capacity())
        self.written_length = 0
        self.reallocations = 0
        self._finalized = False

    @property
    def capacity(self) -> int:
        return len(self.storage)

    @property
    def finalized(self) -> bool:
        return self._finalized

    def ensure_capacity(self, n: int) -> None:
        """Make room for ``n`` more bytes past the current write offset."""
        required = self.written_length + n
        if required <= self.capacity:
            return

        new_capacity = self.strategy.next_capacity(self.capacity, required)
        storage = bytearray(new_capacity)
        storage[: self.written_length] = self.storage[: self.written_length]
        self.storage = storage
        self.reallocations += 1

    def append(self, chunk: bytes) -> None:
        """Write ``chunk`` at the write offset, growing first if needed."""
        if self._finalized:
            raise RuntimeError("Cannot append to a finalized buffer")
        if not chunk:
            return

        n = len(chunk)
        self.ensure_capacity(n)
        self.storage[self.written_length : self.written_length + n] = chunk
        self.written_length += n

    def finalize(self) -> tuple[bytearray, int]:
        """
        Freeze the buffer.

        Returns:
            Tuple of (storage, written_length). Bytes past written_length
            are unused capacity.
        """
        if self._finalized:
            raise RuntimeError("Buffer already finalized")
        self._finalized = True
        return self.storage, self.written_length

    def getvalue(self) -> bytes:
        """Copy of the written bytes."""
        return bytes(self.storage[: self.written_length])

    def __len__(self) -> int:
        return self.written_length

    def __repr__(self) -> str:
        return (
            f"ResponseBuffer(strategy={self.strategy.name!r}, "
            f"written_length={self.written_length}, capacity={self.capacity})"
        )


def create_buffer(size_hint: int | None = None, baseline: int = DEFAULT_BUFFER_SIZE) -> ResponseBuffer:
    """
    Create a buffer whose strategy matches what is known up front.

    Args:
        size_hint: Declared body size (e.g. Content-Length), or None
        baseline: Starting capacity when no size is declared

    Returns:
        ResponseBuffer using PreallocatedGrowth when a hint is available,
        DoublingGrowth otherwise
    """
    if size_hint is not None and size_hint >= 0:
        return ResponseBuffer(PreallocatedGrowth(size_hint))
    return ResponseBuffer(DoublingGrowth(baseline))
