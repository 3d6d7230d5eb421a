"""State, event and result types for redirect-following requests."""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class RequestState(str, Enum):
    """Lifecycle states of one logical request operation."""

    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"
    REDIRECTING = "redirecting"
    STREAMING = "streaming"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_final(self) -> bool:
        """True for states no further transition leaves."""
        return self in (RequestState.DONE, RequestState.FAILED, RequestState.CANCELLED)


class EventType(str, Enum):
    """Types of events emitted while a request operation progresses."""

    REQUEST_STARTED = "request_started"
    RESPONSE_RECEIVED = "response_received"
    REDIRECT_FOLLOWED = "redirect_followed"
    STREAM_COMPLETED = "stream_completed"
    FAILED = "failed"


@dataclass
class HopEvent:
    """
    Event emitted during a request operation.

    Example:
        def on_event(event: HopEvent) -> None:
            if event.type == EventType.REDIRECT_FOLLOWED:
                print(f"{event.status_code} -> {event.location}")

        handle = request(url, sink, options, on_event=on_event)
    """

    type: EventType

    # Timestamp (always UTC)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    url: Optional[str] = None
    method: Optional[str] = None
    hop: int = 0
    status_code: Optional[int] = None
    location: Optional[str] = None
    bytes_streamed: Optional[int] = None
    error: Optional[str] = None

    @property
    def is_error(self) -> bool:
        """Check if this is an error event."""
        return self.type == EventType.FAILED


@dataclass(frozen=True)
class RedirectHop:
    """One followed redirect: the status seen and where it pointed."""

    status_code: int
    location: str
    method: str


@dataclass
class RedirectChain:
    """Ordered redirects followed within a single logical operation."""

    hops: list[RedirectHop] = field(default_factory=list)

    def record(self, status_code: int, location: str, method: str) -> RedirectHop:
        hop = RedirectHop(status_code=status_code, location=location, method=method)
        self.hops.append(hop)
        return hop

    @property
    def locations(self) -> list[str]:
        return [hop.location for hop in self.hops]

    def __len__(self) -> int:
        return len(self.hops)

    def __iter__(self) -> Iterator[RedirectHop]:
        return iter(self.hops)


@dataclass(frozen=True)
class TerminalResult:
    """
    Outcome of a successful request operation.

    The terminal response body has already been streamed into the
    caller's sink by the time this is produced.

    Attributes:
        status_code: Status of the terminal (non-followed) response
        headers: Headers of the terminal response
        url: Location that produced the terminal response
        chain: Redirects followed before reaching it
        bytes_streamed: Number of body bytes written to the sink
    """

    status_code: int
    headers: Mapping[str, str]
    url: str
    chain: RedirectChain
    bytes_streamed: int


@dataclass(frozen=True)
class FetchResult:
    """Terminal status plus the fully buffered body."""

    status_code: int
    content: bytes
    url: str
    chain: RedirectChain

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")
