"""Shared fixtures: an in-memory transport with per-host expectations."""

import asyncio
from dataclasses import dataclass, field
from typing import Optional, Union

import pytest
from httphop.errors import IncompleteBody
from httphop.http.protocols import parse_content_length

REDIRECT_STATUS_TEXT = {
    300: "Multiple Choices",
    301: "Moved Permanently",
    302: "Found",
    303: "See Other",
    307: "Temporary Redirect",
    308: "Permanent Redirect",
}


class FakeResponse:
    """TransportResponse serving canned content in small chunks."""

    def __init__(
        self,
        status_code: int,
        content: bytes = b"",
        headers: Optional[dict] = None,
        url: str = "",
        chunk_size: int = 7,
        error_after: Optional[int] = None,
    ):
        self.status_code = status_code
        self.headers = dict(headers or {})
        self.url = url
        self._content = content
        self._offset = 0
        self.chunk_size = chunk_size
        self.error_after = error_after
        self.drained = False
        self.closed = False

    @property
    def content_length(self) -> Optional[int]:
        return parse_content_length(self.headers)

    async def iter_chunks(self):
        while self._offset < len(self._content):
            if self.error_after is not None and self._offset >= self.error_after:
                raise IncompleteBody("connection reset by peer")
            await asyncio.sleep(0)
            chunk = self._content[self._offset : self._offset + self.chunk_size]
            self._offset += len(chunk)
            yield chunk

    async def drain(self) -> None:
        async for _ in self.iter_chunks():
            pass
        self.drained = True

    async def close(self) -> None:
        self.closed = True


@dataclass
class RecordedRequest:
    method: str
    url: str
    headers: dict
    body: Optional[bytes]


@dataclass
class Interceptor:
    """One expected request and its canned reply; matches only once."""

    url: str
    method: str
    body: Optional[bytes] = None
    status_code: int = 200
    content: bytes = b""
    headers: dict = field(default_factory=dict)
    chunk_size: int = 7
    error: Optional[BaseException] = None
    error_after: Optional[int] = None
    hits: int = 0
    response: Optional[FakeResponse] = None

    def reply(
        self,
        status_code: int,
        content: Union[str, bytes] = b"",
        headers: Optional[dict] = None,
        chunk_size: int = 7,
        error_after: Optional[int] = None,
    ) -> "Interceptor":
        self.status_code = status_code
        self.content = content.encode() if isinstance(content, str) else content
        self.headers = headers or {}
        self.chunk_size = chunk_size
        self.error_after = error_after
        return self

    def reply_with_error(self, error: BaseException) -> "Interceptor":
        self.error = error
        return self

    def matches(self, url: str, method: str, body: Optional[bytes]) -> bool:
        if self.hits or self.url != url or self.method != method:
            return False
        return self.body is None or self.body == (body or b"")


class FakeTransport:
    """
    Transport that answers from registered interceptors.

    The request body is read to its end before a reply is chosen, as a
    server would. Unmatched requests fail like a refused connection.
    """

    def __init__(self):
        self.interceptors: list[Interceptor] = []
        self.requests: list[RecordedRequest] = []
        self.closed = False

    def intercept(self, url: str, method: str = "GET", body: Union[str, bytes, None] = None) -> Interceptor:
        if isinstance(body, str):
            body = body.encode()
        interceptor = Interceptor(url=url, method=method, body=body)
        self.interceptors.append(interceptor)
        return interceptor

    def redirect(self, url: str, method: str, status_code: int, location: str) -> Interceptor:
        return self.intercept(url, method).reply(
            status_code,
            REDIRECT_STATUS_TEXT.get(status_code, "Redirect"),
            headers={"Location": location},
        )

    async def send(self, spec, body):
        received = None
        if body is not None:
            received = b"".join([chunk async for chunk in body])

        url = str(spec.url)
        self.requests.append(RecordedRequest(spec.method, url, dict(spec.headers), received))

        for interceptor in self.interceptors:
            if interceptor.matches(url, spec.method, received):
                interceptor.hits += 1
                if interceptor.error is not None:
                    raise interceptor.error
                interceptor.response = FakeResponse(
                    interceptor.status_code,
                    interceptor.content,
                    headers=interceptor.headers,
                    url=url,
                    chunk_size=interceptor.chunk_size,
                    error_after=interceptor.error_after,
                )
                return interceptor.response

        raise ConnectionRefusedError(f"No interceptor for {spec.method} {url} (body={received!r})")

    def done(self) -> None:
        """Assert every interceptor was hit exactly once."""
        pending = [f"{i.method} {i.url}" for i in self.interceptors if i.hits != 1]
        assert not pending, f"Pending interceptors: {pending}"

    async def close(self) -> None:
        self.closed = True


async def write_body(handle, parts: Optional[list], delay: float = 0.01) -> None:
    """Write body parts with a pause between each, then end the body."""
    for part in parts or []:
        handle.write(part)
        await asyncio.sleep(delay)
    handle.end()


@pytest.fixture
def transport() -> FakeTransport:
    """Create an in-memory fake transport."""
    return FakeTransport()


@pytest.fixture
def body_writer():
    """Paced request-body writer (write parts with a pause, then end)."""
    return write_body
