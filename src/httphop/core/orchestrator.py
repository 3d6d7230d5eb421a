"""Request orchestrator: drives hops, follows redirects, streams the result."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Generator
from typing import Any, Callable, Optional

from ..errors import (
    HttpHopError,
    IncompleteBody,
    RequestCancelled,
    SinkWriteError,
    TooManyRedirects,
    TransportError,
)
from ..http.protocols import Transport, TransportResponse, expected_body_size
from ..models.events import (
    EventType,
    HopEvent,
    RedirectChain,
    RequestState,
    TerminalResult,
)
from ..models.request import RequestSpec
from ..sinks import Sink
from .body import CapturedBody, Chunk
from .redirects import Terminal, decide

# Type alias for event emitter function
EventEmitter = Callable[[HopEvent], None]

# Receives the terminal status code, once
ResponseCallback = Callable[[int], None]


class RequestOrchestrator:
    """
    Runs one logical request operation to completion.

    State machine:
        IDLE -> AWAITING_RESPONSE -> (REDIRECTING -> AWAITING_RESPONSE)*
             -> STREAMING -> DONE
    with FAILED and CANCELLED reachable from any non-final state.

    Hops are strictly sequential: hop N+1 is only sent after hop N's
    response headers have been seen. The request body is captured once
    and replayed to every hop unless a redirect downgrades the method.
    Redirect bodies are drained and discarded. The terminal body is
    piped into the sink chunk by chunk, without buffering.

    Error Handling Contract:
    - run() either returns one TerminalResult or raises one exception
    - on_response fires at most once, for the terminal response only
    - nothing fires after a failure or cancellation

    Example:
        orchestrator = RequestOrchestrator(
            transport,
            RequestSpec(method="POST", url=TargetUrl.parse(url), follow_redirects=True),
            BytesSink(),
            on_response=lambda status: print(status),
        )
        orchestrator.body.write(b"payload")
        orchestrator.body.end()
        result = await orchestrator.run()
    """

    def __init__(
        self,
        transport: Transport,
        spec: RequestSpec,
        sink: Sink,
        *,
        body: Optional[CapturedBody] = None,
        on_response: Optional[ResponseCallback] = None,
        on_event: Optional[EventEmitter] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            transport: Transport used for every hop
            spec: Request for the first hop
            sink: Destination for the terminal response body
            body: Captured request body (a new empty one if None)
            on_response: Called with the terminal status code
            on_event: Optional callback receiving HopEvents
            logger: Logger to use instead of the module logger
        """
        self._transport = transport
        self.spec = spec
        self.sink = sink
        self.body = body or CapturedBody()
        self._on_response = on_response
        self._on_event = on_event
        self.logger = logger or logging.getLogger(__name__)

        self.state = RequestState.IDLE
        self.chain = RedirectChain()
        self._response: Optional[TransportResponse] = None
        self._send_body = True
        self._started = False

    def _transition(self, state: RequestState) -> None:
        self.logger.debug(f"{self.spec.method} {self.spec.url}: {self.state.value} -> {state.value}")
        self.state = state

    def _emit(self, event_type: EventType, **kwargs: Any) -> None:
        if self._on_event:
            self._on_event(HopEvent(type=event_type, hop=len(self.chain), **kwargs))

    def _check_sink_open(self) -> None:
        if self.sink.closed:
            raise RequestCancelled("Destination sink was closed by the caller")

    async def _close_response(self) -> None:
        response, self._response = self._response, None
        if response is not None:
            await response.close()

    async def run(self) -> TerminalResult:
        """
        Execute the operation.

        Returns:
            TerminalResult for the first non-followed response

        Raises:
            TransportError: Connection, DNS or TLS failure on any hop
            TooManyRedirects: More than spec.max_redirects redirects
            MalformedRedirect: Redirect without a usable Location
            IncompleteBody: Terminal body ended short of Content-Length
            SinkWriteError: The sink rejected a write or close
            RequestCancelled: The caller closed the sink mid-operation
            asyncio.CancelledError: The running task was cancelled
        """
        if self._started:
            raise RuntimeError("RequestOrchestrator.run() may only be called once")
        self._started = True

        try:
            return await self._run()
        except asyncio.CancelledError:
            self.logger.debug(f"{self.spec.method} {self.spec.url}: cancelled")
            self._transition(RequestState.CANCELLED)
            raise
        except RequestCancelled:
            self.logger.info(f"{self.spec.method} {self.spec.url}: sink closed, aborting")
            self._transition(RequestState.CANCELLED)
            raise
        except Exception as e:
            self.logger.warning(f"{self.spec.method} {self.spec.url} failed: {e}")
            self._transition(RequestState.FAILED)
            self._emit(EventType.FAILED, url=str(self.spec.url), error=str(e))
            raise
        finally:
            await self._close_response()

    async def _run(self) -> TerminalResult:
        spec = self.spec
        self._transition(RequestState.AWAITING_RESPONSE)

        while True:
            response = await self._send(spec)
            self._response = response
            self._check_sink_open()

            self.logger.debug(f"{spec.method} {spec.url} -> {response.status_code}")
            self._emit(
                EventType.RESPONSE_RECEIVED,
                url=str(spec.url),
                method=spec.method,
                status_code=response.status_code,
            )

            decision = decide(
                response.status_code,
                response.headers,
                spec.method,
                spec.follow_redirects,
                preserve_method=spec.preserve_method,
            )
            if isinstance(decision, Terminal):
                return await self._stream(spec, response)

            self._transition(RequestState.REDIRECTING)
            self.chain.record(response.status_code, decision.location, decision.method)
            if len(self.chain) > spec.max_redirects:
                raise TooManyRedirects(spec.max_redirects, self.chain)

            self.logger.info(
                f"Following {response.status_code} redirect from {spec.url} to {decision.location}"
                + (f" as {decision.method}" if decision.method != spec.method else "")
            )
            self._emit(
                EventType.REDIRECT_FOLLOWED,
                url=str(spec.url),
                method=decision.method,
                status_code=response.status_code,
                location=decision.location,
            )

            # Redirect bodies are never delivered to the caller
            await response.drain()
            self._response = None

            if decision.drop_body:
                self._send_body = False
            spec = spec.with_url(decision.url, method=decision.method, drop_body=decision.drop_body)
            self._transition(RequestState.AWAITING_RESPONSE)

    async def _send(self, spec: RequestSpec) -> TransportResponse:
        body = None
        if self._send_body and await self.body.wait_for_content():
            body = self.body.replay()

        self._emit(EventType.REQUEST_STARTED, url=str(spec.url), method=spec.method)
        try:
            return await self._transport.send(spec, body)
        except HttpHopError:
            raise
        except Exception as e:
            raise TransportError(f"{spec.method} {spec.url} failed: {e}", url=str(spec.url)) from e

    async def _stream(self, spec: RequestSpec, response: TransportResponse) -> TerminalResult:
        self._transition(RequestState.STREAMING)
        if self._on_response:
            self._on_response(response.status_code)

        declared = expected_body_size(spec.method, response.status_code, response.content_length)
        streamed = 0
        async for chunk in response.iter_chunks():
            self._check_sink_open()
            try:
                await self.sink.write(chunk)
            except Exception as e:
                raise SinkWriteError(f"Sink rejected write after {streamed} bytes: {e}") from e
            streamed += len(chunk)

        if declared is not None and streamed < declared:
            raise IncompleteBody(
                f"Expected {declared} bytes from {spec.url}, received {streamed}",
                expected=declared,
                received=streamed,
            )

        await response.drain()
        self._response = None

        self._check_sink_open()
        try:
            await self.sink.close()
        except Exception as e:
            raise SinkWriteError(f"Sink failed to close: {e}") from e

        self._transition(RequestState.DONE)
        self._emit(
            EventType.STREAM_COMPLETED,
            url=str(spec.url),
            method=spec.method,
            status_code=response.status_code,
            bytes_streamed=streamed,
        )
        return TerminalResult(
            status_code=response.status_code,
            headers=dict(response.headers),
            url=str(spec.url),
            chain=self.chain,
            bytes_streamed=streamed,
        )


class RequestHandle:
    """
    Caller-side handle for an in-flight request operation.

    Body chunks are written through the handle at the caller's pace,
    like a writable request stream; end() must be called (even for an
    empty body) before the first hop is sent.

    Example:
        handle = request(url, sink, RequestOptions(method="POST", follow_redirects=True))
        handle.write(b"pretty")
        await asyncio.sleep(0.1)
        handle.write(b"please")
        handle.end()
        result = await handle
    """

    def __init__(
        self,
        orchestrator: RequestOrchestrator,
        owned_transport: Optional[Transport] = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._owned_transport = owned_transport
        self._task: asyncio.Task[TerminalResult] = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> TerminalResult:
        try:
            return await self._orchestrator.run()
        finally:
            if self._owned_transport is not None:
                await self._owned_transport.close()

    @property
    def state(self) -> RequestState:
        return self._orchestrator.state

    @property
    def chain(self) -> RedirectChain:
        return self._orchestrator.chain

    @property
    def body(self) -> CapturedBody:
        return self._orchestrator.body

    def write(self, chunk: Chunk) -> None:
        """Queue a request-body chunk."""
        self._orchestrator.body.write(chunk)

    def end(self, chunk: Optional[Chunk] = None) -> None:
        """Finish the request body."""
        self._orchestrator.body.end(chunk)

    def cancel(self) -> bool:
        """
        Abort the operation.

        Any open connection is closed and no further callbacks fire.

        Returns:
            False if the operation had already finished
        """
        return self._task.cancel()

    def done(self) -> bool:
        return self._task.done()

    async def result(self) -> TerminalResult:
        """Wait for the terminal result (or the single failure)."""
        return await self._task

    def __await__(self) -> Generator[Any, None, TerminalResult]:
        return self._task.__await__()
