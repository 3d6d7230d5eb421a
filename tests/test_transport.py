"""End-to-end tests against a local aiohttp server."""

import asyncio
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from aiohttp import test_utils, web
from httphop import (
    AiohttpTransport,
    BytesSink,
    HopClient,
    NetworkConfig,
    RequestOptions,
    RequestSpec,
    ResponseCollector,
    TargetUrl,
    TransportError,
    request,
)
from httphop.buffer import DoublingGrowth, PreallocatedGrowth
from httphop.http import AiohttpResponse

EXTENDED_CONTENT = bytes(range(256)) * 300

CHAIN_CODES = [300, 301, 302, 303, 307]


async def hop(req: web.Request) -> web.Response:
    """Redirect /hop/N to /hop/N+1 with the Nth chain status, then to /echo."""
    await req.read()
    n = int(req.match_info["n"])
    target = f"/hop/{n + 1}" if n + 1 < len(CHAIN_CODES) else "/echo"
    return web.Response(
        status=CHAIN_CODES[n],
        text="Redirect",
        headers={"Location": str(req.url.with_path(target))},
    )


async def temporary(req: web.Request) -> web.Response:
    await req.read()
    return web.Response(status=307, headers={"Location": str(req.url.with_path("/echo"))})


async def echo(req: web.Request) -> web.Response:
    body = await req.read()
    return web.Response(body=body, headers={"X-Method": req.method})


async def content(req: web.Request) -> web.Response:
    return web.Response(body=EXTENDED_CONTENT)


async def chunked(req: web.Request) -> web.StreamResponse:
    response = web.StreamResponse()
    response.enable_chunked_encoding()
    await response.prepare(req)
    for i in range(0, len(EXTENDED_CONTENT), 5000):
        await response.write(EXTENDED_CONTENT[i : i + 5000])
    await response.write_eof()
    return response


async def missing(req: web.Request) -> web.Response:
    return web.Response(status=404, text="")


async def user_agent(req: web.Request) -> web.Response:
    return web.Response(text=req.headers.get("User-Agent", ""))


@pytest_asyncio.fixture
async def server():
    app = web.Application()
    app.router.add_route("*", "/hop/{n}", hop)
    app.router.add_route("*", "/temporary", temporary)
    app.router.add_route("*", "/echo", echo)
    app.router.add_get("/content", content)
    app.router.add_get("/chunked", chunked)
    app.router.add_get("/missing", missing)
    app.router.add_get("/ua", user_agent)

    test_server = test_utils.TestServer(app)
    await test_server.start_server()
    yield test_server
    await test_server.close()


class TestAiohttpTransport:
    """Tests for AiohttpTransport against a real server."""

    @pytest.mark.asyncio
    async def test_redirects_are_not_followed_by_transport(self, server):
        """Test that the transport hands back the redirect itself."""
        async with AiohttpTransport() as transport:
            spec = RequestSpec(method="GET", url=TargetUrl.parse(str(server.make_url("/hop/0"))))
            response = await transport.send(spec, None)
            try:
                assert response.status_code == 300
                assert response.headers["Location"].endswith("/hop/1")
            finally:
                await response.drain()

    @pytest.mark.asyncio
    async def test_declared_length_preallocates(self, server):
        """Test buffering a body with Content-Length never reallocates."""
        async with AiohttpTransport() as transport:
            spec = RequestSpec(method="GET", url=TargetUrl.parse(str(server.make_url("/content"))))
            response = await transport.send(spec, None)
            collector = ResponseCollector(response.iter_chunks(), declared_size=response.content_length)
            storage, length = await collector.collect()
            await response.close()

        assert isinstance(collector.buffer.strategy, PreallocatedGrowth)
        assert collector.buffer.reallocations == 0
        assert bytes(storage[:length]) == EXTENDED_CONTENT

    @pytest.mark.asyncio
    async def test_chunked_body_grows(self, server):
        """Test buffering a chunked body of unknown length."""
        async with AiohttpTransport() as transport:
            spec = RequestSpec(method="GET", url=TargetUrl.parse(str(server.make_url("/chunked"))))
            response = await transport.send(spec, None)
            assert response.content_length is None

            collector = ResponseCollector(response.iter_chunks(), baseline=1024)
            storage, length = await collector.collect()
            await response.close()

        assert isinstance(collector.buffer.strategy, DoublingGrowth)
        assert collector.buffer.reallocations > 0
        assert bytes(storage[:length]) == EXTENDED_CONTENT

    @pytest.mark.asyncio
    async def test_connection_refused(self):
        """Test that a refused connection raises TransportError."""
        async with AiohttpTransport(NetworkConfig(connect_timeout=2)) as transport:
            spec = RequestSpec(method="GET", url=TargetUrl.parse("http://127.0.0.1:1/"))
            with pytest.raises(TransportError) as exc_info:
                await transport.send(spec, None)

        assert exc_info.value.url == "http://127.0.0.1:1/"

    @pytest.mark.asyncio
    async def test_user_agent(self, server):
        """Test that the configured User-Agent is sent."""
        async with AiohttpTransport(NetworkConfig(user_agent="hop-test/1.0")) as transport:
            spec = RequestSpec(method="GET", url=TargetUrl.parse(str(server.make_url("/ua"))))
            response = await transport.send(spec, None)
            collector = ResponseCollector(response.iter_chunks())
            storage, length = await collector.collect()
            await response.close()

        assert bytes(storage[:length]) == b"hop-test/1.0"

    @pytest.mark.asyncio
    async def test_timeout_bounds_each_read(self):
        """Test that the timeout applies between reads, with no total limit."""
        async with AiohttpTransport(NetworkConfig(timeout=7, connect_timeout=3)) as transport:
            timeout = transport._get_session().timeout

        assert timeout.sock_read == 7
        assert timeout.connect == 3
        assert timeout.total is None

    @pytest.mark.asyncio
    async def test_cancelled_drain_closes_connection(self):
        """Test that a drain interrupted by cancellation closes instead of releasing."""

        async def stalled():
            yield b"Redirect"
            await asyncio.Event().wait()

        raw = MagicMock()
        raw.status = 302
        raw.headers = {"Location": "http://originhost/"}
        raw.url = "http://redirectinghost/"
        raw.content.iter_any = stalled
        response = AiohttpResponse(raw)

        task = asyncio.ensure_future(response.drain())
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        raw.close.assert_called_once()
        raw.release.assert_not_called()


class TestRequestOverNetwork:
    """Tests for request() and HopClient over a real server."""

    @pytest.mark.asyncio
    async def test_chain_of_every_redirect_kind(self, server):
        """Test following 300, 301, 302, 303 and 307 in a row."""
        sink = BytesSink()
        async with AiohttpTransport() as transport:
            handle = request(
                str(server.make_url("/hop/0")),
                sink,
                RequestOptions(follow_redirects=True),
                transport=transport,
            )
            handle.end()
            result = await handle

        assert result.status_code == 200
        assert [h.status_code for h in result.chain] == CHAIN_CODES
        assert result.url.endswith("/echo")

    @pytest.mark.asyncio
    async def test_paced_post_through_307(self, server):
        """Test that a paced POST body reaches the target of a 307 intact."""
        sink = BytesSink()
        statuses = []
        async with AiohttpTransport() as transport:
            handle = request(
                str(server.make_url("/temporary")),
                sink,
                RequestOptions(method="POST", follow_redirects=True),
                transport=transport,
                on_response=statuses.append,
            )
            for part in ["pretty", "please", "withcherries"]:
                handle.write(part)
                await asyncio.sleep(0.05)
            handle.end()
            result = await handle

        assert statuses == [200]
        assert result.headers["X-Method"] == "POST"
        assert sink.getvalue() == b"prettypleasewithcherries"

    @pytest.mark.asyncio
    async def test_owned_transport(self, server):
        """Test request() without a transport creates and closes its own."""
        sink = BytesSink()
        handle = request(str(server.make_url("/missing")), sink)
        handle.end()
        result = await handle

        assert result.status_code == 404
        assert sink.getvalue() == b""

    @pytest.mark.asyncio
    async def test_client_fetch_downgrades_post(self, server):
        """Test HopClient.fetch turning a POST into GET on 303."""
        async with HopClient() as client:
            result = await client.fetch(
                str(server.make_url("/hop/3")),
                RequestOptions(method="POST", follow_redirects=True, body=b"dropped"),
            )

        # 303 downgrades to GET without a body, 307 then keeps GET
        assert result.status_code == 200
        assert result.content == b""
        assert [h.method for h in result.chain] == ["GET", "GET"]

    @pytest.mark.asyncio
    async def test_client_buffer(self, server):
        """Test HopClient.buffer reporting storage and written length."""
        ended = []
        async with HopClient() as client:
            status, storage, length = await client.buffer(
                str(server.make_url("/content")),
                on_end=lambda buf, n: ended.append(n),
            )

        assert status == 200
        assert length == len(EXTENDED_CONTENT)
        assert len(storage) == len(EXTENDED_CONTENT)
        assert ended == [len(EXTENDED_CONTENT)]

    @pytest.mark.asyncio
    async def test_head_request(self, server):
        """Test that a HEAD response's Content-Length does not demand a body."""
        sink = BytesSink()
        statuses = []
        async with AiohttpTransport() as transport:
            handle = request(
                str(server.make_url("/content")),
                sink,
                RequestOptions(method="HEAD"),
                transport=transport,
                on_response=statuses.append,
            )
            handle.end()
            result = await handle

        assert statuses == [200]
        assert int(result.headers["Content-Length"]) == len(EXTENDED_CONTENT)
        assert result.bytes_streamed == 0
        assert sink.getvalue() == b""

    @pytest.mark.asyncio
    async def test_client_buffer_head(self, server):
        """Test HopClient.buffer on a HEAD request yields an empty body."""
        async with HopClient() as client:
            status, storage, length = await client.buffer(
                str(server.make_url("/content")),
                RequestOptions(method="HEAD"),
            )

        assert status == 200
        assert length == 0

    @pytest.mark.asyncio
    async def test_client_requires_context(self):
        """Test that using HopClient outside 'async with' fails clearly."""
        client = HopClient()
        with pytest.raises(RuntimeError, match="not initialized"):
            client.transport
