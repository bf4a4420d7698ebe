"""Tests for BridgeInterceptor."""

import gzip

import httpx
import pytest

from wirechain.http.bridge import DEFAULT_USER_AGENT, BridgeInterceptor, cookie_header, host_header
from wirechain.http.interfaces import NO_COOKIES, Cookie
from wirechain.http.models import Request, RequestBody, ResponseBody
from wirechain.http.tests.conftest import FunctionInterceptor, RecordingCookieStore, TerminalInterceptor, start_chain


async def run_bridge(bridge, request, terminal):
    return await start_chain([bridge, terminal], request).proceed(request)


class TestOutboundHeaders:
    @pytest.mark.asyncio
    async def test_bare_request_gains_default_headers(self, mock_logger, request_get):
        terminal = TerminalInterceptor()

        await run_bridge(BridgeInterceptor(mock_logger, NO_COOKIES), request_get, terminal)

        wire = terminal.requests[0]
        assert wire.header('Host') == 'example.com'
        assert wire.header('Connection').lower() == 'keep-alive'
        assert wire.header('Accept-Encoding') == 'gzip'
        assert wire.header('User-Agent') == DEFAULT_USER_AGENT
        assert 'Cookie' not in wire.headers
        assert 'Content-Length' not in wire.headers
        assert 'Transfer-Encoding' not in wire.headers

    @pytest.mark.asyncio
    async def test_caller_headers_are_kept(self, mock_logger):
        request = Request.build(
            'GET',
            'http://example.com/',
            headers={'Host': 'virtual.example.com', 'Connection': 'close', 'User-Agent': 'custom/1.0'},
        )
        terminal = TerminalInterceptor()

        await run_bridge(BridgeInterceptor(mock_logger, NO_COOKIES), request, terminal)

        wire = terminal.requests[0]
        assert wire.header('Host') == 'virtual.example.com'
        assert wire.header('Connection') == 'close'
        assert wire.header('User-Agent') == 'custom/1.0'

    @pytest.mark.asyncio
    async def test_configured_user_agent(self, mock_logger, request_get):
        terminal = TerminalInterceptor()

        await run_bridge(BridgeInterceptor(mock_logger, NO_COOKIES, user_agent='agent/2.0'), request_get, terminal)

        assert terminal.requests[0].header('User-Agent') == 'agent/2.0'

    @pytest.mark.asyncio
    async def test_known_length_body_uses_content_length(self, mock_logger):
        request = Request.build(
            'POST',
            'http://example.com/',
            headers={'Transfer-Encoding': 'chunked'},
            body=RequestBody.from_bytes(b'x' * 42, 'application/json'),
        )
        terminal = TerminalInterceptor()

        await run_bridge(BridgeInterceptor(mock_logger, NO_COOKIES), request, terminal)

        wire = terminal.requests[0]
        assert wire.header('Content-Length') == '42'
        assert 'Transfer-Encoding' not in wire.headers
        assert wire.header('Content-Type') == 'application/json'

    @pytest.mark.asyncio
    async def test_unknown_length_body_is_chunked(self, mock_logger):
        async def chunks():
            yield b'part'

        request = Request.build('POST', 'http://example.com/', headers={'Content-Length': '99'}, body=RequestBody.from_stream(chunks()))
        terminal = TerminalInterceptor()

        await run_bridge(BridgeInterceptor(mock_logger, NO_COOKIES), request, terminal)

        wire = terminal.requests[0]
        assert wire.header('Transfer-Encoding') == 'chunked'
        assert 'Content-Length' not in wire.headers
        assert 'Content-Type' not in wire.headers

    @pytest.mark.asyncio
    async def test_body_content_type_overrides_caller_header(self, mock_logger):
        request = Request.build('POST', 'http://example.com/', headers={'content-type': 'text/plain'}, body=RequestBody.from_bytes(b'{}', 'application/json'))
        terminal = TerminalInterceptor()

        await run_bridge(BridgeInterceptor(mock_logger, NO_COOKIES), request, terminal)

        assert terminal.requests[0].headers.get_list('Content-Type') == ['application/json']

    @pytest.mark.parametrize(
        'headers',
        [
            {'Accept-Encoding': 'identity'},
            {'Range': 'bytes=0-99'},
        ],
    )
    @pytest.mark.asyncio
    async def test_no_gzip_negotiation_when_caller_chose(self, mock_logger, headers):
        request = Request.build('GET', 'http://example.com/', headers=headers)
        terminal = TerminalInterceptor()

        await run_bridge(BridgeInterceptor(mock_logger, NO_COOKIES), request, terminal)

        wire = terminal.requests[0]
        assert wire.headers.get_list('Accept-Encoding') == request.headers.get_list('Accept-Encoding')


class TestHostHeader:
    @pytest.mark.parametrize(
        'url,expected',
        [
            ('http://example.com/', 'example.com'),
            ('http://example.com:80/', 'example.com'),
            ('https://example.com/', 'example.com'),
            ('https://example.com:8443/', 'example.com:8443'),
            ('http://example.com:443/', 'example.com:443'),
            ('http://[::1]:8080/', '[::1]:8080'),
            ('http://[::1]/', '[::1]'),
        ],
    )
    def test_host_header(self, url, expected):
        assert host_header(httpx.URL(url)) == expected


class TestCookies:
    def test_cookie_header_format(self):
        assert cookie_header([Cookie('a', 'b'), Cookie('c', 'd')]) == 'a=b; c=d'

    @pytest.mark.asyncio
    async def test_cookies_attached_in_store_order(self, mock_logger, request_get):
        store = RecordingCookieStore([Cookie('session', 'abc'), Cookie('theme', 'dark')])
        terminal = TerminalInterceptor()

        await run_bridge(BridgeInterceptor(mock_logger, store), request_get, terminal)

        assert terminal.requests[0].headers.get_list('Cookie') == ['session=abc; theme=dark']
        assert store.loaded == [request_get.url]

    @pytest.mark.asyncio
    async def test_cookie_header_omitted_when_store_empty(self, mock_logger, request_get):
        store = RecordingCookieStore()
        terminal = TerminalInterceptor()

        await run_bridge(BridgeInterceptor(mock_logger, store), request_get, terminal)

        assert 'Cookie' not in terminal.requests[0].headers

    @pytest.mark.asyncio
    async def test_response_headers_forwarded_to_store(self, mock_logger, request_get):
        store = RecordingCookieStore()
        terminal = TerminalInterceptor(headers=[('Set-Cookie', 'a=1'), ('Set-Cookie', 'b=2')])

        await run_bridge(BridgeInterceptor(mock_logger, store), request_get, terminal)

        assert len(store.received) == 1
        url, headers = store.received[0]
        assert url == request_get.url
        assert headers.get_list('set-cookie') == ['a=1', 'b=2']

    @pytest.mark.asyncio
    async def test_store_not_updated_when_proceed_fails(self, mock_logger, request_get):
        store = RecordingCookieStore()
        error = httpx.ReadTimeout('timed out')

        async def fail(chain):
            raise error

        with pytest.raises(httpx.ReadTimeout) as exc_info:
            await run_bridge(BridgeInterceptor(mock_logger, store), request_get, FunctionInterceptor(fail))

        assert exc_info.value is error
        assert store.received == []


class TestInbound:
    @pytest.mark.asyncio
    async def test_response_carries_original_request(self, mock_logger, request_get):
        terminal = TerminalInterceptor()

        response = await run_bridge(BridgeInterceptor(mock_logger, NO_COOKIES), request_get, terminal)

        assert response.request is request_get
        assert 'Host' not in response.request.headers
        assert 'Accept-Encoding' not in response.request.headers

    @pytest.mark.asyncio
    async def test_gzip_response_is_decompressed(self, mock_logger, request_get):
        compressed = gzip.compress(b'hello, compressed world')
        terminal = TerminalInterceptor(
            headers={'Content-Encoding': 'gzip', 'Content-Length': str(len(compressed)), 'Content-Type': 'text/plain'},
            content=compressed,
        )

        response = await run_bridge(BridgeInterceptor(mock_logger, NO_COOKIES), request_get, terminal)

        assert 'Content-Encoding' not in response.headers
        assert 'Content-Length' not in response.headers
        assert response.header('Content-Type') == 'text/plain'
        assert response.body.content_length is None
        assert response.body.content_type == 'text/plain'
        assert await response.body.aread() == b'hello, compressed world'

    @pytest.mark.asyncio
    async def test_gzip_encoding_matched_case_insensitively(self, mock_logger, request_get):
        terminal = TerminalInterceptor(headers={'Content-Encoding': 'GZIP'}, content=gzip.compress(b'upper'))

        response = await run_bridge(BridgeInterceptor(mock_logger, NO_COOKIES), request_get, terminal)

        assert await response.body.aread() == b'upper'

    @pytest.mark.asyncio
    async def test_decompression_is_lazy(self, mock_logger, request_get):
        pulled = []

        async def source():
            pulled.append(True)
            yield gzip.compress(b'lazy body')

        async def respond(chain):
            response = await TerminalInterceptor(headers={'Content-Encoding': 'gzip'}).intercept(chain)
            return response.with_body(ResponseBody(source()))

        response = await run_bridge(BridgeInterceptor(mock_logger, NO_COOKIES), request_get, FunctionInterceptor(respond))

        assert pulled == []
        assert await response.body.aread() == b'lazy body'
        assert pulled == [True]

    @pytest.mark.asyncio
    async def test_closing_decompressed_body_closes_network_body(self, mock_logger, request_get):
        closed = []

        async def close():
            closed.append(True)

        async def respond(chain):
            response = await TerminalInterceptor(headers={'Content-Encoding': 'gzip'}).intercept(chain)
            return response.with_body(ResponseBody(_single(gzip.compress(b'x')), close=close))

        response = await run_bridge(BridgeInterceptor(mock_logger, NO_COOKIES), request_get, FunctionInterceptor(respond))
        await response.body.aread()

        assert closed == [True]

    @pytest.mark.asyncio
    async def test_caller_accept_encoding_disables_decompression(self, mock_logger):
        compressed = gzip.compress(b'raw')
        request = Request.build('GET', 'http://example.com/', headers={'Accept-Encoding': 'gzip'})
        terminal = TerminalInterceptor(headers={'Content-Encoding': 'gzip', 'Content-Length': str(len(compressed))}, content=compressed)

        response = await run_bridge(BridgeInterceptor(mock_logger, NO_COOKIES), request, terminal)

        assert response.header('Content-Encoding') == 'gzip'
        assert response.header('Content-Length') == str(len(compressed))
        assert await response.body.aread() == compressed

    @pytest.mark.asyncio
    async def test_head_response_not_decompressed(self, mock_logger):
        request = Request.build('HEAD', 'http://example.com/')
        terminal = TerminalInterceptor(headers={'Content-Encoding': 'gzip', 'Content-Length': '120'}, content=b'')

        response = await run_bridge(BridgeInterceptor(mock_logger, NO_COOKIES), request, terminal)

        assert response.header('Content-Encoding') == 'gzip'
        assert response.header('Content-Length') == '120'
        assert await response.body.aread() == b''

    @pytest.mark.asyncio
    async def test_no_content_response_not_decompressed(self, mock_logger, request_get):
        terminal = TerminalInterceptor(status_code=204, headers={'Content-Encoding': 'gzip'}, content=b'')

        response = await run_bridge(BridgeInterceptor(mock_logger, NO_COOKIES), request_get, terminal)

        assert response.header('Content-Encoding') == 'gzip'
        assert await response.body.aread() == b''

    @pytest.mark.asyncio
    async def test_plain_response_unchanged(self, mock_logger, request_get):
        terminal = TerminalInterceptor(headers={'Content-Length': '5'}, content=b'plain')

        response = await run_bridge(BridgeInterceptor(mock_logger, NO_COOKIES), request_get, terminal)

        assert response.header('Content-Length') == '5'
        assert await response.body.aread() == b'plain'


async def _single(data: bytes):
    yield data
