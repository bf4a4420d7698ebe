"""Shared fakes for interceptor chain tests."""

from typing import Awaitable, Callable, List, Optional, Tuple
from unittest.mock import Mock

import httpx
import pytest

from wirechain.http.chain import InterceptorChain
from wirechain.http.exchange import Connection, Exchange
from wirechain.http.interfaces import Chain, Cookie, CookieStore, Interceptor
from wirechain.http.models import Call, Request, Response, ResponseBody


class FunctionInterceptor(Interceptor):
    """Interceptor delegating to an async function of the chain."""

    def __init__(self, fn: Callable[[Chain], Awaitable[Optional[Response]]], name: str = 'FunctionInterceptor'):
        self.fn = fn
        self.name = name

    async def intercept(self, chain: Chain) -> Response:
        return await self.fn(chain)

    def __repr__(self) -> str:
        return self.name


class PassThroughInterceptor(Interceptor):
    """Records the request it sees, then forwards it unchanged."""

    def __init__(self, name: str, log: List[str]):
        self.name = name
        self.log = log
        self.seen: List[Request] = []

    async def intercept(self, chain: Chain) -> Response:
        self.log.append(self.name)
        self.seen.append(chain.request)
        return await chain.proceed(chain.request)

    def __repr__(self) -> str:
        return self.name


class TerminalInterceptor(Interceptor):
    """Last interceptor: records requests and returns a canned response."""

    def __init__(self, status_code: int = 200, headers=None, content: bytes = b'ok', body: bool = True):
        self.status_code = status_code
        self.headers = headers
        self.content = content
        self.body = body
        self.requests: List[Request] = []
        self.chains: List[Chain] = []

    async def intercept(self, chain: Chain) -> Response:
        self.requests.append(chain.request)
        self.chains.append(chain)
        return Response(
            status_code=self.status_code,
            request=chain.request,
            headers=httpx.Headers(self.headers),
            body=ResponseBody.from_bytes(self.content) if self.body else None,
        )

    def __repr__(self) -> str:
        return 'TerminalInterceptor'


class BindExchangeInterceptor(Interceptor):
    """Stand-in for the network boundary: binds an exchange for the request's target."""

    def __init__(self):
        self.client = Mock(spec=httpx.AsyncClient)

    async def intercept(self, chain: Chain) -> Response:
        assert isinstance(chain, InterceptorChain)
        exchange = Exchange.for_url(chain.request.url, self.client)
        return await chain.with_exchange(exchange).proceed(chain.request)

    def __repr__(self) -> str:
        return 'BindExchangeInterceptor'


class RecordingCookieStore(CookieStore):
    def __init__(self, cookies: Optional[List[Cookie]] = None):
        self.cookies = cookies or []
        self.loaded: List[httpx.URL] = []
        self.received: List[Tuple[httpx.URL, httpx.Headers]] = []

    def load_for_request(self, url: httpx.URL) -> List[Cookie]:
        self.loaded.append(url)
        return list(self.cookies)

    def receive_headers(self, url: httpx.URL, headers: httpx.Headers) -> None:
        self.received.append((url, headers))


def make_exchange(url: str = 'http://example.com/') -> Exchange:
    return Exchange.for_url(httpx.URL(url), Mock(spec=httpx.AsyncClient))


def start_chain(interceptors, request: Optional[Request] = None, **timeouts) -> InterceptorChain:
    request = request or Request.build('GET', 'http://example.com/')
    return InterceptorChain.start(Call(request=request, call_id='test-call-id'), interceptors, **timeouts)


@pytest.fixture
def mock_logger():
    """Create a mock logger."""
    return Mock()


@pytest.fixture
def request_get():
    return Request.build('GET', 'http://example.com/index.html')
