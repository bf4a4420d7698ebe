from __future__ import annotations

from typing import Any, Optional, Sequence, Union

import httpx

from wirechain.common.utils import generate_call_id
from wirechain.common.vars import reset_call_id, set_call_id
from wirechain.config import ConfigurationService
from wirechain.config.log import get_logger
from wirechain.config.models import ClientConfig

from .bridge import BridgeInterceptor
from .call_server import CallServerInterceptor
from .chain import InterceptorChain, check_duration
from .connect import ConnectInterceptor
from .interfaces import NO_COOKIES, CookieStore, Interceptor
from .models import Call, HeaderTypes, Request, RequestBody, Response

logger = get_logger(__name__)


class HttpClient:
    """Runs calls through the standard interceptor order.

    Application interceptors see the caller's request once per call; network
    interceptors see the bridged wire request after the exchange is bound.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        interceptors: Sequence[Interceptor] = (),
        network_interceptors: Sequence[Interceptor] = (),
        cookie_store: CookieStore = NO_COOKIES,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._config = config or ClientConfig()
        self._interceptors = tuple(interceptors)
        self._network_interceptors = tuple(network_interceptors)
        self._cookie_store = cookie_store
        self._transport = transport
        self._connect_timeout_millis = check_duration('connectTimeout', self._config.connect_timeout)
        self._read_timeout_millis = check_duration('readTimeout', self._config.read_timeout)
        self._write_timeout_millis = check_duration('writeTimeout', self._config.write_timeout)
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_config_file(cls, config_path: Optional[str] = None, **kwargs: Any) -> 'HttpClient':
        """Build a client from a YAML config file, or from the default config locations."""
        return cls(config=ConfigurationService(config_path).get_config(), **kwargs)

    @property
    def config(self) -> ClientConfig:
        return self._config

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            # Redirects, cookies and decoding are handled by the chain, not httpx
            self._client = httpx.AsyncClient(transport=self._transport, follow_redirects=False)
        return self._client

    def build_interceptors(self) -> list[Interceptor]:
        client = self._ensure_client()
        return [
            *self._interceptors,
            BridgeInterceptor(get_logger('wirechain.http.bridge'), self._cookie_store, self._config.user_agent),
            ConnectInterceptor(get_logger('wirechain.http.connect'), client),
            *self._network_interceptors,
            CallServerInterceptor(get_logger('wirechain.http.call_server')),
        ]

    async def execute(self, request: Request) -> Response:
        """Run ``request`` through the interceptor chain."""
        call = Call(request=request, call_id=generate_call_id())
        token = set_call_id(call.call_id)
        try:
            chain = InterceptorChain.start(
                call,
                self.build_interceptors(),
                connect_timeout_millis=self._connect_timeout_millis,
                read_timeout_millis=self._read_timeout_millis,
                write_timeout_millis=self._write_timeout_millis,
            )
            logger.debug('Executing call', method=request.method, url=str(request.url))
            response = await chain.proceed(request)
            logger.debug('Call completed', status_code=response.status_code)
            return response
        finally:
            reset_call_id(token)

    async def request(
        self,
        method: str,
        url: Union[str, httpx.URL],
        headers: HeaderTypes = None,
        content: Union[bytes, str, None] = None,
        content_type: Optional[str] = None,
    ) -> Response:
        body = None
        if isinstance(content, str):
            body = RequestBody.from_text(content, content_type or 'text/plain; charset=utf-8')
        elif content is not None:
            body = RequestBody.from_bytes(content, content_type)
        return await self.execute(Request.build(method, url, headers=headers, body=body))

    async def get(self, url: Union[str, httpx.URL], **kwargs: Any) -> Response:
        return await self.request('GET', url, **kwargs)

    async def post(self, url: Union[str, httpx.URL], **kwargs: Any) -> Response:
        return await self.request('POST', url, **kwargs)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> 'HttpClient':
        self._ensure_client()
        return self

    async def __aexit__(self, *_args: Any) -> None:
        await self.aclose()
