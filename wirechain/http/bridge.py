"""Bridge from application requests to wire requests, and back for responses."""

from __future__ import annotations

from typing import List, Optional

import httpx

from wirechain import __version__

from .compression import gunzip_stream
from .interfaces import Chain, Cookie, CookieStore, Interceptor
from .models import Response, ResponseBody

DEFAULT_USER_AGENT = f'wirechain/{__version__}'


def host_header(url: httpx.URL) -> str:
    """Host header value for ``url``: the host, plus the port when it isn't the scheme default."""
    host = url.host
    if ':' in host:
        host = f'[{host}]'
    # httpx normalises a scheme-default port to None
    if url.port is not None:
        return f'{host}:{url.port}'
    return host


def cookie_header(cookies: List[Cookie]) -> str:
    """Cookie request header value, like ``a=b; c=d``."""
    return '; '.join(f'{cookie.name}={cookie.value}' for cookie in cookies)


class BridgeInterceptor(Interceptor):
    """Turns the caller's request into a wire request and undoes that on the response.

    Outbound it frames the body, fills in Host, Connection and User-Agent,
    attaches cookies, and offers gzip when the caller has not chosen an
    encoding. Inbound it hands Set-Cookie headers to the cookie store,
    restores the caller's request on the response, and decompresses gzip
    bodies it negotiated itself.
    """

    def __init__(self, logger, cookie_store: CookieStore, user_agent: Optional[str] = None):
        self.logger = logger
        self.cookie_store = cookie_store
        self.user_agent = user_agent or DEFAULT_USER_AGENT

    async def intercept(self, chain: Chain) -> Response:
        user_request = chain.request
        headers = user_request.headers.copy()

        body = user_request.body
        if body is not None:
            if body.content_type is not None:
                headers['Content-Type'] = body.content_type

            if body.content_length is not None:
                headers['Content-Length'] = str(body.content_length)
                if 'Transfer-Encoding' in headers:
                    del headers['Transfer-Encoding']
            else:
                headers['Transfer-Encoding'] = 'chunked'
                if 'Content-Length' in headers:
                    del headers['Content-Length']

        if 'Host' not in headers:
            headers['Host'] = host_header(user_request.url)

        if 'Connection' not in headers:
            headers['Connection'] = 'Keep-Alive'

        # Adding Accept-Encoding ourselves makes us responsible for decompressing
        transparent_gzip = False
        if 'Accept-Encoding' not in headers and 'Range' not in headers:
            transparent_gzip = True
            headers['Accept-Encoding'] = 'gzip'

        cookies = self.cookie_store.load_for_request(user_request.url)
        if cookies:
            headers['Cookie'] = cookie_header(cookies)

        if 'User-Agent' not in headers:
            headers['User-Agent'] = self.user_agent

        self.logger.debug('Bridged request headers', url=str(user_request.url), transparent_gzip=transparent_gzip, cookies=len(cookies))

        network_response = await chain.proceed(user_request.with_headers(headers))

        self.cookie_store.receive_headers(user_request.url, network_response.headers)

        response = network_response.with_request(user_request)

        content_encoding = network_response.header('Content-Encoding')
        if (
            transparent_gzip
            and content_encoding is not None
            and content_encoding.lower() == 'gzip'
            and network_response.promises_body()
            and network_response.body is not None
        ):
            network_body = network_response.body
            stripped_headers = network_response.headers.copy()
            for name in ('Content-Encoding', 'Content-Length'):
                if name in stripped_headers:
                    del stripped_headers[name]
            decompressed_body = ResponseBody(
                gunzip_stream(network_body.aiter_bytes()),
                content_type=network_response.header('Content-Type'),
                content_length=None,
                close=network_body.aclose,
            )
            self.logger.debug('Transparently decompressing gzip response', status_code=network_response.status_code)
            response = response.with_headers(stripped_headers).with_body(decompressed_body)

        return response

    def __repr__(self) -> str:
        return f'BridgeInterceptor(cookie_store={self.cookie_store!r})'
