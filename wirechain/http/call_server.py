"""Terminal interceptor that puts the request on the wire."""

from __future__ import annotations

from typing import Optional

import httpx

from .exceptions import ProtocolViolationError
from .interfaces import Chain, Interceptor
from .models import RequestBody, Response, ResponseBody, parse_content_length


def _seconds(millis: int) -> Optional[float]:
    # Zero means no timeout
    return millis / 1000 if millis else None


def _wire_content(body: Optional[RequestBody]):
    return body.source if body is not None else None


class CallServerInterceptor(Interceptor):
    """Sends the bridged request through the exchange's client and streams the raw response back.

    Response bytes are handed over undecoded; decompression is the bridge's
    job. Transport errors propagate unchanged.
    """

    def __init__(self, logger):
        self.logger = logger

    async def intercept(self, chain: Chain) -> Response:
        connection = chain.connection()
        if connection is None:
            raise ProtocolViolationError(f'{self!r} must run after an exchange is bound')

        request = chain.request
        timeout = httpx.Timeout(
            connect=_seconds(chain.connect_timeout_millis),
            read=_seconds(chain.read_timeout_millis),
            write=_seconds(chain.write_timeout_millis),
            pool=_seconds(chain.connect_timeout_millis),
        )
        wire_request = httpx.Request(
            request.method,
            request.url,
            headers=request.headers,
            content=_wire_content(request.body),
            extensions={'timeout': timeout.as_dict()},
        )

        self.logger.debug('Sending request', method=request.method, url=str(request.url))
        wire_response = await connection.client.send(wire_request, stream=True)
        self.logger.debug('Received response headers', status_code=wire_response.status_code, http_version=wire_response.http_version)

        headers = wire_response.headers.copy()
        body = ResponseBody(
            wire_response.aiter_raw(),
            content_type=headers.get('Content-Type'),
            content_length=parse_content_length(headers.get('Content-Length')),
            close=wire_response.aclose,
        )
        return Response(
            status_code=wire_response.status_code,
            request=request,
            headers=headers,
            body=body,
            reason_phrase=wire_response.reason_phrase,
            http_version=wire_response.http_version,
        )
