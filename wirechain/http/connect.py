"""Network boundary: commits the call to a host and port."""

from __future__ import annotations

import httpx

from .chain import InterceptorChain
from .exceptions import ProtocolViolationError
from .exchange import Exchange
from .interfaces import Chain, Interceptor
from .models import Response


class ConnectInterceptor(Interceptor):
    """Binds an exchange for the request's target and enters the network phase.

    Connection establishment and pooling are left to the shared
    ``httpx.AsyncClient``; the exchange only pins the route.
    """

    def __init__(self, logger, client: httpx.AsyncClient):
        self.logger = logger
        self.client = client

    async def intercept(self, chain: Chain) -> Response:
        if not isinstance(chain, InterceptorChain):
            raise ProtocolViolationError(f'{self!r} requires an InterceptorChain, got {type(chain).__name__}')

        request = chain.request
        exchange = Exchange.for_url(request.url, self.client)
        self.logger.debug('Exchange bound', host=exchange.host, port=exchange.port)
        return await chain.with_exchange(exchange).proceed(request)
