"""Interceptor chain executor.

Each ``InterceptorChain`` is a snapshot bound to one position in the
interceptor list. ``proceed()`` builds the successor snapshot and hands it to
the interceptor at the current position, so dispatch walks the list in
ascending order and responses unwind in reverse.

Once an exchange is bound (the network phase), the chain pins the request to
the exchange's host and port and requires every non-terminal interceptor to
call ``proceed()`` exactly once.
"""

from __future__ import annotations

import math
from datetime import timedelta
from typing import Optional, Sequence

from wirechain.config.log import get_logger

from .exceptions import ConfigurationError, ProtocolViolationError
from .exchange import Connection, Exchange
from .interfaces import Chain, Interceptor, Phase, Timeout
from .models import Call, Request, Response

logger = get_logger(__name__)

MAX_TIMEOUT_MILLIS = 2**31 - 1
DEFAULT_TIMEOUT_MILLIS = 10_000


def check_duration(name: str, timeout: Timeout) -> int:
    """Convert a timeout in seconds (or a timedelta) to whole milliseconds."""
    seconds = timeout.total_seconds() if isinstance(timeout, timedelta) else float(timeout)
    if math.isnan(seconds):
        raise ConfigurationError(f'{name} is not a number')
    if seconds < 0:
        raise ConfigurationError(f'{name} < 0')
    if math.isinf(seconds):
        raise ConfigurationError(f'{name} too large')
    millis = round(seconds * 1000)
    if millis > MAX_TIMEOUT_MILLIS:
        raise ConfigurationError(f'{name} too large')
    if millis == 0 and seconds > 0:
        raise ConfigurationError(f'{name} too small')
    return millis


class InterceptorChain(Chain):
    """Concrete chain snapshot that drives dispatch and enforces the chain contract."""

    __slots__ = (
        '_call',
        '_interceptors',
        '_index',
        '_exchange',
        '_request',
        '_connect_timeout_millis',
        '_read_timeout_millis',
        '_write_timeout_millis',
        '_calls',
    )

    def __init__(
        self,
        call: Call,
        interceptors: Sequence[Interceptor],
        index: int,
        exchange: Optional[Exchange],
        request: Request,
        connect_timeout_millis: int = DEFAULT_TIMEOUT_MILLIS,
        read_timeout_millis: int = DEFAULT_TIMEOUT_MILLIS,
        write_timeout_millis: int = DEFAULT_TIMEOUT_MILLIS,
    ):
        interceptors = tuple(interceptors)
        if not 0 <= index <= len(interceptors):
            raise ValueError(f'index {index} out of range for {len(interceptors)} interceptors')
        self._call = call
        self._interceptors = interceptors
        self._index = index
        self._exchange = exchange
        self._request = request
        self._connect_timeout_millis = connect_timeout_millis
        self._read_timeout_millis = read_timeout_millis
        self._write_timeout_millis = write_timeout_millis
        # Number of times proceed() has been invoked on this snapshot
        self._calls = 0

    @classmethod
    def start(
        cls,
        call: Call,
        interceptors: Sequence[Interceptor],
        connect_timeout_millis: int = DEFAULT_TIMEOUT_MILLIS,
        read_timeout_millis: int = DEFAULT_TIMEOUT_MILLIS,
        write_timeout_millis: int = DEFAULT_TIMEOUT_MILLIS,
    ) -> 'InterceptorChain':
        """Initial application-phase chain for ``call``, positioned at the first interceptor."""
        return cls(call, interceptors, 0, None, call.request, connect_timeout_millis, read_timeout_millis, write_timeout_millis)

    def _copy(self, **changes) -> 'InterceptorChain':
        state = {
            'index': self._index,
            'exchange': self._exchange,
            'request': self._request,
            'connect_timeout_millis': self._connect_timeout_millis,
            'read_timeout_millis': self._read_timeout_millis,
            'write_timeout_millis': self._write_timeout_millis,
        }
        state.update(changes)
        return InterceptorChain(self._call, self._interceptors, **state)

    @property
    def request(self) -> Request:
        return self._request

    @property
    def call(self) -> Call:
        return self._call

    @property
    def index(self) -> int:
        return self._index

    @property
    def interceptors(self) -> tuple:
        return self._interceptors

    @property
    def exchange(self) -> Optional[Exchange]:
        return self._exchange

    @property
    def phase(self) -> Phase:
        return Phase.APPLICATION if self._exchange is None else Phase.NETWORK

    def connection(self) -> Optional[Connection]:
        return self._exchange.connection if self._exchange is not None else None

    @property
    def connect_timeout_millis(self) -> int:
        return self._connect_timeout_millis

    @property
    def read_timeout_millis(self) -> int:
        return self._read_timeout_millis

    @property
    def write_timeout_millis(self) -> int:
        return self._write_timeout_millis

    def _check_application_phase(self) -> None:
        if self._exchange is not None:
            raise ConfigurationError("Timeouts can't be adjusted in a network interceptor", call_id=self._call.call_id)

    def with_connect_timeout(self, timeout: Timeout) -> 'InterceptorChain':
        self._check_application_phase()
        return self._copy(connect_timeout_millis=check_duration('connectTimeout', timeout))

    def with_read_timeout(self, timeout: Timeout) -> 'InterceptorChain':
        self._check_application_phase()
        return self._copy(read_timeout_millis=check_duration('readTimeout', timeout))

    def with_write_timeout(self, timeout: Timeout) -> 'InterceptorChain':
        self._check_application_phase()
        return self._copy(write_timeout_millis=check_duration('writeTimeout', timeout))

    def with_exchange(self, exchange: Exchange) -> 'InterceptorChain':
        """Successor at the same position with ``exchange`` bound, entering the network phase.

        Only the network-boundary interceptor calls this, once per call.
        """
        if self._exchange is not None:
            raise ProtocolViolationError('An exchange is already bound to this chain', call_id=self._call.call_id)
        return self._copy(exchange=exchange)

    def _violation(self, message: str) -> ProtocolViolationError:
        logger.warning('Interceptor chain violation', reason=message, index=self._index, phase=self.phase.value)
        return ProtocolViolationError(message, call_id=self._call.call_id)

    async def proceed(self, request: Request) -> Response:
        if self._index >= len(self._interceptors):
            raise self._violation(f'Interceptor chain exhausted at index {self._index}')

        self._calls += 1

        if self._exchange is not None:
            previous = self._interceptors[self._index - 1] if self._index > 0 else None
            if not self._exchange.same_host_and_port(request.url):
                raise self._violation(f'network interceptor {previous!r} must retain the same host and port')
            if self._calls != 1:
                raise self._violation(f'network interceptor {previous!r} must call proceed() exactly once')

        next_chain = self._copy(index=self._index + 1, request=request)
        interceptor = self._interceptors[self._index]

        logger.debug('Dispatching to interceptor', interceptor=repr(interceptor), index=self._index, phase=self.phase.value)
        response = await interceptor.intercept(next_chain)

        if response is None:
            raise self._violation(f'interceptor {interceptor!r} returned None')

        if self._exchange is not None and self._index + 1 < len(self._interceptors) and next_chain._calls != 1:
            raise self._violation(f'network interceptor {interceptor!r} must call proceed() exactly once')

        if response.body is None:
            raise self._violation(f'interceptor {interceptor!r} returned a response with no body')

        return response

    def __repr__(self) -> str:
        return f'<InterceptorChain index={self._index}/{len(self._interceptors)} phase={self.phase.value}>'
