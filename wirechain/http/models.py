"""Request and response value types flowing through the interceptor chain.

Requests and responses are immutable snapshots: every ``with_*`` method
returns a new instance and never touches the headers of the original.
Headers are ``httpx.Headers`` multimaps, so lookups are case-insensitive and
repeated fields keep their order.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import AsyncIterable, AsyncIterator, Awaitable, Callable, Iterable, Mapping, Optional, Tuple, Union

import httpx

HeaderTypes = Union[httpx.Headers, Mapping[str, str], Iterable[Tuple[str, str]], None]

# Status codes that never carry a body unless the framing headers say otherwise
_NO_BODY_STATUS_CODES = frozenset({204, 304})


async def _iter_bytes(data: bytes) -> AsyncIterator[bytes]:
    if data:
        yield data


def _header(headers: httpx.Headers, name: str) -> Optional[str]:
    values = headers.get_list(name)
    return values[-1] if values else None


def parse_content_length(value: Optional[str]) -> Optional[int]:
    """Content-Length as a non-negative int, or None when absent or malformed."""
    if value is None:
        return None
    try:
        length = int(value.strip())
    except ValueError:
        return None
    return length if length >= 0 else None


@dataclass(frozen=True)
class RequestBody:
    """Outgoing body descriptor.

    ``content_length`` is ``None`` when the length is not known up front,
    in which case the body goes out chunked.
    """

    source: Union[bytes, AsyncIterable[bytes]]
    content_type: Optional[str] = None
    content_length: Optional[int] = None

    def __post_init__(self):
        if self.content_length is not None and self.content_length < 0:
            raise ValueError(f'content_length must be non-negative, got {self.content_length}')

    @classmethod
    def from_bytes(cls, data: bytes, content_type: Optional[str] = None) -> 'RequestBody':
        return cls(source=data, content_type=content_type, content_length=len(data))

    @classmethod
    def from_text(cls, text: str, content_type: str = 'text/plain; charset=utf-8') -> 'RequestBody':
        return cls.from_bytes(text.encode('utf-8'), content_type)

    @classmethod
    def from_stream(cls, stream: AsyncIterable[bytes], content_type: Optional[str] = None, content_length: Optional[int] = None) -> 'RequestBody':
        return cls(source=stream, content_type=content_type, content_length=content_length)


@dataclass(frozen=True)
class Request:
    """Immutable HTTP request snapshot."""

    method: str
    url: httpx.URL
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: Optional[RequestBody] = None

    @classmethod
    def build(cls, method: str, url: Union[str, httpx.URL], headers: HeaderTypes = None, body: Optional[RequestBody] = None) -> 'Request':
        """Create a request, coercing plain strings and mappings into httpx types."""
        return cls(method=method.upper(), url=httpx.URL(url), headers=httpx.Headers(headers), body=body)

    def header(self, name: str) -> Optional[str]:
        """Return the last value of header ``name``, or None."""
        return _header(self.headers, name)

    def with_header(self, name: str, value: str) -> 'Request':
        """Set header ``name``, replacing every existing value."""
        headers = self.headers.copy()
        headers[name] = value
        return replace(self, headers=headers)

    def add_header(self, name: str, value: str) -> 'Request':
        """Append a value for ``name`` without removing existing ones."""
        return replace(self, headers=httpx.Headers([*self.headers.multi_items(), (name, value)]))

    def without_header(self, name: str) -> 'Request':
        headers = self.headers.copy()
        if name in headers:
            del headers[name]
        return replace(self, headers=headers)

    def with_headers(self, headers: HeaderTypes) -> 'Request':
        return replace(self, headers=httpx.Headers(headers))

    def with_url(self, url: Union[str, httpx.URL]) -> 'Request':
        return replace(self, url=httpx.URL(url))

    def with_body(self, body: Optional[RequestBody]) -> 'Request':
        return replace(self, body=body)


class ResponseBody:
    """Lazily consumed response body.

    The stream can be iterated once. ``content_length`` is ``None`` when the
    length is unknown, e.g. after transparent decompression.
    """

    def __init__(
        self,
        stream: AsyncIterable[bytes],
        content_type: Optional[str] = None,
        content_length: Optional[int] = None,
        close: Optional[Callable[[], Awaitable[None]]] = None,
    ):
        self.content_type = content_type
        self.content_length = content_length
        self._stream = stream
        self._close = close
        self._consumed = False
        self._closed = False

    @classmethod
    def from_bytes(cls, data: bytes, content_type: Optional[str] = None) -> 'ResponseBody':
        return cls(_iter_bytes(data), content_type=content_type, content_length=len(data))

    @classmethod
    def empty(cls, content_type: Optional[str] = None) -> 'ResponseBody':
        return cls.from_bytes(b'', content_type)

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        """Yield the body bytes as they become available."""
        if self._consumed:
            raise RuntimeError('Response body has already been consumed')
        self._consumed = True
        async for chunk in self._stream:
            if chunk:
                yield chunk

    async def aread(self) -> bytes:
        """Read the whole body and close it."""
        try:
            return b''.join([chunk async for chunk in self.aiter_bytes()])
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._close is not None:
            await self._close()

    def __repr__(self) -> str:
        return f'<ResponseBody content_type={self.content_type!r} content_length={self.content_length!r}>'


@dataclass(frozen=True)
class Response:
    """Immutable HTTP response snapshot.

    ``request`` is the request that produced the response; once a response
    has passed back through the bridge it is always the caller's original
    request, never the rewritten wire request.
    """

    status_code: int
    request: Request
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: Optional[ResponseBody] = None
    reason_phrase: str = ''
    http_version: str = 'HTTP/1.1'

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    def header(self, name: str) -> Optional[str]:
        """Return the last value of header ``name``, or None."""
        return _header(self.headers, name)

    def with_request(self, request: Request) -> 'Response':
        return replace(self, request=request)

    def with_headers(self, headers: HeaderTypes) -> 'Response':
        return replace(self, headers=httpx.Headers(headers))

    def with_body(self, body: Optional[ResponseBody]) -> 'Response':
        return replace(self, body=body)

    def promises_body(self) -> bool:
        """Whether this response may carry a body, judged from method, status and framing headers."""
        if self.request.method == 'HEAD':
            return False

        if not (100 <= self.status_code < 200) and self.status_code not in _NO_BODY_STATUS_CODES:
            return True

        # Explicit framing wins over a status that normally has no body
        if parse_content_length(self.header('Content-Length')) is not None:
            return True
        transfer_encoding = self.header('Transfer-Encoding')
        return transfer_encoding is not None and transfer_encoding.lower() == 'chunked'


@dataclass(frozen=True)
class Call:
    """One logical request execution, shared by every chain snapshot it spawns."""

    request: Request
    call_id: str
