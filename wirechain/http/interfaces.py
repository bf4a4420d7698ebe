"""Capabilities the interceptor chain is built from."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Union

import httpx

if TYPE_CHECKING:
    from .exchange import Connection
    from .models import Call, Request, Response

Timeout = Union[float, int, timedelta]


class Phase(str, Enum):
    """Chain phase, derived from whether an exchange is bound."""

    APPLICATION = 'application'
    NETWORK = 'network'


class Chain(ABC):
    """Execution context handed to each interceptor.

    A chain is a snapshot: the ``with_*`` methods return new chains and
    leave this one untouched.
    """

    __slots__ = ()

    @property
    @abstractmethod
    def request(self) -> 'Request':
        pass

    @property
    @abstractmethod
    def call(self) -> 'Call':
        pass

    @abstractmethod
    def connection(self) -> Optional['Connection']:
        """Connection of the bound exchange, or None before the network boundary."""
        pass

    @property
    @abstractmethod
    def connect_timeout_millis(self) -> int:
        pass

    @property
    @abstractmethod
    def read_timeout_millis(self) -> int:
        pass

    @property
    @abstractmethod
    def write_timeout_millis(self) -> int:
        pass

    @abstractmethod
    def with_connect_timeout(self, timeout: Timeout) -> 'Chain':
        pass

    @abstractmethod
    def with_read_timeout(self, timeout: Timeout) -> 'Chain':
        pass

    @abstractmethod
    def with_write_timeout(self, timeout: Timeout) -> 'Chain':
        pass

    @abstractmethod
    async def proceed(self, request: 'Request') -> 'Response':
        """Hand ``request`` to the next interceptor and return its response."""
        pass


class Interceptor(ABC):
    """Pluggable unit that observes and transforms a request and its response."""

    @abstractmethod
    async def intercept(self, chain: Chain) -> 'Response':
        """Produce a response for ``chain.request``, usually by calling ``chain.proceed()``."""
        pass

    def __repr__(self) -> str:
        return self.__class__.__name__


@dataclass(frozen=True, slots=True)
class Cookie:
    name: str
    value: str


class CookieStore(ABC):
    """Source and sink of cookies for the bridge.

    Implementations may be shared between concurrent calls and must do
    their own locking.
    """

    @abstractmethod
    def load_for_request(self, url: httpx.URL) -> List[Cookie]:
        """Cookies to send to ``url``, in the order they should appear."""
        pass

    @abstractmethod
    def receive_headers(self, url: httpx.URL, headers: httpx.Headers) -> None:
        """Persist any applicable Set-Cookie entries from a response to ``url``."""
        pass


class _NoCookies(CookieStore):
    def load_for_request(self, url: httpx.URL) -> List[Cookie]:
        return []

    def receive_headers(self, url: httpx.URL, headers: httpx.Headers) -> None:
        pass

    def __repr__(self) -> str:
        return 'NO_COOKIES'


NO_COOKIES: CookieStore = _NoCookies()
