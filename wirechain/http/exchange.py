"""Committed-connection handles bound into the chain at the network boundary."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx

DEFAULT_PORTS = {'http': 80, 'https': 443, 'ws': 80, 'wss': 443}


def effective_port(url: httpx.URL) -> Optional[int]:
    """Explicit port of ``url``, falling back to its scheme's default."""
    if url.port is not None:
        return url.port
    return DEFAULT_PORTS.get(url.scheme)


@dataclass(frozen=True, slots=True)
class Connection:
    """Route a call is committed to, plus the client that carries it."""

    host: str
    port: Optional[int]
    scheme: str
    client: httpx.AsyncClient

    def __repr__(self) -> str:
        return f'<Connection {self.scheme}://{self.host}:{self.port}>'


@dataclass(frozen=True, slots=True)
class Exchange:
    """A committed network exchange pinned to one host and port."""

    host: str
    port: Optional[int]
    connection: Connection

    @classmethod
    def for_url(cls, url: httpx.URL, client: httpx.AsyncClient) -> 'Exchange':
        port = effective_port(url)
        return cls(host=url.host, port=port, connection=Connection(host=url.host, port=port, scheme=url.scheme, client=client))

    def same_host_and_port(self, url: httpx.URL) -> bool:
        return url.host == self.host and effective_port(url) == self.port
