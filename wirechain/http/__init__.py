"""Interceptor chain: executor, bridge, and the network-side collaborators."""

from .bridge import BridgeInterceptor
from .call_server import CallServerInterceptor
from .chain import InterceptorChain
from .client import HttpClient
from .connect import ConnectInterceptor
from .exceptions import ChainException, ConfigurationError, ProtocolViolationError
from .exchange import Connection, Exchange
from .interfaces import NO_COOKIES, Chain, Cookie, CookieStore, Interceptor, Phase
from .models import Call, Request, RequestBody, Response, ResponseBody

__all__ = [
    'BridgeInterceptor',
    'CallServerInterceptor',
    'ConnectInterceptor',
    'InterceptorChain',
    'HttpClient',
    'ChainException',
    'ConfigurationError',
    'ProtocolViolationError',
    'Connection',
    'Exchange',
    'NO_COOKIES',
    'Chain',
    'Cookie',
    'CookieStore',
    'Interceptor',
    'Phase',
    'Call',
    'Request',
    'RequestBody',
    'Response',
    'ResponseBody',
]
