"""Interceptor chain domain exceptions.

Transport failures are not represented here: whatever the network layer
raises (``httpx.TransportError`` and friends) passes through the chain
unchanged.
"""

from typing import Optional


class ChainException(Exception):
    """Base exception for interceptor chain contract failures."""

    def __init__(self, message: str, call_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.call_id = call_id


class ConfigurationError(ChainException):
    """Timeout renegotiated in the network phase, or timeout value out of range."""

    pass


class ProtocolViolationError(ChainException):
    """An interceptor broke the chain contract.

    Raised for host/port drift after an exchange is bound, a network
    interceptor calling ``proceed()`` zero or several times, a missing
    response, or a response without a body. Never retryable.
    """

    pass
