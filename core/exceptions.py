# PATH: core/exceptions.py
"""
Typed exceptions for headwatch.

Every failure surfaced by the service is a WatcherError carrying an
ErrorCode, so callers and log consumers can classify without string
matching.
"""

from typing import Optional

from core.constants import ErrorCode


class WatcherError(Exception):
    """Base exception for headwatch."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __str__(self):
        return f"[{self.code.value}] {self.message}"

    def to_dict(self) -> dict:
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(WatcherError):
    """Invalid settings or no usable endpoint."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_INVALID,
        details: Optional[dict] = None,
    ):
        super().__init__(message, code, details)


class TransportError(WatcherError):
    """Remote call failed at the network or JSON-RPC level."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.TRANSPORT_RPC_ERROR,
        details: Optional[dict] = None,
    ):
        super().__init__(message, code, details)


class ProtocolError(WatcherError):
    """Response arrived but its shape or encoding is unusable."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.PROTOCOL_MALFORMED, details)


class InternalError(WatcherError):
    """Synchronous failure while setting up a dispatch."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.INTERNAL_DISPATCH, details)


class InvalidTransitionError(WatcherError):
    """Raised when an invalid lifecycle transition is attempted."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.INTERNAL_STATE, details)


__all__ = [
    "ErrorCode",
    "WatcherError",
    "ConfigurationError",
    "TransportError",
    "ProtocolError",
    "InternalError",
    "InvalidTransitionError",
]
