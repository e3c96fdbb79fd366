"""
core - Core utilities and models for headwatch.

This package contains:
- constants.py: Enums and defaults
- exceptions.py: Typed exceptions with error codes
- models.py: Request records, timed results, heartbeat events
- events.py: Notification emitter
- time.py: Clock helpers
- logging.py: Structured JSON logging
"""

from core.constants import (
    BootstrapPolicy,
    EndpointStrategy,
    ErrorCode,
    Event,
    RequestStatus,
    ServiceStatus,
)
from core.events import EventEmitter
from core.exceptions import (
    ConfigurationError,
    InternalError,
    InvalidTransitionError,
    ProtocolError,
    TransportError,
    WatcherError,
)
from core.logging import get_logger, set_global_context, setup_logging
from core.models import (
    AccountBalance,
    BalanceResult,
    HeartbeatEvent,
    RequestRecord,
    StateSnapshot,
    TimedResult,
)

__all__ = [
    # Constants
    "BootstrapPolicy",
    "EndpointStrategy",
    "ErrorCode",
    "Event",
    "RequestStatus",
    "ServiceStatus",
    # Events
    "EventEmitter",
    # Exceptions
    "ConfigurationError",
    "InternalError",
    "InvalidTransitionError",
    "ProtocolError",
    "TransportError",
    "WatcherError",
    # Models
    "AccountBalance",
    "BalanceResult",
    "HeartbeatEvent",
    "RequestRecord",
    "StateSnapshot",
    "TimedResult",
    # Logging
    "get_logger",
    "set_global_context",
    "setup_logging",
]
