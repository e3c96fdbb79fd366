# PATH: core/constants.py
"""
Constants for headwatch.

Contains enums, defaults, and configuration constants.
"""

from enum import Enum
from typing import Final

# =============================================================================
# DEFAULTS
# =============================================================================

SERVICE_NAME: Final[str] = "@services/headwatch"

DEFAULT_MODE: Final[str] = "rpc"
DEFAULT_NETWORK: Final[str] = "main"
DEFAULT_SERVERS: Final[tuple[str, ...]] = ("http://127.0.0.1:8545",)

# Heartbeat cadence
DEFAULT_INTERVAL_MS: Final[int] = 12500

# Transport
DEFAULT_TIMEOUT_SECONDS: Final[float] = 10.0
DEFAULT_UNHEALTHY_COOLDOWN_MS: Final[int] = 30000

# Bootstrap
DEFAULT_BOOTSTRAP_RETRIES: Final[int] = 3
DEFAULT_BOOTSTRAP_RETRY_DELAY_MS: Final[int] = 1000

# Diagnostics
DEFAULT_GAS_LIMIT: Final[int] = 0xFFFF

REQUEST_TYPE: Final[str] = "GenericRPCRequest"

SUPPORTED_MODES: Final[frozenset[str]] = frozenset(["rpc"])


class ServiceStatus(str, Enum):
    """Lifecycle states of the watcher service."""
    STOPPED = "STOPPED"
    STARTING = "STARTING"
    STARTED = "STARTED"
    STOPPING = "STOPPING"


class RequestStatus(str, Enum):
    """Status of a tracked request."""
    QUEUED = "queued"
    COMPLETED = "completed"
    ERROR = "error"


class EndpointStrategy(str, Enum):
    """How the transport picks the next endpoint to try."""
    FIRST_HEALTHY = "first_healthy"
    ROUND_ROBIN = "round_robin"


class BootstrapPolicy(str, Enum):
    """What start() does when the bootstrap sync fails."""
    FAIL_FAST = "fail_fast"
    RETRY = "retry"
    DEGRADED = "degraded"


class Event(str, Enum):
    """Notification names emitted by the service."""
    READY = "ready"
    LOG = "log"
    ERROR = "error"
    BEAT = "beat"
    BLOCK = "block"


class ErrorCode(str, Enum):
    """Error codes carried by every WatcherError."""
    # Configuration
    CONFIG_INVALID = "CONFIG_INVALID"
    CONFIG_NO_ENDPOINT = "CONFIG_NO_ENDPOINT"

    # Transport
    TRANSPORT_RPC_ERROR = "TRANSPORT_RPC_ERROR"
    TRANSPORT_TIMEOUT = "TRANSPORT_TIMEOUT"
    TRANSPORT_UNREACHABLE = "TRANSPORT_UNREACHABLE"

    # Protocol
    PROTOCOL_MALFORMED = "PROTOCOL_MALFORMED"

    # Internal
    INTERNAL_DISPATCH = "INTERNAL_DISPATCH"
    INTERNAL_STATE = "INTERNAL_STATE"

    UNKNOWN = "UNKNOWN"
