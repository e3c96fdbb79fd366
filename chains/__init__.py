"""
chains/ - Remote node interaction layer.

Modules:
- providers: JSON-RPC transport with endpoint fallback
- requests: Tracked requests (identity, latency, status)
"""

from chains.providers import (
    Endpoint,
    RPCResponse,
    RPCStats,
    RPCTransport,
    create_transport,
    resolve_endpoints,
    resolve_urls,
)
from chains.requests import RequestTracker

__all__ = [
    # Providers
    "Endpoint",
    "RPCResponse",
    "RPCStats",
    "RPCTransport",
    "create_transport",
    "resolve_endpoints",
    "resolve_urls",
    # Requests
    "RequestTracker",
]
