# PATH: tests/conftest.py
"""
Pytest configuration and fixtures for headwatch tests.
"""

import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List

import httpx
import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from chains.providers import Endpoint, RPCTransport  # noqa: E402
from chains.requests import RequestTracker  # noqa: E402
from core.events import EventEmitter  # noqa: E402
from watcher.state import ChainState  # noqa: E402
from watcher.sync import SyncRoutines  # noqa: E402

TIP_HASH = "0x06226e46111a0b59caaf126043eb5bbf28c34f3a5e332a1fc7b2b73cf188910f"


def pytest_configure(config):
    """Configure pytest."""
    # Add custom markers
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


class RPCFault(Exception):
    """Raised by a FakeNode result callable to answer with a JSON-RPC error."""


class FakeNode:
    """
    In-process JSON-RPC node served through httpx.MockTransport.

    results: method -> value, or callable(params) -> value (may raise RPCFault)
    rpc_errors: method -> JSON-RPC error message
    down: set of hosts that refuse connections
    """

    tip_hash = TIP_HASH
    fault = RPCFault

    def __init__(self):
        self.results: Dict[str, Any] = {
            "eth_blockNumber": "0x10",
            "eth_getBalance": "0x64",
            "eth_getBlockByNumber": lambda params: {"number": params[0], "hash": TIP_HASH},
        }
        self.rpc_errors: Dict[str, str] = {}
        self.down: set[str] = set()
        self.calls: List[Dict[str, Any]] = []
        self.hosts: List[str] = []
        self.paths: List[str] = []
        self.auth_headers: List[str | None] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.hosts.append(request.url.host)
        self.paths.append(request.url.raw_path.decode())
        self.auth_headers.append(request.headers.get("authorization"))
        if request.url.host in self.down:
            raise httpx.ConnectError("connection refused", request=request)

        body = json.loads(request.content)
        self.calls.append(body)
        method = body["method"]

        if method in self.rpc_errors:
            return self._error(body, self.rpc_errors[method])

        value = self.results.get(method)
        if callable(value):
            try:
                value = value(body["params"])
            except RPCFault as e:
                return self._error(body, str(e))
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": value})

    def _error(self, body: Dict[str, Any], message: str) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "jsonrpc": "2.0",
                "id": body["id"],
                "error": {"code": -32000, "message": message},
            },
        )

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def methods(self) -> List[str]:
        return [c["method"] for c in self.calls]


@pytest.fixture
def node() -> FakeNode:
    return FakeNode()


@pytest.fixture
def emitter() -> EventEmitter:
    return EventEmitter()


@pytest.fixture
def recorder(emitter) -> Callable[[str], List[Any]]:
    """recorder("beat") -> list that fills with every payload of that event."""
    def _record(event: str) -> List[Any]:
        seen: List[Any] = []
        emitter.on(event, seen.append)
        return seen
    return _record


@pytest.fixture
def rpc_transport(node) -> RPCTransport:
    return RPCTransport(
        [Endpoint.parse("http://node-a:8545")],
        transport=node.transport(),
    )


@pytest.fixture
def tracker(emitter, rpc_transport) -> RequestTracker:
    return RequestTracker(emitter, rpc_transport)


@pytest.fixture
def chain_state(emitter) -> ChainState:
    return ChainState(emitter)


@pytest.fixture
def sync(tracker, chain_state) -> SyncRoutines:
    return SyncRoutines(tracker, chain_state, targets=["0xABC", "0xDEF"])
