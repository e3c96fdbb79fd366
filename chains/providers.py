# PATH: chains/providers.py
"""
chains/providers.py - JSON-RPC transport with endpoint fallback.

Provides the single bound client every tracked request goes through:
- Endpoint URL parsing (credentials, scheme, host, port, query)
- Ordered endpoint list with health tracking and cooldown
- first_healthy / round_robin selection
- Per-endpoint latency and success statistics
"""

import os
import re
import time
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

import httpx
from dotenv import load_dotenv

from core.constants import (
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_UNHEALTHY_COOLDOWN_MS,
    EndpointStrategy,
    ErrorCode,
)
from core.exceptions import ConfigurationError, ProtocolError, TransportError
from core.logging import get_logger
from core.time import now_ms

logger = get_logger(__name__)

# Load environment variables
load_dotenv()

_PLACEHOLDER = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


@dataclass(frozen=True)
class Endpoint:
    """A parsed remote endpoint."""
    scheme: str
    host: str
    port: int
    path: str = ""
    username: str | None = None
    password: str | None = None
    query: str = ""

    @property
    def secure(self) -> bool:
        return self.scheme == "https"

    @property
    def url(self) -> str:
        """URL without credentials. The query string is kept."""
        # IPv6 literals need their brackets back
        host = f"[{self.host}]" if ":" in self.host else self.host
        url = f"{self.scheme}://{host}:{self.port}{self.path}"
        return f"{url}?{self.query}" if self.query else url

    @property
    def auth(self) -> tuple[str, str] | None:
        if self.username is None:
            return None
        return (self.username, self.password or "")

    @classmethod
    def parse(cls, url: str) -> "Endpoint":
        """
        Parse an endpoint URL.

        Raises:
            ConfigurationError: If the URL is not http(s) or has no host
        """
        try:
            parts = urlsplit(url)
            port = parts.port
        except ValueError as e:
            raise ConfigurationError(
                f"Malformed endpoint URL: {e}",
                details={"url": _redact(url)},
            ) from e

        if parts.scheme not in ("http", "https") or not parts.hostname:
            raise ConfigurationError(
                "Endpoint URL must be http(s)://host[:port]",
                details={"url": _redact(url)},
            )

        if port is None:
            port = 443 if parts.scheme == "https" else 80

        return cls(
            scheme=parts.scheme,
            host=parts.hostname,
            port=port,
            path=parts.path.rstrip("/") if parts.path not in ("", "/") else "",
            username=parts.username,
            password=parts.password,
            query=parts.query,
        )


def _redact(url: str) -> str:
    """Strip user-info from a URL for logs and error details."""
    return re.sub(r"//[^@/]*@", "//***@", url)


def resolve_urls(urls: list[str]) -> list[str]:
    """Resolve ${VAR} placeholders in URLs from the environment."""
    resolved = []
    for url in urls:
        missing = [m for m in _PLACEHOLDER.findall(url) if m not in os.environ]
        if missing:
            logger.warning(
                "Skipping endpoint with unresolved placeholders",
                extra={"context": {"url": _redact(url), "missing": missing}},
            )
            continue
        resolved.append(_PLACEHOLDER.sub(lambda m: os.environ[m.group(1)], url))
    return resolved


def resolve_endpoints(urls: list[str]) -> list[Endpoint]:
    """
    Turn configured URLs into endpoints, dropping the ones that don't parse.

    Raises:
        ConfigurationError: If no endpoint is usable
    """
    endpoints = []
    for url in resolve_urls(urls):
        try:
            endpoints.append(Endpoint.parse(url))
        except ConfigurationError as e:
            logger.warning(
                f"Ignoring endpoint: {e.message}",
                extra={"context": e.details},
            )

    if not endpoints:
        raise ConfigurationError(
            "No usable RPC endpoint configured",
            code=ErrorCode.CONFIG_NO_ENDPOINT,
            details={"configured": len(urls)},
        )
    return endpoints


@dataclass
class RPCStats:
    """Statistics for an RPC endpoint."""
    url: str
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_latency_ms: int = 0
    last_error: str | None = None
    last_success_ts: int | None = None
    unhealthy_until_ts: int = 0

    @property
    def avg_latency_ms(self) -> int:
        if self.successful_requests == 0:
            return 0
        return self.total_latency_ms // self.successful_requests

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests

    def is_healthy(self, at_ms: int | None = None) -> bool:
        return (at_ms if at_ms is not None else now_ms()) >= self.unhealthy_until_ts


@dataclass
class RPCResponse:
    """Response from an RPC call."""
    result: Any
    latency_ms: int
    endpoint_used: str


class RPCTransport:
    """
    JSON-RPC client bound to an ordered list of endpoints.

    An endpoint that fails at the network/HTTP level is put on cooldown
    and the next candidate is tried. A JSON-RPC error object means the
    node answered, so it is raised immediately without falling back.
    """

    def __init__(
        self,
        endpoints: list[Endpoint],
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        strategy: EndpointStrategy = EndpointStrategy.FIRST_HEALTHY,
        unhealthy_cooldown_ms: int = DEFAULT_UNHEALTHY_COOLDOWN_MS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not endpoints:
            raise ConfigurationError(
                "RPCTransport needs at least one endpoint",
                code=ErrorCode.CONFIG_NO_ENDPOINT,
            )
        self.endpoints = list(endpoints)
        self.timeout_seconds = timeout_seconds
        self.strategy = EndpointStrategy(strategy)
        self.unhealthy_cooldown_ms = unhealthy_cooldown_ms
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._request_id = 0
        self._cursor = 0

        # Track stats per endpoint
        self.stats: dict[str, RPCStats] = {
            ep.url: RPCStats(url=ep.url) for ep in self.endpoints
        }

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                limits=httpx.Limits(max_connections=10),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _next_request_id(self) -> int:
        """Generate next request ID."""
        self._request_id += 1
        return self._request_id

    def candidates(self) -> list[Endpoint]:
        """
        Endpoints in the order they should be tried for the next call.

        Healthy endpoints come first; endpoints on cooldown are kept as a
        last resort so a fully degraded list still gets attempted.
        """
        ordered = self.endpoints
        if self.strategy == EndpointStrategy.ROUND_ROBIN:
            start = self._cursor % len(self.endpoints)
            self._cursor += 1
            ordered = self.endpoints[start:] + self.endpoints[:start]

        at = now_ms()
        healthy = [ep for ep in ordered if self.stats[ep.url].is_healthy(at)]
        cooling = [ep for ep in ordered if not self.stats[ep.url].is_healthy(at)]
        return healthy + cooling

    def _mark_failed(self, stats: RPCStats, error: str) -> None:
        stats.failed_requests += 1
        stats.last_error = error
        stats.unhealthy_until_ts = now_ms() + self.unhealthy_cooldown_ms

    async def request(
        self,
        method: str,
        params: list | None = None,
    ) -> RPCResponse:
        """
        Make an RPC call with fallback.

        Args:
            method: RPC method name
            params: Positional method parameters

        Returns:
            RPCResponse with result and metadata

        Raises:
            TransportError: If the node returned an error or all endpoints failed
            ProtocolError: If the response body is not a JSON-RPC object
        """
        client = await self._get_client()
        last_error: TransportError | None = None
        tried = []

        for endpoint in self.candidates():
            stats = self.stats[endpoint.url]
            stats.total_requests += 1
            tried.append(endpoint.url)

            payload = {
                "jsonrpc": "2.0",
                "method": method,
                "params": list(params or []),
                "id": self._next_request_id(),
            }

            start_ms = int(time.time() * 1000)

            try:
                resp = await client.post(endpoint.url, json=payload, auth=endpoint.auth)
                resp.raise_for_status()
                latency_ms = int(time.time() * 1000) - start_ms
                body = resp.json()

            except httpx.TimeoutException as e:
                latency_ms = int(time.time() * 1000) - start_ms
                self._mark_failed(stats, f"Timeout after {latency_ms}ms")
                last_error = TransportError(
                    f"Timeout after {latency_ms}ms",
                    code=ErrorCode.TRANSPORT_TIMEOUT,
                    details={"url": endpoint.url, "method": method},
                )
                logger.debug(
                    f"RPC timeout for {endpoint.url}: {e}",
                    extra={"context": {"latency_ms": latency_ms}},
                )
                continue

            except httpx.HTTPError as e:
                self._mark_failed(stats, str(e))
                last_error = TransportError(
                    f"{type(e).__name__}: {e}",
                    code=ErrorCode.TRANSPORT_UNREACHABLE,
                    details={"url": endpoint.url, "method": method},
                )
                logger.debug(f"RPC failed for {endpoint.url}: {e}")
                continue

            except ValueError as e:
                self._mark_failed(stats, "Invalid JSON body")
                raise ProtocolError(
                    "Response body is not valid JSON",
                    details={"url": endpoint.url, "method": method, "error": str(e)},
                ) from e

            if not isinstance(body, dict):
                raise ProtocolError(
                    "Response body is not a JSON-RPC object",
                    details={"url": endpoint.url, "method": method},
                )

            if body.get("error") is not None:
                error = body["error"]
                error_msg = error.get("message", str(error)) if isinstance(error, dict) else str(error)
                stats.failed_requests += 1
                stats.last_error = error_msg
                raise TransportError(
                    f"RPC error: {error_msg}",
                    code=ErrorCode.TRANSPORT_RPC_ERROR,
                    details={"url": endpoint.url, "method": method, "error": error},
                )

            # Success
            stats.successful_requests += 1
            stats.total_latency_ms += latency_ms
            stats.last_success_ts = now_ms()
            stats.unhealthy_until_ts = 0

            return RPCResponse(
                result=body.get("result"),
                latency_ms=latency_ms,
                endpoint_used=endpoint.url,
            )

        raise TransportError(
            f"All RPC endpoints failed: {last_error.message if last_error else 'unknown'}",
            code=last_error.code if last_error else ErrorCode.TRANSPORT_UNREACHABLE,
            details={
                "endpoints_tried": tried,
                "last_error": str(last_error),
            },
        )

    def get_stats_summary(self) -> dict:
        """Get statistics summary for all endpoints."""
        at = now_ms()
        return {
            url: {
                "total_requests": s.total_requests,
                "success_rate": round(s.success_rate, 3),
                "avg_latency_ms": s.avg_latency_ms,
                "last_error": s.last_error,
                "healthy": s.is_healthy(at),
            }
            for url, s in self.stats.items()
        }


def create_transport(
    servers: list[str],
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    strategy: EndpointStrategy = EndpointStrategy.FIRST_HEALTHY,
    unhealthy_cooldown_ms: int = DEFAULT_UNHEALTHY_COOLDOWN_MS,
    transport: httpx.AsyncBaseTransport | None = None,
) -> RPCTransport:
    """
    Resolve configured server URLs into a bound transport.

    Raises:
        ConfigurationError: If no server URL is usable
    """
    endpoints = resolve_endpoints(servers)

    logger.info(
        "RPC transport configured",
        extra={
            "context": {
                "endpoints": [ep.url for ep in endpoints],
                "strategy": EndpointStrategy(strategy).value,
            }
        },
    )

    return RPCTransport(
        endpoints,
        timeout_seconds=timeout_seconds,
        strategy=strategy,
        unhealthy_cooldown_ms=unhealthy_cooldown_ms,
        transport=transport,
    )
