# PATH: watcher/config.py
"""
watcher/config.py - Service configuration.

Defaults merged with caller overrides; caller values take precedence.
Immutable after construction.
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from core.constants import (
    DEFAULT_BOOTSTRAP_RETRIES,
    DEFAULT_BOOTSTRAP_RETRY_DELAY_MS,
    DEFAULT_INTERVAL_MS,
    DEFAULT_MODE,
    DEFAULT_NETWORK,
    DEFAULT_SERVERS,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_UNHEALTHY_COOLDOWN_MS,
    SERVICE_NAME,
    SUPPORTED_MODES,
    BootstrapPolicy,
    EndpointStrategy,
)
from core.exceptions import ConfigurationError
from core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class WatcherConfig:
    """Full watcher configuration."""

    name: str = SERVICE_NAME
    mode: str = DEFAULT_MODE
    network: str = DEFAULT_NETWORK

    # Endpoints, tried in order
    servers: tuple[str, ...] = DEFAULT_SERVERS

    # Heartbeat
    interval_ms: int = DEFAULT_INTERVAL_MS

    # Watch-list
    targets: tuple[str, ...] = ()

    # Administrative server settings (None disables it)
    http: Mapping[str, Any] | None = None

    # Transport
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    endpoint_strategy: EndpointStrategy = EndpointStrategy.FIRST_HEALTHY
    unhealthy_cooldown_ms: int = DEFAULT_UNHEALTHY_COOLDOWN_MS

    # Bootstrap
    bootstrap_policy: BootstrapPolicy = BootstrapPolicy.FAIL_FAST
    bootstrap_retries: int = DEFAULT_BOOTSTRAP_RETRIES
    bootstrap_retry_delay_ms: int = DEFAULT_BOOTSTRAP_RETRY_DELAY_MS

    # Re-fetch the head block when height moves
    follow_tip: bool = True

    # Appended to eth_getBalance params when set (e.g. "latest")
    balance_block_tag: str | None = None

    extras: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # Normalise list-ish values so the instance stays immutable
        object.__setattr__(self, "servers", _as_tuple(self.servers, "servers"))
        object.__setattr__(self, "targets", _as_tuple(self.targets, "targets"))
        try:
            object.__setattr__(self, "endpoint_strategy", EndpointStrategy(self.endpoint_strategy))
            object.__setattr__(self, "bootstrap_policy", BootstrapPolicy(self.bootstrap_policy))
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        self.validate()

    def validate(self) -> None:
        """
        Raises:
            ConfigurationError: On any invalid value
        """
        if self.mode not in SUPPORTED_MODES:
            raise ConfigurationError(
                f"Unsupported mode: {self.mode}",
                details={"supported": sorted(SUPPORTED_MODES)},
            )
        if not isinstance(self.interval_ms, int) or isinstance(self.interval_ms, bool) or self.interval_ms <= 0:
            raise ConfigurationError(
                "interval_ms must be a positive integer",
                details={"interval_ms": self.interval_ms},
            )
        if not self.servers:
            raise ConfigurationError("At least one server URL is required")
        if self.timeout_seconds <= 0:
            raise ConfigurationError("timeout_seconds must be positive")
        if self.bootstrap_retries < 0 or self.bootstrap_retry_delay_ms < 0:
            raise ConfigurationError("bootstrap retry settings must be non-negative")
        if self.http is not None and not isinstance(self.http, Mapping):
            raise ConfigurationError("http settings must be a mapping")

    @classmethod
    def from_overrides(cls, overrides: Mapping[str, Any] | None = None) -> "WatcherConfig":
        """
        Build a config from defaults plus caller overrides.

        Keys that are not config fields are kept in `extras` and otherwise
        ignored.
        """
        known = {f.name for f in fields(cls)} - {"extras"}
        values: dict[str, Any] = {}
        extras: dict[str, Any] = {}

        for key, value in (overrides or {}).items():
            if key in known:
                values[key] = value
            else:
                extras[key] = value

        if extras:
            logger.debug(
                "Ignoring unknown config keys",
                extra={"context": {"keys": sorted(extras)}},
            )

        return cls(**values, extras=extras)

    def merged(self, **overrides: Any) -> "WatcherConfig":
        """Copy with overrides applied on top of this config."""
        current = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "extras"}
        current.update(self.extras)
        current.update(overrides)
        return WatcherConfig.from_overrides(current)


def _as_tuple(value: Any, name: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    try:
        return tuple(str(v) for v in value)
    except TypeError as e:
        raise ConfigurationError(f"{name} must be a list of strings") from e


def load_watcher_config(
    config_path: Path | str | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> WatcherConfig:
    """
    Load watcher configuration from YAML, then apply overrides.

    Args:
        config_path: Path to a YAML file (default: shipped config/watcher.yaml)
        overrides: Caller values, applied last

    Returns:
        WatcherConfig
    """
    if config_path is None:
        from config import load_watcher_defaults
        data = load_watcher_defaults()
    else:
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigurationError(
                f"Config file not found: {config_path}",
                details={"path": str(config_path)},
            )
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ConfigurationError(
            "Config file must contain a mapping",
            details={"path": str(config_path)},
        )

    merged = {**data, **(overrides or {})}
    return WatcherConfig.from_overrides(merged)
