# PATH: watcher/service.py
"""
watcher/service.py - The head-state watcher service.

Wires the transport, request tracker, chain state, synchronization
routines, heartbeat and lifecycle together behind start()/stop().

Notifications (subscribe with `on`):
- ready: {"id": service_id} once STARTED
- log:   human-readable string
- error: the exception that caused it
- beat:  HeartbeatEvent
- block: new tip value
"""

import asyncio
from typing import Any, Callable, Dict, Mapping, Optional, Sequence
from uuid import uuid4

import httpx

from chains.providers import create_transport
from chains.requests import RequestTracker
from core.constants import BootstrapPolicy, Event, ServiceStatus
from core.events import EventEmitter
from core.exceptions import ConfigurationError, WatcherError
from core.logging import get_logger, log_error
from core.models import AccountBalance, BalanceResult, HeartbeatEvent, TimedResult
from watcher.admin import AdminServer, forward_admin_logs
from watcher.config import WatcherConfig
from watcher.diagnostics import Diagnostics, ExecutionReport, Interpreter
from watcher.heartbeat import HeartbeatScheduler
from watcher.lifecycle import LifecycleStateMachine, StateTransition
from watcher.state import ChainState
from watcher.sync import SyncRoutines

logger = get_logger(__name__)


class WatcherService:
    """
    Long-running mirror of a remote chain's head state.

    Example:
        service = WatcherService({"servers": ["http://127.0.0.1:8545"], "targets": ["0xabc"]})
        service.on("beat", print)
        await service.start()
        ...
        await service.stop()
    """

    def __init__(
        self,
        settings: WatcherConfig | Mapping[str, Any] | None = None,
        admin_server: Optional[AdminServer] = None,
        interpreter: Optional[Interpreter] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if isinstance(settings, WatcherConfig):
            self.settings = settings
        else:
            self.settings = WatcherConfig.from_overrides(settings)

        if self.settings.http is not None and admin_server is None:
            raise ConfigurationError(
                "http settings given but no admin server supplied",
                details={"http": dict(self.settings.http)},
            )

        self.id = uuid4().hex
        self.emitter = EventEmitter()
        self.state = ChainState(self.emitter)
        self.lifecycle = LifecycleStateMachine(
            service_id=self.id,
            on_transition=self._on_transition,
        )
        self.tracker = RequestTracker(self.emitter)
        self.sync = SyncRoutines(
            self.tracker,
            self.state,
            targets=self.settings.targets,
            balance_block_tag=self.settings.balance_block_tag,
        )
        self.heartbeat = HeartbeatScheduler(
            self.sync,
            self.emitter,
            interval_ms=self.settings.interval_ms,
            follow_tip=self.settings.follow_tip,
        )
        self.admin_server = admin_server
        if admin_server is not None:
            forward_admin_logs(admin_server, self.emitter)
        self.diagnostics = Diagnostics(interpreter)
        self._http_transport = http_transport
        self._admin_started = False

    # =========================================================================
    # NOTIFICATIONS
    # =========================================================================

    def on(self, event: str, listener: Callable[[Any], Any]) -> Callable[[Any], Any]:
        return self.emitter.on(event, listener)

    def off(self, event: str, listener: Callable[[Any], Any]) -> None:
        self.emitter.off(event, listener)

    def emit(self, event: str, payload: Any = None) -> int:
        return self.emitter.emit(event, payload)

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def status(self) -> ServiceStatus:
        return self.lifecycle.state

    @property
    def tip(self) -> Optional[str]:
        return self.state.tip

    @tip.setter
    def tip(self, value: Optional[str]) -> None:
        self.state.tip = value

    @property
    def height(self) -> Optional[str]:
        return self.state.height

    @height.setter
    def height(self, value: Optional[str]) -> None:
        self.state.height = value

    @property
    def accounts(self) -> Dict[str, AccountBalance]:
        return self.state.accounts

    @property
    def clock(self) -> int:
        return self.heartbeat.clock

    def _on_transition(self, transition: StateTransition) -> None:
        self.state.status = transition.to_state

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self) -> "WatcherService":
        """
        Bind the transport, bootstrap state and arm the heartbeat.

        Raises:
            InvalidTransitionError: If the service is not STOPPED
            ConfigurationError: If no endpoint is usable
            WatcherError: If the bootstrap sync fails under fail_fast
        """
        self.lifecycle.transition_to(ServiceStatus.STARTING, reason="start")

        try:
            if self.settings.mode == "rpc":
                self.tracker.transport = create_transport(
                    list(self.settings.servers),
                    timeout_seconds=self.settings.timeout_seconds,
                    strategy=self.settings.endpoint_strategy,
                    unhealthy_cooldown_ms=self.settings.unhealthy_cooldown_ms,
                    transport=self._http_transport,
                )

            if self.admin_server is not None:
                await self.admin_server.start()
                self._admin_started = True

            await self._bootstrap()
        except BaseException:
            await self._release()
            if self.lifecycle.state == ServiceStatus.STARTING:
                self.lifecycle.transition_to(ServiceStatus.STOPPED, reason="bootstrap failed")
            raise

        if self.lifecycle.state != ServiceStatus.STARTING:
            # stop() ran while we were bootstrapping
            return self

        self.heartbeat.arm()
        self.lifecycle.transition_to(ServiceStatus.STARTED, reason="bootstrap complete")

        self.emit(Event.LOG, "Service started!")
        self.emit(Event.READY, {"id": self.id})

        await self.refresh_all_balances()
        return self

    async def stop(self) -> "WatcherService":
        """Disarm the heartbeat and release resources. No-op when stopped."""
        if self.lifecycle.state in (ServiceStatus.STOPPED, ServiceStatus.STOPPING):
            logger.debug(
                "Stop requested while not running",
                extra={"context": {"status": self.lifecycle.state.value}},
            )
            return self

        self.lifecycle.transition_to(ServiceStatus.STOPPING, reason="stop")
        await self._release()
        self.lifecycle.transition_to(ServiceStatus.STOPPED, reason="stop")
        return self

    async def _release(self) -> None:
        await self.heartbeat.disarm()

        if self._admin_started and self.admin_server is not None:
            self._admin_started = False
            try:
                await self.admin_server.stop()
            except Exception as e:
                log_error(logger, e, "Admin server failed to stop")

        transport = self.tracker.transport
        self.tracker.transport = None
        if transport is not None:
            await transport.close()

    async def _bootstrap(self) -> None:
        policy = self.settings.bootstrap_policy
        attempts = 1 + (self.settings.bootstrap_retries if policy == BootstrapPolicy.RETRY else 0)
        last_error: Optional[WatcherError] = None

        for attempt in range(1, attempts + 1):
            try:
                await self.sync.sync_with_rpc()
                self.state.degraded = False
                return
            except WatcherError as e:
                last_error = e
                logger.warning(
                    f"Bootstrap sync failed: {e}",
                    extra={"context": {"attempt": attempt, "attempts": attempts, "policy": policy.value}},
                )
                if attempt < attempts:
                    await asyncio.sleep(self.settings.bootstrap_retry_delay_ms / 1000)

        if policy == BootstrapPolicy.DEGRADED:
            self.state.degraded = True
            log_error(logger, last_error, "Starting degraded: bootstrap sync failed")
            return

        raise last_error

    async def __aenter__(self) -> "WatcherService":
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    # =========================================================================
    # SYNCHRONIZATION
    # =========================================================================

    async def execute_request(self, method: str, params: Optional[Sequence[Any]] = None) -> TimedResult:
        return await self.tracker.execute_request(method, params)

    async def make_rpc_request(self, method: str, params: Optional[Sequence[Any]] = None) -> Any:
        return await self.sync.make_rpc_request(method, params)

    async def get_chain_height(self) -> Any:
        return await self.sync.get_chain_height()

    async def get_block_by_number(self, number: int | str) -> Any:
        return await self.sync.get_block_by_number(number)

    async def refresh_chain_height(self) -> str:
        return await self.sync.refresh_chain_height()

    async def refresh_balance(self, address: str) -> BalanceResult:
        return await self.sync.refresh_balance(address)

    async def refresh_all_balances(self) -> list[BalanceResult]:
        results = await self.sync.refresh_all_balances()
        for result in results:
            if not result.ok:
                log_error(logger, result.error, "Balance refresh failed", address=result.address)
        return results

    async def sync_with_rpc(self) -> Any:
        return await self.sync.sync_with_rpc()

    async def tick(self) -> HeartbeatEvent:
        """Run one heartbeat pass immediately, outside the timer."""
        return await self.heartbeat.tick()

    # =========================================================================
    # DIAGNOSTICS
    # =========================================================================

    async def execute(self, program: Sequence[str]) -> ExecutionReport:
        return await self.diagnostics.execute(program)

    async def self_test(self) -> ExecutionReport:
        return await self.diagnostics.self_test()

    def get_stats_summary(self) -> dict:
        """Lifecycle, heartbeat and per-endpoint statistics."""
        transport = self.tracker.transport
        return {
            "id": self.id,
            "status": self.status.value,
            "clock": self.heartbeat.clock,
            "skipped_ticks": self.heartbeat.skipped,
            "degraded": self.state.degraded,
            "endpoints": transport.get_stats_summary() if transport else {},
        }
