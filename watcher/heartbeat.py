# PATH: watcher/heartbeat.py
"""
watcher/heartbeat.py - Periodic synchronization.

The scheduler fires every interval on a fixed cadence. Each firing runs a
tick:

1. Take the current clock value and advance the counter
2. Refresh height (and the tip, when it lags the height), then all balances
3. Emit a `beat` carrying the clock value and a state snapshot

A firing that lands while the previous tick is still in flight is skipped,
so at most one tick mutates state at a time.
"""

import asyncio
from typing import Optional

from core.constants import Event
from core.events import EventEmitter
from core.exceptions import WatcherError
from core.logging import get_logger, log_error
from core.models import HeartbeatEvent
from core.time import now_iso
from watcher.sync import SyncRoutines

logger = get_logger(__name__)


class HeartbeatScheduler:
    """Recurring timer driving the synchronization routines."""

    def __init__(
        self,
        sync: SyncRoutines,
        emitter: EventEmitter,
        interval_ms: int,
        follow_tip: bool = True,
    ):
        self.sync = sync
        self.emitter = emitter
        self.interval_ms = interval_ms
        self.follow_tip = follow_tip
        self.clock = 0
        self.skipped = 0
        self._timer: Optional[asyncio.Task] = None
        self._tick_task: Optional[asyncio.Task] = None

    @property
    def armed(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def in_flight(self) -> bool:
        return self._tick_task is not None and not self._tick_task.done()

    def arm(self) -> None:
        """Start the timer. Arming an armed scheduler does nothing."""
        if self.armed:
            logger.warning("Heartbeat already armed")
            return
        self._timer = asyncio.create_task(self._run(), name="heartbeat")
        logger.debug(
            "Heartbeat armed",
            extra={"context": {"interval_ms": self.interval_ms}},
        )

    async def disarm(self) -> None:
        """Cancel the timer and any in-flight tick, then release them."""
        current = asyncio.current_task()
        tasks = [t for t in (self._timer, self._tick_task) if t is not None and t is not current]
        self._timer = None
        self._tick_task = None

        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

        if tasks:
            logger.debug("Heartbeat disarmed")

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        interval = self.interval_ms / 1000
        next_fire = loop.time() + interval

        while True:
            await asyncio.sleep(max(0.0, next_fire - loop.time()))
            next_fire += interval
            self._fire()

    def _fire(self) -> None:
        if self.in_flight:
            self.skipped += 1
            logger.warning(
                "Skipping heartbeat: previous tick still running",
                extra={"context": {"clock": self.clock, "skipped": self.skipped}},
            )
            return
        self._tick_task = asyncio.create_task(self._guarded_tick())

    async def _guarded_tick(self) -> None:
        try:
            await self.tick()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Heartbeat tick crashed: {e}", exc_info=True)
            self.emitter.emit(Event.ERROR, e)

    async def tick(self) -> HeartbeatEvent:
        """Run one synchronization pass and emit its heartbeat."""
        clock = self.clock
        self.clock += 1
        created = now_iso()

        state = self.sync.state
        try:
            height = await self.sync.refresh_chain_height()
            # Also retries a tip that a failed or empty block fetch left behind
            if self.follow_tip and state.tip_height != height:
                await self.sync.refresh_tip()
        except WatcherError as e:
            log_error(logger, e, "Height refresh failed", clock=clock)
            if not e.details.get("broadcast"):
                self.emitter.emit(Event.ERROR, e)

        for result in await self.sync.refresh_all_balances():
            if not result.ok:
                log_error(
                    logger,
                    result.error,
                    "Balance refresh failed",
                    clock=clock,
                    address=result.address,
                )

        beat = HeartbeatEvent(clock=clock, created=created, state=state.snapshot())
        self.emitter.emit(Event.BEAT, beat)

        logger.debug(
            "Heartbeat",
            extra={"context": {"clock": clock, "height": state.height, "tip": state.tip}},
        )
        return beat
