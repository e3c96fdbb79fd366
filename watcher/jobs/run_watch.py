#!/usr/bin/env python3
"""
watcher/jobs/run_watch.py - CLI entrypoint for the head-state watcher.

Usage:
    python -m watcher.jobs.run_watch --server http://127.0.0.1:8545
    python -m watcher.jobs.run_watch -c config/watcher.yaml -t 0xabc... --duration 600
"""

import asyncio
import signal
import sys
from datetime import datetime
from typing import Any

import click

from core.constants import Event
from core.exceptions import WatcherError
from core.logging import get_logger, set_global_context, setup_logging
from core.models import HeartbeatEvent
from watcher.config import load_watcher_config
from watcher.service import WatcherService

logger = get_logger("headwatch.cli")

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def handle_shutdown(shutdown: asyncio.Event, sig: signal.Signals) -> None:
    """Handle shutdown signals."""
    logger.info("Shutdown requested", extra={"context": {"signal": sig.name}})
    shutdown.set()


def install_shutdown_handlers(shutdown: asyncio.Event) -> list[signal.Signals]:
    """
    Set `shutdown` on SIGINT/SIGTERM for the running loop.

    Returns the signals actually handled. Loops that cannot take signal
    handlers (Windows, or a loop outside the main thread) handle none and
    rely on the duration limit or KeyboardInterrupt.
    """
    loop = asyncio.get_running_loop()
    handled = []
    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.add_signal_handler(sig, handle_shutdown, shutdown, sig)
        except (NotImplementedError, RuntimeError, ValueError):
            logger.debug("Signal handler unavailable", extra={"context": {"signal": sig.name}})
            continue
        handled.append(sig)
    return handled


class WatchSession:
    """Counts what the service reported during one run."""

    def __init__(self):
        self.started_at = datetime.now()
        self.beats = 0
        self.blocks = 0
        self.errors = 0
        self.last_beat: HeartbeatEvent | None = None

    def on_beat(self, beat: HeartbeatEvent) -> None:
        self.beats += 1
        self.last_beat = beat

    def on_block(self, tip: Any) -> None:
        self.blocks += 1

    def on_error(self, error: Any) -> None:
        self.errors += 1

    def get_summary(self) -> dict:
        elapsed = datetime.now() - self.started_at
        state = self.last_beat.state.to_dict() if self.last_beat else {}
        return {
            "session_start": self.started_at.isoformat(),
            "elapsed_seconds": int(elapsed.total_seconds()),
            "beats": self.beats,
            "tip_changes": self.blocks,
            "errors": self.errors,
            "height": state.get("height"),
            "tip": state.get("tip"),
            "accounts": state.get("accounts", {}),
        }


async def watch(
    service: WatcherService,
    session: WatchSession,
    duration_seconds: float | None,
    shutdown: asyncio.Event | None = None,
) -> None:
    """
    Run the service until shutdown is requested or the duration elapses.

    A fresh shutdown event is created per call unless one is passed in.
    SIGINT and SIGTERM set it while the call runs.
    """
    if shutdown is None:
        shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()
    handled = install_shutdown_handlers(shutdown)

    service.on(Event.BEAT, session.on_beat)
    service.on(Event.BLOCK, session.on_block)
    service.on(Event.ERROR, session.on_error)
    service.on(Event.LOG, lambda msg: logger.info(msg))

    try:
        await service.start()
        try:
            if duration_seconds:
                try:
                    await asyncio.wait_for(shutdown.wait(), timeout=duration_seconds)
                except asyncio.TimeoutError:
                    logger.info("Duration limit reached")
            else:
                await shutdown.wait()
        finally:
            await service.stop()
    finally:
        for sig in handled:
            loop.remove_signal_handler(sig)


@click.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="YAML config file (default: shipped config/watcher.yaml)",
)
@click.option("--server", "-s", multiple=True, help="RPC endpoint URL (repeatable)")
@click.option("--target", "-t", multiple=True, help="Address to watch (repeatable)")
@click.option("--interval", "-i", default=None, type=int, help="Heartbeat interval in milliseconds")
@click.option(
    "--duration",
    "-d",
    default=None,
    type=int,
    help="Run duration in seconds (default: until interrupted)",
)
@click.option(
    "--log-level",
    "-l",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Log level",
)
@click.option("--json-logs/--no-json-logs", default=True, help="Use JSON log format")
def main(
    config_path: str | None,
    server: tuple[str, ...],
    target: tuple[str, ...],
    interval: int | None,
    duration: int | None,
    log_level: str,
    json_logs: bool,
) -> None:
    """
    headwatch - mirror a remote chain's head state.

    Polls the node every interval for height, tip and watched balances.
    """
    setup_logging(level=log_level, json_format=json_logs)

    overrides: dict[str, Any] = {}
    if server:
        overrides["servers"] = list(server)
    if target:
        overrides["targets"] = list(target)
    if interval is not None:
        overrides["interval_ms"] = interval

    try:
        config = load_watcher_config(config_path, overrides)
        service = WatcherService(config)
    except WatcherError as e:
        raise click.ClickException(str(e))

    set_global_context(service=config.name, network=config.network, service_id=service.id)

    session = WatchSession()

    logger.info(
        "Starting headwatch",
        extra={
            "context": {
                "servers": len(config.servers),
                "targets": list(config.targets),
                "interval_ms": config.interval_ms,
                "duration_seconds": duration,
            }
        },
    )

    try:
        asyncio.run(watch(service, session, duration))
    except KeyboardInterrupt:
        logger.info("Watcher interrupted")
    except WatcherError as e:
        logger.error(
            f"Watcher error: {e}",
            extra={"context": e.to_dict()},
            exc_info=True,
        )
        sys.exit(1)

    summary = session.get_summary()
    logger.info("Watcher stopped", extra={"context": summary})

    click.echo("\n" + "=" * 60)
    click.echo("HEADWATCH SESSION SUMMARY")
    click.echo("=" * 60)
    click.echo(f"Duration: {summary['elapsed_seconds']} seconds")
    click.echo(f"Heartbeats: {summary['beats']}")
    click.echo(f"Tip changes: {summary['tip_changes']}")
    click.echo(f"Errors: {summary['errors']}")
    click.echo(f"Height: {summary['height']}")
    click.echo(f"Tip: {summary['tip']}")
    for address, account in summary["accounts"].items():
        click.echo(f"  {address}: {account['balance']}")
    click.echo("=" * 60)


if __name__ == "__main__":
    main()
