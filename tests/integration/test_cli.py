# PATH: tests/integration/test_cli.py
"""
Smoke tests for the headwatch CLI.
"""

import asyncio
import functools
import os
import signal
import sys
import unittest

import pytest
from click.testing import CliRunner

from core.constants import Event, ServiceStatus
from core.logging import clear_global_context
from core.models import HeartbeatEvent, StateSnapshot
from watcher.jobs import run_watch
from watcher.jobs.run_watch import WatchSession, main, watch
from watcher.service import WatcherService


def _service(node) -> WatcherService:
    return WatcherService(
        {"servers": ["http://node-a:8545"], "targets": ["0xABC"], "interval_ms": 20},
        http_transport=node.transport(),
    )


class TestCliArguments(unittest.TestCase):

    def setUp(self):
        self.runner = CliRunner()

    def test_help(self):
        result = self.runner.invoke(main, ["--help"])

        self.assertEqual(result.exit_code, 0)
        self.assertIn("--server", result.output)
        self.assertIn("--interval", result.output)

    def test_invalid_interval_rejected(self):
        result = self.runner.invoke(main, ["--interval", "0", "--no-json-logs"])

        self.assertNotEqual(result.exit_code, 0)
        self.assertIn("interval_ms", result.output)

    def test_missing_config_file(self):
        result = self.runner.invoke(main, ["--config", "/nonexistent/watch.yaml"])

        self.assertNotEqual(result.exit_code, 0)


class TestWatchSession(unittest.TestCase):

    def test_summary_counts(self):
        session = WatchSession()
        snapshot = StateSnapshot(
            status=ServiceStatus.STARTED,
            tip="0xaa",
            height="16",
            accounts={"0xABC": {"balance": "0x64"}},
        )

        session.on_block("0xaa")
        session.on_beat(HeartbeatEvent(clock=0, created="2026-01-01T00:00:00+00:00", state=snapshot))
        session.on_error(RuntimeError("x"))

        summary = session.get_summary()

        self.assertEqual(summary["beats"], 1)
        self.assertEqual(summary["tip_changes"], 1)
        self.assertEqual(summary["errors"], 1)
        self.assertEqual(summary["height"], "16")
        self.assertEqual(summary["accounts"], {"0xABC": {"balance": "0x64"}})


class TestWatchRun:

    def test_repeated_runs_in_one_process(self, node):
        for _ in range(2):
            service = _service(node)
            session = WatchSession()

            asyncio.run(watch(service, session, 0.1))

            assert service.status == ServiceStatus.STOPPED
            assert session.beats >= 1
            assert session.get_summary()["height"] == "16"

    def test_shutdown_event_ends_run(self, node):
        service = _service(node)
        session = WatchSession()

        async def run():
            shutdown = asyncio.Event()
            service.on(Event.BEAT, lambda beat: shutdown.set())
            await watch(service, session, None, shutdown=shutdown)

        asyncio.run(run())

        assert session.beats >= 1
        assert service.status == ServiceStatus.STOPPED

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals only")
    def test_sigterm_ends_run(self, node):
        service = _service(node)
        session = WatchSession()

        async def run():
            asyncio.get_running_loop().call_later(0.05, os.kill, os.getpid(), signal.SIGTERM)
            await watch(service, session, 5)

        asyncio.run(run())

        assert service.status == ServiceStatus.STOPPED
        assert session.get_summary()["elapsed_seconds"] < 5

    @pytest.mark.slow
    def test_main_runs_for_duration(self, node, monkeypatch):
        monkeypatch.setattr(
            run_watch,
            "WatcherService",
            functools.partial(WatcherService, http_transport=node.transport()),
        )

        try:
            result = CliRunner().invoke(
                main,
                [
                    "--server", "http://node-a:8545",
                    "--target", "0xABC",
                    "--interval", "200",
                    "--duration", "1",
                    "--no-json-logs",
                ],
            )
        finally:
            clear_global_context()

        assert result.exit_code == 0, result.output
        assert "HEADWATCH SESSION SUMMARY" in result.output
        assert "Height: 16" in result.output
        assert "0xABC: 0x64" in result.output
        assert "eth_getBalance" in node.methods()


if __name__ == "__main__":
    unittest.main()
