# PATH: tests/unit/test_config.py
"""
Unit tests for configuration loading.
"""

import tempfile
import unittest
from pathlib import Path

from core.constants import (
    DEFAULT_INTERVAL_MS,
    DEFAULT_SERVERS,
    SERVICE_NAME,
    BootstrapPolicy,
    EndpointStrategy,
    ErrorCode,
)
from core.exceptions import ConfigurationError
from watcher.config import WatcherConfig, load_watcher_config

CONFIG_DIR = Path(__file__).parent.parent.parent / "config"


class TestConfigDefaults(unittest.TestCase):
    """Defaults and caller precedence."""

    def test_defaults(self):
        config = WatcherConfig.from_overrides()

        self.assertEqual(config.name, SERVICE_NAME)
        self.assertEqual(config.mode, "rpc")
        self.assertEqual(config.network, "main")
        self.assertEqual(config.servers, DEFAULT_SERVERS)
        self.assertEqual(config.interval_ms, DEFAULT_INTERVAL_MS)
        self.assertEqual(config.targets, ())
        self.assertIsNone(config.http)
        self.assertEqual(config.endpoint_strategy, EndpointStrategy.FIRST_HEALTHY)
        self.assertEqual(config.bootstrap_policy, BootstrapPolicy.FAIL_FAST)
        self.assertIsNone(config.balance_block_tag)

    def test_caller_values_take_precedence(self):
        config = WatcherConfig.from_overrides({
            "interval_ms": 1000,
            "servers": ["http://node-a:8545", "http://node-b:8545"],
            "targets": ["0xABC"],
        })

        self.assertEqual(config.interval_ms, 1000)
        self.assertEqual(config.servers, ("http://node-a:8545", "http://node-b:8545"))
        self.assertEqual(config.targets, ("0xABC",))
        self.assertEqual(config.network, "main")

    def test_single_string_server(self):
        config = WatcherConfig.from_overrides({"servers": "http://node-a:8545"})
        self.assertEqual(config.servers, ("http://node-a:8545",))

    def test_enum_values_from_strings(self):
        config = WatcherConfig.from_overrides({
            "endpoint_strategy": "round_robin",
            "bootstrap_policy": "degraded",
        })

        self.assertEqual(config.endpoint_strategy, EndpointStrategy.ROUND_ROBIN)
        self.assertEqual(config.bootstrap_policy, BootstrapPolicy.DEGRADED)

    def test_unknown_keys_go_to_extras(self):
        config = WatcherConfig.from_overrides({"interval_ms": 500, "colour": "blue"})

        self.assertEqual(config.extras, {"colour": "blue"})
        self.assertFalse(hasattr(config, "colour"))

    def test_merged_keeps_base_values(self):
        base = WatcherConfig.from_overrides({"targets": ["0xABC"], "network": "test"})
        merged = base.merged(interval_ms=250)

        self.assertEqual(merged.interval_ms, 250)
        self.assertEqual(merged.targets, ("0xABC",))
        self.assertEqual(merged.network, "test")
        self.assertEqual(base.interval_ms, DEFAULT_INTERVAL_MS)


class TestConfigValidation(unittest.TestCase):
    """Invalid settings fail at construction."""

    def _assert_invalid(self, overrides):
        with self.assertRaises(ConfigurationError) as ctx:
            WatcherConfig.from_overrides(overrides)
        self.assertEqual(ctx.exception.code, ErrorCode.CONFIG_INVALID)

    def test_zero_interval(self):
        self._assert_invalid({"interval_ms": 0})

    def test_negative_interval(self):
        self._assert_invalid({"interval_ms": -5})

    def test_non_integer_interval(self):
        self._assert_invalid({"interval_ms": "fast"})

    def test_bool_interval(self):
        self._assert_invalid({"interval_ms": True})

    def test_unsupported_mode(self):
        self._assert_invalid({"mode": "ipc"})

    def test_no_servers(self):
        self._assert_invalid({"servers": []})

    def test_unknown_strategy(self):
        self._assert_invalid({"endpoint_strategy": "random"})

    def test_unknown_policy(self):
        self._assert_invalid({"bootstrap_policy": "hope"})

    def test_negative_retries(self):
        self._assert_invalid({"bootstrap_retries": -1})

    def test_http_must_be_mapping(self):
        self._assert_invalid({"http": "yes"})

    def test_config_is_immutable(self):
        config = WatcherConfig.from_overrides()
        with self.assertRaises(Exception):
            config.interval_ms = 1


class TestConfigLoading(unittest.TestCase):
    """YAML loading."""

    def test_config_dir_exists(self):
        self.assertTrue((CONFIG_DIR / "watcher.yaml").exists())

    def test_shipped_defaults(self):
        config = load_watcher_config()

        self.assertEqual(config.interval_ms, 12500)
        self.assertEqual(config.balance_block_tag, "latest")
        self.assertTrue(config.follow_tip)

    def test_overrides_win_over_file(self):
        config = load_watcher_config(overrides={"interval_ms": 100, "targets": ["0xABC"]})

        self.assertEqual(config.interval_ms, 100)
        self.assertEqual(config.targets, ("0xABC",))

    def test_custom_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "watch.yaml"
            path.write_text(
                "network: test\n"
                "interval_ms: 2000\n"
                "servers:\n"
                "  - http://node-a:8545\n",
                encoding="utf-8",
            )

            config = load_watcher_config(path)

        self.assertEqual(config.network, "test")
        self.assertEqual(config.interval_ms, 2000)
        self.assertEqual(config.servers, ("http://node-a:8545",))

    def test_missing_file(self):
        with self.assertRaises(ConfigurationError):
            load_watcher_config("/nonexistent/watch.yaml")

    def test_non_mapping_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "watch.yaml"
            path.write_text("- just\n- a list\n", encoding="utf-8")

            with self.assertRaises(ConfigurationError):
                load_watcher_config(path)


if __name__ == "__main__":
    unittest.main()
