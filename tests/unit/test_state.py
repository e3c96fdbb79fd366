# PATH: tests/unit/test_state.py
"""
Unit tests for the chain state model.

Tip changes are observable exactly once per distinct value.
"""

import unittest

from core.constants import Event, ServiceStatus
from core.events import EventEmitter
from watcher.state import ChainState


class TestTipNotification(unittest.TestCase):
    """Tests for the tip setter."""

    def setUp(self):
        self.emitter = EventEmitter()
        self.blocks = []
        self.emitter.on(Event.BLOCK, self.blocks.append)
        self.state = ChainState(self.emitter)

    def test_new_tip_notifies(self):
        """Setting a new tip emits one block notification with the value."""
        self.state.tip = "0xaa"

        self.assertEqual(self.blocks, ["0xaa"])
        self.assertEqual(self.state.tip, "0xaa")

    def test_same_tip_twice_notifies_once(self):
        """Setting the same tip twice emits exactly one notification."""
        self.state.tip = "0xaa"
        self.state.tip = "0xaa"

        self.assertEqual(self.blocks, ["0xaa"])

    def test_none_then_value_notifies_once(self):
        """None -> value emits one notification carrying the value."""
        self.state.tip = None
        self.state.tip = "0xbb"

        self.assertEqual(self.blocks, ["0xbb"])

    def test_each_distinct_value_notifies(self):
        """A, B, A emits three notifications."""
        self.state.tip = "0xaa"
        self.state.tip = "0xbb"
        self.state.tip = "0xaa"

        self.assertEqual(self.blocks, ["0xaa", "0xbb", "0xaa"])

    def test_notification_precedes_commit(self):
        """Listeners see the previous tip while being notified."""
        seen = []
        self.emitter.on(Event.BLOCK, lambda _: seen.append(self.state.tip))

        self.state.tip = "0xaa"

        self.assertEqual(seen, [None])


class TestHeightAndAccounts(unittest.TestCase):
    """Tests for height and balances."""

    def setUp(self):
        self.emitter = EventEmitter()
        self.blocks = []
        self.emitter.on(Event.BLOCK, self.blocks.append)
        self.state = ChainState(self.emitter)

    def test_height_has_no_notification(self):
        """Height assignment is silent."""
        self.state.height = "16"
        self.state.height = "16"

        self.assertEqual(self.state.height, "16")
        self.assertEqual(self.blocks, [])

    def test_balance_last_writer_wins(self):
        """Later balances overwrite earlier ones."""
        self.state.set_balance("0xABC", "0x1")
        self.state.set_balance("0xABC", "0x2")

        self.assertEqual(self.state.get_balance("0xABC"), "0x2")
        self.assertEqual(len(self.state.accounts), 1)

    def test_unknown_balance_is_none(self):
        self.assertIsNone(self.state.get_balance("0xnope"))

    def test_snapshot_is_detached(self):
        """Snapshots do not change when state changes afterwards."""
        self.state.height = "16"
        self.state.tip = "0xaa"
        self.state.set_balance("0xABC", "0x1")

        snapshot = self.state.snapshot()
        self.state.height = "17"
        self.state.set_balance("0xABC", "0x2")

        self.assertEqual(snapshot.height, "16")
        self.assertEqual(snapshot.accounts["0xABC"], {"balance": "0x1"})
        self.assertEqual(snapshot.status, ServiceStatus.STOPPED)
        self.assertEqual(
            snapshot.to_dict(),
            {
                "status": "STOPPED",
                "tip": "0xaa",
                "height": "16",
                "accounts": {"0xABC": {"balance": "0x1"}},
                "degraded": False,
            },
        )


if __name__ == "__main__":
    unittest.main()
