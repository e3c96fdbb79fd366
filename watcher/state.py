# PATH: watcher/state.py
"""
watcher/state.py - Local mirror of the remote chain head.

TIP CONTRACT:
  Setting tip to a value different from the current one emits exactly one
  `block` notification carrying the new value, then commits it. Setting
  the same value again is a no-op.

Height is assigned unconditionally. tip_height records the height the
current tip was fetched at, so a tip that lags the height can be retried. Accounts are last-writer-wins and only
ever hold watch-list addresses.
"""

from typing import Dict, Optional

from core.constants import Event, ServiceStatus
from core.events import EventEmitter
from core.logging import get_logger
from core.models import AccountBalance, StateSnapshot

logger = get_logger(__name__)


class ChainState:
    """Tip, height and balances owned by one service instance."""

    def __init__(self, emitter: EventEmitter):
        self._emitter = emitter
        self.status: ServiceStatus = ServiceStatus.STOPPED
        self.degraded = False
        self._tip: Optional[str] = None
        self._height: Optional[str] = None
        self.tip_height: Optional[str] = None
        self.accounts: Dict[str, AccountBalance] = {}

    @property
    def tip(self) -> Optional[str]:
        return self._tip

    @tip.setter
    def tip(self, value: Optional[str]) -> None:
        if self._tip == value:
            return
        self._emitter.emit(Event.BLOCK, value)
        logger.info(
            "Chain tip changed",
            extra={"context": {"previous": self._tip, "tip": value}},
        )
        self._tip = value

    @property
    def height(self) -> Optional[str]:
        return self._height

    @height.setter
    def height(self, value: Optional[str]) -> None:
        self._height = value

    def set_balance(self, address: str, balance: str) -> None:
        self.accounts[address] = AccountBalance(balance=balance)

    def get_balance(self, address: str) -> Optional[str]:
        account = self.accounts.get(address)
        return account.balance if account else None

    def snapshot(self) -> StateSnapshot:
        """Copy of the current state, detached from later mutations."""
        return StateSnapshot(
            status=self.status,
            tip=self._tip,
            height=self._height,
            accounts={address: acct.to_dict() for address, acct in self.accounts.items()},
            degraded=self.degraded,
        )
