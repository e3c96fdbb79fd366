# PATH: watcher/sync.py
"""
watcher/sync.py - Synchronization routines.

Composite operations built from tracked requests. Each one updates the
ChainState it was given.

ERROR CONTRACT:
  Every outbound call raises a WatcherError subclass on failure. The only
  routine that does not raise is refresh_balance, which captures the
  outcome in a BalanceResult so the caller decides what to log.
"""

import asyncio
from typing import Any, Optional, Sequence

from chains.requests import RequestTracker
from core.exceptions import ProtocolError, WatcherError
from core.logging import get_logger
from core.models import BalanceResult
from watcher.state import ChainState

logger = get_logger(__name__)


def decode_quantity(value: Any) -> str:
    """
    Decode a JSON-RPC hex quantity into a base-10 string.

    Raises:
        ProtocolError: If value is not a 0x-prefixed hex string
    """
    if not isinstance(value, str) or not value.lower().startswith("0x") or len(value) < 3:
        raise ProtocolError(
            "Expected a 0x-prefixed hex quantity",
            details={"value": value},
        )
    try:
        return str(int(value, 16))
    except ValueError as e:
        raise ProtocolError(
            f"Invalid hex quantity: {value}",
            details={"value": value},
        ) from e


def encode_quantity(value: int | str) -> str:
    """Encode a block number as a JSON-RPC hex quantity."""
    if isinstance(value, str):
        if value.lower().startswith("0x"):
            return value
        value = int(value)
    return hex(value)


class SyncRoutines:
    """Height, tip and balance refreshes against one ChainState."""

    def __init__(
        self,
        tracker: RequestTracker,
        state: ChainState,
        targets: Sequence[str] = (),
        balance_block_tag: Optional[str] = None,
    ):
        self.tracker = tracker
        self.state = state
        self.targets = tuple(targets)
        self.balance_block_tag = balance_block_tag

    # =========================================================================
    # PASSTHROUGH
    # =========================================================================

    async def make_rpc_request(self, method: str, params: Optional[Sequence[Any]] = None) -> Any:
        """Issue a tracked call and return only the raw result."""
        timed = await self.tracker.execute_request(method, params)
        return timed.result

    async def get_chain_height(self) -> Any:
        """Raw (hex) head block number."""
        return await self.make_rpc_request("eth_blockNumber")

    async def get_block_by_number(self, number: int | str, full_transactions: bool = False) -> Any:
        """Raw block object at the given height, or None if the node has none."""
        return await self.make_rpc_request(
            "eth_getBlockByNumber",
            [encode_quantity(number), full_transactions],
        )

    # =========================================================================
    # REFRESHES
    # =========================================================================

    async def refresh_chain_height(self) -> str:
        """
        Fetch and store the current height.

        Returns:
            Height as a base-10 string
        """
        timed = await self.tracker.execute_request("eth_blockNumber")
        height = decode_quantity(timed.result)
        self.state.height = height

        logger.debug(
            "Chain height refreshed",
            extra={"context": {"height": height, "duration_ms": timed.duration}},
        )
        return height

    async def refresh_tip(self) -> Optional[str]:
        """Fetch the block at the stored height and store its hash as tip."""
        if self.state.height is None:
            await self.refresh_chain_height()
        height = self.state.height
        block = await self.get_block_by_number(int(height))
        self._apply_block(block, height)
        return self.state.tip

    async def refresh_balance(self, address: str) -> BalanceResult:
        """
        Fetch and store one address balance.

        The raw hex result is stored undecoded. An absent result leaves the
        previous balance in place.
        """
        params: list[Any] = [address]
        if self.balance_block_tag:
            params.append(self.balance_block_tag)

        try:
            timed = await self.tracker.execute_request("eth_getBalance", params)
        except WatcherError as e:
            return BalanceResult(address=address, error=e)

        if not timed.result:
            return BalanceResult(address=address, skipped=True)

        self.state.set_balance(address, timed.result)
        return BalanceResult(address=address, balance=timed.result)

    async def refresh_all_balances(self) -> list[BalanceResult]:
        """
        Refresh every watch-list address concurrently.

        One address failing never prevents the others from completing.
        """
        if not self.targets:
            return []
        results = await asyncio.gather(
            *(self.refresh_balance(address) for address in self.targets)
        )
        return list(results)

    async def sync_with_rpc(self) -> Any:
        """
        Bootstrap: fetch height, then the block at that height.

        Seeds height and tip. Errors propagate to the caller.

        Returns:
            The head block object
        """
        raw_height = await self.get_chain_height()
        self.state.height = decode_quantity(raw_height)
        block = await self.get_block_by_number(raw_height)
        self._apply_block(block, self.state.height)

        logger.info(
            "Bootstrap sync complete",
            extra={"context": {"height": self.state.height, "tip": self.state.tip}},
        )
        return block

    def _apply_block(self, block: Any, height: Optional[str]) -> None:
        if block is None:
            logger.warning(
                "Node returned no block at height",
                extra={"context": {"height": height}},
            )
            return
        if not isinstance(block, dict) or not isinstance(block.get("hash"), str):
            raise ProtocolError(
                "Block object has no hash",
                details={"height": height},
            )
        self.state.tip = block["hash"]
        self.state.tip_height = height
