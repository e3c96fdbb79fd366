# PATH: core/models.py
"""
Core data models for headwatch.

REQUEST RECORD CONTRACT
=======================
  queued → completed   (transport returned a result)
  queued → error       (transport or dispatch failed)

A record transitions exactly once and is never retained after the call
that created it returns.
=======================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from uuid import uuid4

from core.constants import REQUEST_TYPE, RequestStatus, ServiceStatus
from core.exceptions import InvalidTransitionError


@dataclass
class RequestRecord:
    """Identity and status of one outbound remote call."""
    method: str
    params: List[Any] = field(default_factory=list)
    type: str = REQUEST_TYPE
    status: RequestStatus = RequestStatus.QUEUED
    id: str = field(default_factory=lambda: uuid4().hex)

    def _finish(self, status: RequestStatus) -> None:
        if self.status != RequestStatus.QUEUED:
            raise InvalidTransitionError(
                f"Request {self.id} already {self.status.value}",
                details={"method": self.method},
            )
        self.status = status

    def complete(self) -> None:
        self._finish(RequestStatus.COMPLETED)

    def fail(self) -> None:
        self._finish(RequestStatus.ERROR)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "method": self.method,
            "params": list(self.params),
            "status": self.status.value,
        }


@dataclass
class TimedResult:
    """Result of a tracked request with its timing."""
    request: RequestRecord
    duration: int  # milliseconds
    result: Any
    endpoint: Optional[str] = None


@dataclass
class AccountBalance:
    """Last observed balance for a watched address (raw hex string)."""
    balance: str

    def to_dict(self) -> Dict[str, Any]:
        return {"balance": self.balance}


@dataclass
class BalanceResult:
    """
    Per-address outcome of a balance refresh.

    Exactly one of balance / error is set unless skipped, which means the
    node returned no result and the stored balance was left untouched.
    """
    address: str
    balance: Optional[str] = None
    error: Optional[Exception] = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class StateSnapshot:
    """Point-in-time copy of the service state."""
    status: ServiceStatus
    tip: Optional[str]
    height: Optional[str]
    accounts: Dict[str, Dict[str, str]]
    degraded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "tip": self.tip,
            "height": self.height,
            "accounts": {k: dict(v) for k, v in self.accounts.items()},
            "degraded": self.degraded,
        }


@dataclass
class HeartbeatEvent:
    """Payload of a `beat` notification."""
    clock: int
    created: str
    state: StateSnapshot

    def to_dict(self) -> Dict[str, Any]:
        return {
            "clock": self.clock,
            "created": self.created,
            "state": self.state.to_dict(),
        }
