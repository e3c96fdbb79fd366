# PATH: watcher/lifecycle.py
"""
Watcher lifecycle state machine.

LIFECYCLE CONTRACT:
===================

States (ServiceStatus):
  STOPPED   → initial / terminal, nothing armed
  STARTING  → transport bound, bootstrap sync running
  STARTED   → heartbeat armed, serving
  STOPPING  → heartbeat being disarmed

Transitions:
  STOPPED   → STARTING  (start)
  STARTING  → STARTED   (bootstrap finished)
  STARTING  → STOPPING  (stop during start)
  STARTING  → STOPPED   (bootstrap failed, fail-fast)
  STARTED   → STOPPING  (stop)
  STOPPING  → STOPPED   (heartbeat released)

===================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from core.constants import ServiceStatus
from core.exceptions import InvalidTransitionError
from core.logging import get_logger

logger = get_logger(__name__)


# Valid state transitions
VALID_TRANSITIONS: Dict[ServiceStatus, List[ServiceStatus]] = {
    ServiceStatus.STOPPED: [ServiceStatus.STARTING],
    ServiceStatus.STARTING: [ServiceStatus.STARTED, ServiceStatus.STOPPING, ServiceStatus.STOPPED],
    ServiceStatus.STARTED: [ServiceStatus.STOPPING],
    ServiceStatus.STOPPING: [ServiceStatus.STOPPED],
}


@dataclass
class StateTransition:
    """Record of a state transition."""
    from_state: ServiceStatus
    to_state: ServiceStatus
    timestamp: str = ""
    reason: str = ""

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat()


@dataclass
class LifecycleStateMachine:
    """
    Lifecycle of one watcher service.

    Tracks current state and transition history. `on_transition` is called
    after every committed transition.
    """
    service_id: str
    state: ServiceStatus = ServiceStatus.STOPPED
    history: List[StateTransition] = field(default_factory=list)
    on_transition: Optional[Callable[[StateTransition], None]] = None

    def can_transition_to(self, new_state: ServiceStatus) -> bool:
        """Check if transition to new_state is valid."""
        return new_state in VALID_TRANSITIONS.get(self.state, [])

    def transition_to(self, new_state: ServiceStatus, reason: str = "") -> StateTransition:
        """
        Transition to a new state.

        Raises InvalidTransitionError if transition is not valid.
        """
        if not self.can_transition_to(new_state):
            raise InvalidTransitionError(
                f"Cannot transition from {self.state.value} to {new_state.value}. "
                f"Valid transitions: {[s.value for s in VALID_TRANSITIONS.get(self.state, [])]}",
                details={"service_id": self.service_id},
            )

        transition = StateTransition(
            from_state=self.state,
            to_state=new_state,
            reason=reason,
        )

        self.history.append(transition)
        self.state = new_state

        logger.info(
            f"Service {transition.from_state.value} -> {new_state.value}",
            extra={"context": {"service_id": self.service_id, "reason": reason}},
        )

        if self.on_transition is not None:
            self.on_transition(transition)

        return transition

    @property
    def is_running(self) -> bool:
        return self.state in (ServiceStatus.STARTING, ServiceStatus.STARTED)

    @property
    def is_stopped(self) -> bool:
        return self.state == ServiceStatus.STOPPED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "service_id": self.service_id,
            "state": self.state.value,
            "history": [
                {
                    "from_state": t.from_state.value,
                    "to_state": t.to_state.value,
                    "timestamp": t.timestamp,
                    "reason": t.reason,
                }
                for t in self.history
            ],
        }
