# PATH: watcher/admin.py
"""
watcher/admin.py - Administrative server collaborator interface.

The watcher never serves HTTP itself. An embedding application supplies an
object with this shape; the service starts it, subscribes to its `log`
event and stops it on shutdown.
"""

from typing import Any, Callable, Protocol, runtime_checkable

from core.constants import Event
from core.events import EventEmitter
from core.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class AdminServer(Protocol):
    """Startable server that emits `log` events."""

    def on(self, event: str, listener: Callable[[Any], Any]) -> Any:
        """Subscribe to a named event."""
        ...

    async def start(self) -> Any:
        """Begin serving."""
        ...

    async def stop(self) -> Any:
        """Stop serving."""
        ...


def forward_admin_logs(server: AdminServer, emitter: EventEmitter) -> Callable[[Any], None]:
    """
    Re-emit the server's log lines as service `log` notifications.

    Returns:
        The registered listener
    """
    def _handle_log(msg: Any) -> None:
        emitter.emit(Event.LOG, f"HTTP Server emitted log event: {msg}")

    server.on("log", _handle_log)
    return _handle_log
