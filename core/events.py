# PATH: core/events.py
"""
Minimal event emitter used for service notifications.

Listeners may be plain callables or coroutine functions. Coroutine
listeners are scheduled on the running loop. A listener that raises,
immediately or once its coroutine finishes, is logged and never breaks
the emitter.
"""

import asyncio
import functools
import inspect
from collections import defaultdict
from enum import Enum
from typing import Any, Callable, Dict, List

from core.logging import get_logger

logger = get_logger(__name__)

Listener = Callable[[Any], Any]


def _name(event: "str | Enum") -> str:
    return event.value if isinstance(event, Enum) else event


class EventEmitter:
    """Named-event publish/subscribe."""

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        self._pending: set[asyncio.Task] = set()

    def on(self, event: str, listener: Listener) -> Listener:
        """Register a listener; returns it so callers can later off() it."""
        self._listeners[_name(event)].append(listener)
        return listener

    def off(self, event: str, listener: Listener) -> None:
        listeners = self._listeners.get(_name(event), [])
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(_name(event), []))

    def emit(self, event: str, payload: Any = None) -> int:
        """
        Deliver payload to every listener of event.

        Returns:
            Number of listeners notified
        """
        name = _name(event)
        listeners = list(self._listeners.get(name, []))
        for listener in listeners:
            try:
                result = listener(payload)
                if inspect.isawaitable(result):
                    task = asyncio.ensure_future(result)
                    self._pending.add(task)
                    task.add_done_callback(functools.partial(self._listener_done, name))
            except Exception as e:
                logger.warning(
                    f"Listener for '{name}' raised: {e}",
                    extra={"context": {"event": name}},
                    exc_info=True,
                )
        return len(listeners)

    def _listener_done(self, name: str, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(
                f"Listener for '{name}' raised: {exc}",
                extra={"context": {"event": name}},
                exc_info=exc,
            )
