# PATH: core/logging.py
"""
Structured JSON logging for headwatch.

All contextual fields passed only via extra={"context": {...}}.

Output format (JSON mode):
{
    "timestamp": "2026-01-04T12:00:00.000+00:00",
    "level": "INFO",
    "logger": "watcher.sync",
    "message": "Chain height refreshed",
    "context": {"service_id": "9f2c...", "height": "19000000", "duration_ms": 42}
}
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Iterable

# Fields merged into every structured entry (service id, network, ...)
_global_context: dict[str, Any] = {}

# Third-party loggers that only matter at WARNING and above
NOISY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "asyncio")

CONSOLE_CONTEXT_FIELDS = 4


def _record_context(record: logging.LogRecord) -> dict[str, Any]:
    return dict(getattr(record, "context", None) or {})


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per line.

    Global context is written first so per-call context can shadow it.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = {**_global_context, **_record_context(record)}
        if context:
            entry["context"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Single-line human-readable output for interactive runs."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]
        line = f"{stamp} {record.levelname:<7} [{record.name}] {record.getMessage()}"

        context = _record_context(record)
        if context:
            shown = list(context.items())[:CONSOLE_CONTEXT_FIELDS]
            line += " (" + " ".join(f"{k}={v}" for k, v in shown)
            hidden = len(context) - len(shown)
            line += f" +{hidden})" if hidden else ")"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class ContextAdapter(logging.LoggerAdapter):
    """Logger bound to default context; call-site context wins on conflicts."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        call_context = kwargs.get("extra", {}).get("context", {})
        kwargs["extra"] = {"context": {**self.extra, **call_context}}
        return msg, kwargs


def set_global_context(**fields: Any) -> None:
    """
    Add fields to every structured log entry.

    Example:
        set_global_context(service_id=service.id, network="main")
    """
    _global_context.update(fields)


def clear_global_context() -> None:
    _global_context.clear()


def get_logger(name: str, **context: Any) -> ContextAdapter:
    """
    Get a logger with optional default context.

    Example:
        logger = get_logger(__name__)
        logger.info("Chain height refreshed", extra={"context": {"height": "16"}})
    """
    return ContextAdapter(logging.getLogger(name), context)


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: str | None = None,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        json_format: JSON lines on stdout, or console format when False
        log_file: Optional path that always receives JSON lines
        quiet: Logger names capped at WARNING
    """
    stdout = logging.StreamHandler(sys.stdout)
    stdout.setFormatter(StructuredFormatter() if json_format else ConsoleFormatter())
    handlers: list[logging.Handler] = [stdout]

    if log_file:
        to_file = logging.FileHandler(log_file, encoding="utf-8")
        to_file.setFormatter(StructuredFormatter())
        handlers.append(to_file)

    logging.basicConfig(level=getattr(logging, level.upper()), handlers=handlers, force=True)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)


def log_error(
    logger: logging.Logger | ContextAdapter,
    error: BaseException,
    message: str,
    **fields: Any,
) -> None:
    """Log an error with its class and, for WatcherError, its code."""
    context: dict[str, Any] = {"error": str(error), "error_class": type(error).__name__}
    code = getattr(error, "code", None)
    if code is not None:
        context["error_code"] = getattr(code, "value", code)
    context.update(fields)
    logger.error(message, extra={"context": context})
