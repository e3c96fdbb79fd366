# PATH: watcher/diagnostics.py
"""
watcher/diagnostics.py - Bytecode interpreter self-test.

Not part of synchronization. Runs a tiny program through an injected
interpreter to confirm the execution environment is wired up.
"""

import inspect
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence, runtime_checkable

from core.constants import DEFAULT_GAS_LIMIT
from core.exceptions import ConfigurationError
from core.logging import get_logger

logger = get_logger(__name__)


class Opcodes:
    """Opcodes used by the self-test program (hex)."""
    STOP = "00"
    ADD = "01"
    PUSH1 = "60"


# PUSH1 3, PUSH1 5, ADD, STOP
SELF_TEST_PROGRAM: tuple[str, ...] = (
    Opcodes.PUSH1, "03",
    Opcodes.PUSH1, "05",
    Opcodes.ADD,
    Opcodes.STOP,
)


@runtime_checkable
class Interpreter(Protocol):
    """Black-box bytecode interpreter."""

    def run_code(self, code: bytes, gas_limit: int) -> Any:
        """
        Execute code within gas_limit.

        Returns an object with `return_value` (bytes) and `gas_used` (int),
        possibly via an awaitable.
        """
        ...


@dataclass
class ExecutionReport:
    """Outcome of one interpreter run."""
    return_value: Optional[bytes] = None
    gas_used: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Diagnostics:
    """Runs programs through an interpreter and logs the outcome."""

    def __init__(self, interpreter: Optional[Interpreter] = None, gas_limit: int = DEFAULT_GAS_LIMIT):
        self.interpreter = interpreter
        self.gas_limit = gas_limit

    async def execute(self, program: Sequence[str]) -> ExecutionReport:
        """
        Execute a program given as a list of hex byte strings.

        Interpreter failures are logged and reported, not raised.

        Raises:
            TypeError: If program is not a list/tuple of strings
            ConfigurationError: If no interpreter is configured
        """
        if not isinstance(program, (list, tuple)) or not all(isinstance(op, str) for op in program):
            raise TypeError("Cannot process program unless it is a list of hex strings.")
        if self.interpreter is None:
            raise ConfigurationError("No interpreter configured for diagnostics")

        try:
            code = bytes.fromhex("".join(program))
            result = self.interpreter.run_code(code, self.gas_limit)
            if inspect.isawaitable(result):
                result = await result
            report = ExecutionReport(
                return_value=bytes(result.return_value or b""),
                gas_used=int(result.gas_used),
            )
        except Exception as e:
            logger.warning(
                f"Interpreter error: {e}",
                extra={"context": {"program": list(program)}},
            )
            return ExecutionReport(error=str(e))

        logger.info(
            "Program executed",
            extra={
                "context": {
                    "return_value": report.return_value.hex(),
                    "gas_used": report.gas_used,
                }
            },
        )
        return report

    async def self_test(self) -> ExecutionReport:
        """Run PUSH1 3, PUSH1 5, ADD, STOP."""
        return await self.execute(list(SELF_TEST_PROGRAM))
