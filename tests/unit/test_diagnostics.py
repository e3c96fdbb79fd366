# PATH: tests/unit/test_diagnostics.py
"""
Unit tests for the interpreter self-test.
"""

from types import SimpleNamespace

import pytest

from core.constants import DEFAULT_GAS_LIMIT
from core.exceptions import ConfigurationError
from watcher.diagnostics import SELF_TEST_PROGRAM, Diagnostics, Interpreter


class RecordingInterpreter:
    def __init__(self, result=None, error=None):
        self.calls = []
        self.result = result or SimpleNamespace(return_value=b"\x08", gas_used=9)
        self.error = error

    def run_code(self, code, gas_limit):
        self.calls.append((code, gas_limit))
        if self.error:
            raise self.error
        return self.result


class TestDiagnostics:

    def test_interpreter_protocol(self):
        assert isinstance(RecordingInterpreter(), Interpreter)

    @pytest.mark.asyncio
    async def test_self_test_bytes(self):
        interpreter = RecordingInterpreter()

        report = await Diagnostics(interpreter).self_test()

        assert report.ok
        assert report.return_value == b"\x08"
        assert report.gas_used == 9
        assert interpreter.calls == [(bytes.fromhex("6003600501" "00"), DEFAULT_GAS_LIMIT)]
        assert len(SELF_TEST_PROGRAM) == 6

    @pytest.mark.asyncio
    async def test_async_interpreter(self):
        class AsyncInterpreter:
            async def run_code(self, code, gas_limit):
                return SimpleNamespace(return_value=b"", gas_used=3)

        report = await Diagnostics(AsyncInterpreter(), gas_limit=100).execute(["00"])

        assert report.ok
        assert report.gas_used == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize("program", ["6003", [0x60, 0x03], None])
    async def test_rejects_non_list(self, program):
        with pytest.raises(TypeError):
            await Diagnostics(RecordingInterpreter()).execute(program)

    @pytest.mark.asyncio
    async def test_interpreter_failure_reported(self):
        report = await Diagnostics(RecordingInterpreter(error=RuntimeError("out of gas"))).self_test()

        assert not report.ok
        assert report.error == "out of gas"

    @pytest.mark.asyncio
    async def test_bad_hex_reported(self):
        report = await Diagnostics(RecordingInterpreter()).execute(["zz"])
        assert not report.ok

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "result",
        [object(), SimpleNamespace(return_value=b"\x08", gas_used="lots")],
    )
    async def test_malformed_result_reported(self, result):
        report = await Diagnostics(RecordingInterpreter(result=result)).self_test()

        assert not report.ok
        assert report.error

    @pytest.mark.asyncio
    async def test_no_interpreter(self):
        with pytest.raises(ConfigurationError):
            await Diagnostics().self_test()
