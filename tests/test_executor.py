"""Tests for run_command."""

import shlex
import sys

import pytest

from gpuproc.errors import CommandError
from gpuproc.executor import run_command

PYTHON = shlex.quote(sys.executable)


def test_returns_stdout():
    output = run_command(f"{PYTHON} -c 'print(\"h1\"); print(\"h2\")'")
    assert output.splitlines() == ["h1", "h2"]


def test_empty_output_is_not_an_error():
    assert run_command(f"{PYTHON} -c 'pass'") == ""


def test_nonzero_exit_raises():
    with pytest.raises(CommandError) as excinfo:
        run_command(f"{PYTHON} -c 'import sys; sys.stderr.write(\"no devices\"); sys.exit(9)'")

    assert "exit status 9" in excinfo.value.reason
    assert "no devices" in excinfo.value.reason


def test_missing_executable_raises():
    with pytest.raises(CommandError) as excinfo:
        run_command("definitely-not-a-real-gpu-tool --query")

    assert "not found" in excinfo.value.reason
    assert excinfo.value.command == "definitely-not-a-real-gpu-tool --query"


def test_timeout_raises():
    with pytest.raises(CommandError) as excinfo:
        run_command(f"{PYTHON} -c 'import time; time.sleep(10)'", timeout=0.5)

    assert "timed out" in excinfo.value.reason


def test_empty_command_raises():
    with pytest.raises(CommandError):
        run_command("   ")


def test_undecodable_output_raises():
    with pytest.raises(CommandError):
        run_command(f"{PYTHON} -c 'import sys; sys.stdout.buffer.write(b\"\\xff\\xfe\\xfd\")'")
