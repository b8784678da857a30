# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for the subprocess wrapper."""

from __future__ import annotations

import sys

import pytest

from vectorctl.errors import SubprocessExecutionError, VectorError
from vectorctl.process_utils import SPAWN_FAILURE_STATUS, run_command


def test_run_command_captures_stdout_only() -> None:
    completed = run_command(
        [sys.executable, "-c", "import sys; print('hello'); print('oops', file=sys.stderr)"],
        capture_stdout=True,
    )
    assert completed.stdout == "hello\n"
    assert completed.stderr is None


def test_run_command_captures_both_streams() -> None:
    completed = run_command(
        [sys.executable, "-c", "import sys; print('out'); print('err', file=sys.stderr)"],
        capture_output=True,
    )
    assert completed.stdout == "out\n"
    assert completed.stderr == "err\n"


def test_run_command_raises_on_non_zero_exit() -> None:
    with pytest.raises(SubprocessExecutionError) as excinfo:
        run_command(
            [sys.executable, "-c", "import sys; sys.stderr.write('broken'); sys.exit(3)"],
            capture_output=True,
        )
    assert excinfo.value.returncode == 3
    assert excinfo.value.stderr == "broken"
    assert isinstance(excinfo.value, VectorError)


def test_run_command_without_check_returns_status() -> None:
    completed = run_command([sys.executable, "-c", "raise SystemExit(2)"], check=False)
    assert completed.returncode == 2


def test_missing_executable_is_a_spawn_failure() -> None:
    with pytest.raises(SubprocessExecutionError) as excinfo:
        run_command(["vectorctl-definitely-missing-binary", "--help"])
    assert excinfo.value.returncode == SPAWN_FAILURE_STATUS
    assert "not found on PATH" in (excinfo.value.stderr or "")


def test_empty_command_is_rejected() -> None:
    with pytest.raises(ValueError):
        run_command([])


def test_undecodable_output_is_kept_as_surrogates() -> None:
    completed = run_command(
        [sys.executable, "-c", "import sys; sys.stdout.buffer.write(b'/etc/\\xff\\n')"],
        capture_stdout=True,
    )
    assert completed.stdout.encode("utf-8", "surrogateescape") == b"/etc/\xff\n"
