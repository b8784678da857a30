# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""The single place where vectorctl spawns external programs."""

from __future__ import annotations

import shutil

# Bandit: argument vectors only, never a shell.
import subprocess  # nosec B404
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Final

from .errors import SubprocessExecutionError

if TYPE_CHECKING:
    from subprocess import CompletedProcess  # nosec B404

SPAWN_FAILURE_STATUS: Final[int] = 127


def resolve_executable(args: Sequence[str]) -> list[str]:
    """Return ``args`` with the program replaced by its absolute path.

    Raises:
        ValueError: When ``args`` is empty.
        SubprocessExecutionError: When the program is not on ``PATH``; the
            status mirrors the shell's ``command not found``.
    """

    if not args:
        raise ValueError("subprocess command requires at least one argument")
    program, *rest = args
    if Path(program).is_absolute():
        return [program, *rest]
    located = shutil.which(program)
    if located is None:
        raise SubprocessExecutionError(args, SPAWN_FAILURE_STATUS, None, f"Executable '{program}' was not found on PATH")
    return [located, *rest]


def _text_or_none(value: object) -> str | None:
    return value if isinstance(value, str) else None


def run_command(
    args: Sequence[str],
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    check: bool = True,
    capture_output: bool = False,
    capture_stdout: bool = False,
    text: bool = True,
) -> CompletedProcess[str]:
    """Run ``args`` and return the completed process.

    By default both streams are inherited so the user sees the program's
    progress. ``capture_stdout`` buffers stdout for parsing while stderr stays
    on the terminal; ``capture_output`` buffers both. Captured text keeps
    bytes that are not valid UTF-8 as surrogate escapes, matching how
    :mod:`os` decodes file names, so paths from ``ostree ls`` compare equal
    to the same paths found on disk.

    Raises:
        SubprocessExecutionError: On spawn failure, or a non-zero exit when
            ``check`` is set.
    """

    argv = resolve_executable(args)
    try:
        completed: CompletedProcess[str] = subprocess.run(  # nosec B603
            argv,
            cwd=None if cwd is None else str(cwd),
            env=None if env is None else dict(env),
            check=False,
            stdout=subprocess.PIPE if capture_output or capture_stdout else None,
            stderr=subprocess.PIPE if capture_output else None,
            text=text,
            encoding="utf-8" if text else None,
            errors="surrogateescape" if text else None,
        )
    except OSError as exc:
        raise SubprocessExecutionError(argv, SPAWN_FAILURE_STATUS, None, str(exc)) from exc

    if check and completed.returncode != 0:
        raise SubprocessExecutionError(
            argv,
            completed.returncode,
            _text_or_none(completed.stdout),
            _text_or_none(completed.stderr),
        )
    return completed


__all__ = ["SPAWN_FAILURE_STATUS", "SubprocessExecutionError", "resolve_executable", "run_command"]
