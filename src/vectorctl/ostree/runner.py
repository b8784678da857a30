# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Runner capability used by every component that talks to ``ostree``."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any, Final, Protocol, runtime_checkable

from ..logging import diagnostic
from ..process_utils import run_command

LOGGER = logging.getLogger(__name__)

OSTREE_BINARY: Final[str] = "ostree"

ProcessLauncher = Callable[..., Any]
EchoSink = Callable[[str], None]


@runtime_checkable
class OstreeRunner(Protocol):
    """Execute ``ostree`` invocations on behalf of a component."""

    def run(self, args: Sequence[str]) -> None:
        """Run ``ostree`` for its side effects, streaming output to the caller."""

        raise NotImplementedError

    def run_capture(self, args: Sequence[str]) -> str:
        """Run ``ostree`` and return its buffered stdout."""

        raise NotImplementedError


class OstreeCli:
    """Subprocess-backed :class:`OstreeRunner`.

    Both operations prefix the ``ostree`` binary. When ``verbose`` is set the
    full invocation is echoed to the diagnostic stream before it executes;
    streamed runs additionally ask ``ostree`` itself for ``--verbose`` output.
    Errors from the launcher propagate unchanged and are never retried here.
    """

    def __init__(
        self,
        *,
        verbose: bool = False,
        launcher: ProcessLauncher | None = None,
        echo: EchoSink | None = None,
        binary: str = OSTREE_BINARY,
    ) -> None:
        self._verbose = verbose
        self._launcher = launcher or run_command
        self._echo = echo or diagnostic
        self._binary = binary

    @property
    def verbose(self) -> bool:
        return self._verbose

    def run(self, args: Sequence[str]) -> None:
        final_args = list(args)
        if self._verbose:
            final_args = ["--verbose", *final_args]
            self._echo(f">> Executing: {self._binary} {' '.join(final_args)}")
        LOGGER.debug("running %s %s", self._binary, final_args)
        self._launcher([self._binary, *final_args], check=True)

    def run_capture(self, args: Sequence[str]) -> str:
        if self._verbose:
            self._echo(f">> Executing: {self._binary} (stdout capture) {' '.join(args)}")
        LOGGER.debug("capturing %s %s", self._binary, list(args))
        completed = self._launcher([self._binary, *args], check=True, capture_stdout=True)
        stdout = getattr(completed, "stdout", None)
        return stdout if isinstance(stdout, str) else ""


def first_nonempty_line(output: str) -> str | None:
    """Return the first non-blank line of ``output`` stripped of whitespace."""

    for raw_line in output.splitlines():
        line = raw_line.strip()
        if line:
            return line
    return None


__all__ = [
    "OSTREE_BINARY",
    "EchoSink",
    "OstreeCli",
    "OstreeRunner",
    "ProcessLauncher",
    "first_nonempty_line",
]
