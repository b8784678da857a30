# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Option declarations and error handling shared by every command."""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated

import typer

from ..errors import VectorError
from ..logging import fail

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        dir_okay=False,
        help="Client configuration file (defaults to $VECTORCTL_CONFIG or /etc/vectorctl/client.conf).",
    ),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Echo every ostree invocation to stderr."),
]
NoEmojiOption = Annotated[
    bool,
    typer.Option("--no-emoji", help="Disable emoji in console output."),
]


class CLIError(RuntimeError):
    """Error raised when a command fails and should exit with ``exit_code``."""

    def __init__(self, message: str, *, exit_code: int = 1) -> None:
        super().__init__(message)
        self.exit_code = exit_code


def require_root() -> None:
    """Refuse to continue unless the effective user is root.

    Raises:
        CLIError: When the effective uid is not 0.
    """

    if os.geteuid() != 0:
        raise CLIError("this command must be run as root")


@contextmanager
def exit_on_error(*, use_emoji: bool) -> Iterator[None]:
    """Report :class:`VectorError` and :class:`CLIError` and exit non-zero.

    Raises:
        typer.Exit: With status 1 (or the ``CLIError`` status) on failure.
    """

    try:
        yield
    except CLIError as exc:
        fail(str(exc), use_emoji=use_emoji)
        raise typer.Exit(code=exc.exit_code) from exc
    except VectorError as exc:
        fail(str(exc), use_emoji=use_emoji)
        raise typer.Exit(code=1) from exc


__all__ = ["CLIError", "ConfigOption", "NoEmojiOption", "VerboseOption", "exit_on_error", "require_root"]
