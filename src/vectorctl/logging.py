# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Console output for vectorctl.

Progress and results go to stdout; warnings, failures and the verbose echo
of external commands go to stderr so they survive ``vectorctl ... > log``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from rich.console import Console
from rich.rule import Rule
from rich.text import Text

from .runtime.console.manager import detect_tty, get_console_manager
from .text_utils import printable


@dataclass(frozen=True, slots=True)
class _Channel:
    prefix: str
    style: str
    stderr: bool


_INFO: Final = _Channel("ℹ️ ", "cyan", stderr=False)
_OK: Final = _Channel("✅ ", "green", stderr=False)
_WARN: Final = _Channel("⚠️ ", "yellow", stderr=True)
_FAIL: Final = _Channel("❌ ", "red", stderr=True)


def _console(*, use_color: bool, use_emoji: bool, stderr: bool) -> Console:
    return get_console_manager().get(color=use_color, emoji=use_emoji, stderr=stderr)


def _emit(channel: _Channel, msg: str, *, use_emoji: bool, use_color: bool | None) -> None:
    colored = detect_tty() if use_color is None else use_color
    line = Text(f"{channel.prefix if use_emoji else ''}{printable(msg)}", style=channel.style if colored else "")
    _console(use_color=colored, use_emoji=use_emoji, stderr=channel.stderr).print(line)


def info(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    """Print a progress line on stdout.

    Args:
        msg: Text to print.
        use_emoji: Prefix the line with an emoji marker.
        use_color: Force colour on or off; ``None`` follows TTY detection.
    """

    _emit(_INFO, msg, use_emoji=use_emoji, use_color=use_color)


def ok(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    """Print a completed-step line on stdout; arguments as for :func:`info`."""

    _emit(_OK, msg, use_emoji=use_emoji, use_color=use_color)


def warn(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    """Print a recoverable problem on stderr; arguments as for :func:`info`."""

    _emit(_WARN, msg, use_emoji=use_emoji, use_color=use_color)


def fail(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    """Print a hard failure on stderr; arguments as for :func:`info`."""

    _emit(_FAIL, msg, use_emoji=use_emoji, use_color=use_color)


def section(title: str, *, use_color: bool) -> None:
    """Separate a block of stdout output under ``title``.

    A rich rule is drawn when colour is on; plain ``--- title ---`` otherwise
    so captured output stays greppable.
    """

    console = _console(use_color=use_color, use_emoji=False, stderr=False)
    console.print()
    console.print(Rule(title) if use_color else f"--- {title} ---")


def diagnostic(msg: str) -> None:
    """Echo ``msg`` verbatim on stderr, never styled."""

    _console(use_color=False, use_emoji=False, stderr=True).print(Text(printable(msg)))


__all__ = ["diagnostic", "fail", "info", "ok", "section", "warn"]
