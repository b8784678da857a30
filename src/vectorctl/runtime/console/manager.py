# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Shared Rich consoles for progress output and diagnostics."""

from __future__ import annotations

import sys
from functools import lru_cache
from typing import Literal, TextIO

from rich.console import Console

ColorSystem = Literal["auto", "standard", "256", "truecolor", "windows"]
ConsoleKey = tuple[bool, bool, bool, int]


def detect_tty() -> bool:
    """Return ``True`` when stdout is attached to a terminal."""

    try:
        return sys.stdout.isatty()
    except (AttributeError, ValueError):
        return False


class RichConsoleManager:
    """Hand out one :class:`Console` per presentation preset and output stream.

    The stream object is part of the cache key, so redirecting ``sys.stdout``
    or ``sys.stderr`` (as test runners do) yields a console bound to the new
    stream instead of a stale one.
    """

    def __init__(self) -> None:
        self._consoles: dict[ConsoleKey, Console] = {}

    def get(self, *, color: bool, emoji: bool, stderr: bool = False) -> Console:
        """Return the console for ``color``/``emoji`` on stdout, or stderr when requested."""

        stream: TextIO = sys.stderr if stderr else sys.stdout
        tty = detect_tty()
        key: ConsoleKey = (color, emoji, tty, id(stream))
        console = self._consoles.get(key)
        if console is None:
            styled = color and tty
            color_system: ColorSystem | None = "auto" if styled else None
            console = Console(
                file=stream,
                color_system=color_system,
                force_terminal=tty,
                no_color=not styled,
                emoji=emoji,
                soft_wrap=True,
            )
            self._consoles[key] = console
        return console


@lru_cache(maxsize=1)
def get_console_manager() -> RichConsoleManager:
    """Return the process-wide :class:`RichConsoleManager`."""

    return RichConsoleManager()


__all__ = ["RichConsoleManager", "detect_tty", "get_console_manager"]
