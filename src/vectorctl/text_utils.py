# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Helpers for file names that are not valid UTF-8."""

from __future__ import annotations


def printable(text: str) -> str:
    """Return ``text`` with undecodable bytes spelled out as ``\\xNN``.

    :mod:`os` and :func:`~vectorctl.process_utils.run_command` keep bytes
    that are not valid UTF-8 as surrogate escapes. Such strings cannot be
    written to a UTF-8 stream or stored in a pydantic ``str`` field, so
    paths pass through here before either. Live and committed paths go
    through the same mapping and therefore still compare equal.

    Args:
        text: Text that may carry surrogate escapes.

    Returns:
        str: Valid Unicode text; unchanged when ``text`` was already valid.
    """

    try:
        raw = text.encode("utf-8", "surrogateescape")
    except UnicodeEncodeError:
        raw = text.encode("utf-8", "backslashreplace")
    return raw.decode("utf-8", "backslashreplace")


__all__ = ["printable"]
