# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Parse checksum-annotated recursive listings produced by ``ostree ls -C -R``.

Each line has the fixed layout::

    <mode> <uid> <gid> <size> [<dirtree checksum>] <checksum> <path> [-> <target>]

Directories carry two checksums (the dirtree object and the dirmeta content
checksum); only the second is retained. Parsing is all-or-nothing: a single
malformed line fails the whole listing.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Final, Protocol

from pydantic import BaseModel, ConfigDict

from ..errors import ParseError
from ..text_utils import printable
from .runner import OstreeRunner

TYPE_REGULAR: Final[str] = "-"
TYPE_DIRECTORY: Final[str] = "d"
TYPE_SYMLINK: Final[str] = "l"

SYMLINK_MARKER: Final[str] = "->"

POSIX_SETUID: Final[int] = 0o4000
POSIX_SETGID: Final[int] = 0o2000
POSIX_STICKY: Final[int] = 0o1000
POSIX_PERMS: Final[int] = 0o0777

_MIN_MODE_LENGTH: Final[int] = 4
_MIN_FIELDS: Final[int] = 6


class PathMode(BaseModel):
    """File type tag plus permission and special bits."""

    model_config = ConfigDict(frozen=True)

    type: str
    perms: int
    setuid: bool = False
    setgid: bool = False
    sticky: bool = False

    @property
    def is_regular(self) -> bool:
        return self.type == TYPE_REGULAR

    @property
    def is_directory(self) -> bool:
        return self.type == TYPE_DIRECTORY

    @property
    def is_symlink(self) -> bool:
        return self.type == TYPE_SYMLINK


class PathInfo(BaseModel):
    """One entry of a recursive listing or of a live tree scan."""

    model_config = ConfigDict(frozen=True)

    mode: PathMode
    uid: int
    gid: int
    size: int
    checksum: str
    path: str
    link: str | None = None

    def same_content(self, other: PathInfo) -> bool:
        """Return ``True`` when ``other`` describes the same file state.

        Type, permission bits, special bits, ownership and symlink target are
        compared. Content checksums only count for regular files; the size is
        implied by the checksum and is not compared on its own.
        """

        if self.mode != other.mode:
            return False
        if self.uid != other.uid or self.gid != other.gid:
            return False
        if (self.link or "") != (other.link or ""):
            return False
        if self.mode.is_regular:
            return self.checksum == other.checksum
        return True

    def describe(self) -> str:
        """Return a short human-readable summary."""

        if self.mode.is_directory:
            kind = "dir"
        elif self.mode.is_symlink:
            kind = f"link -> {self.link}"
        else:
            kind = "file"
        return (
            f"{kind} {self.mode.perms:04o} uid={self.uid} gid={self.gid} "
            f"size={self.size}, csum={self.checksum}"
        )


def parse_mode_string(value: str) -> PathMode:
    """Parse a hybrid mode string such as ``-00644`` or ``d04755``."""

    if len(value) < _MIN_MODE_LENGTH:
        raise ParseError(f"input too short to be valid mode string: {value!r}")
    try:
        raw = int(value[1:], 8)
    except ValueError as exc:
        raise ParseError(f"failed to parse octal permissions in {value!r}") from exc
    if raw < 0:
        raise ParseError(f"negative permission word in {value!r}")
    return PathMode(
        type=value[0],
        perms=raw & POSIX_PERMS,
        setuid=bool(raw & POSIX_SETUID),
        setgid=bool(raw & POSIX_SETGID),
        sticky=bool(raw & POSIX_STICKY),
    )


def _parse_int(field: str, name: str, line: str) -> int:
    try:
        return int(field, 10)
    except ValueError as exc:
        raise ParseError(f"invalid {name} {field!r} in ostree ls line: {line!r}") from exc


def parse_listing_line(line: str) -> PathInfo:
    """Parse one ``ostree ls -C`` line into a :class:`PathInfo`."""

    parts = line.split()
    if len(parts) < _MIN_FIELDS:
        raise ParseError(f"unexpected format for ostree ls line: {line!r}")

    mode = parse_mode_string(parts[0])
    uid = _parse_int(parts[1], "uid", line)
    gid = _parse_int(parts[2], "gid", line)
    size = _parse_int(parts[3], "size", line)
    idx = 4
    if mode.is_directory:
        # dirtree checksum precedes the dirmeta content checksum
        idx += 1
    if len(parts) < idx + 2:
        raise ParseError(f"missing checksum or path in ostree ls line: {line!r}")
    checksum = parts[idx]
    path = printable(parts[idx + 1])
    idx += 2

    link: str | None = None
    if mode.is_symlink and len(parts) > idx:
        if parts[idx] != SYMLINK_MARKER or len(parts) < idx + 2:
            raise ParseError(f"malformed symlink target in ostree ls line: {line!r}")
        link = printable(parts[idx + 1])

    return PathInfo(mode=mode, uid=uid, gid=gid, size=size, checksum=checksum, path=path, link=link)


def parse_listing(output: str | Iterable[str]) -> list[PathInfo]:
    """Parse a whole listing, skipping blank lines."""

    lines = output.splitlines() if isinstance(output, str) else output
    entries: list[PathInfo] = []
    for raw_line in lines:
        line = raw_line.strip()
        if not line:
            continue
        entries.append(parse_listing_line(line))
    return entries


class ContentSource(Protocol):
    """Anything that can describe a path inside a commit."""

    def list_contents(self, commit: str, path: str) -> list[PathInfo]: ...


class ContentLister:
    """List the contents of a path inside a commit of a repository."""

    def __init__(self, runner: OstreeRunner, repo_dir: Path) -> None:
        self._runner = runner
        self._repo_dir = repo_dir

    @property
    def repo_dir(self) -> Path:
        return self._repo_dir

    def list_contents(self, commit: str, path: str) -> list[PathInfo]:
        if not commit:
            raise ValueError("missing commit parameter")
        if not path:
            raise ValueError("missing path parameter")
        output = self._runner.run_capture(
            [f"--repo={self._repo_dir}", "ls", "-C", "-R", commit, "--", path],
        )
        return parse_listing(output)


__all__ = [
    "POSIX_PERMS",
    "POSIX_SETGID",
    "POSIX_SETUID",
    "POSIX_STICKY",
    "TYPE_DIRECTORY",
    "TYPE_REGULAR",
    "TYPE_SYMLINK",
    "ContentLister",
    "ContentSource",
    "PathInfo",
    "PathMode",
    "parse_listing",
    "parse_listing_line",
    "parse_mode_string",
]
