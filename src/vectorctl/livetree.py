# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Scan a live directory tree into :class:`PathInfo` records.

Regular-file checksums follow the OSTree content checksum: SHA-256 over a
length-prefixed GVariant header ``(uuuus a(ayay))`` holding uid, gid, mode,
symlink target and sorted xattrs, followed by the file content. This makes
live entries directly comparable with ``ostree ls -C`` output. Directories
use the unprefixed dirmeta variant ``(uuu a(ayay))``.
"""

from __future__ import annotations

import errno
import hashlib
import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .ostree.listing import TYPE_DIRECTORY, TYPE_REGULAR, TYPE_SYMLINK, PathInfo, PathMode
from .text_utils import printable

LOGGER = logging.getLogger(__name__)

DUMMY_CHECKSUM: Final[str] = "0"
_READ_CHUNK: Final[int] = 1 << 16
_XATTR_ABSENT: Final[frozenset[int]] = frozenset({errno.ENOTSUP, errno.ENODATA, errno.ERANGE, errno.EOPNOTSUPP})


@dataclass(frozen=True, slots=True)
class Xattr:
    """Extended attribute; ``name`` includes the trailing NUL as stored in the variant."""

    name: bytes
    value: bytes


def _offset_size(body_size: int, num_offsets: int) -> int:
    for size in (1, 2, 4):
        if body_size + num_offsets * size < (1 << (8 * size)):
            return size
    return 8


def _offset_bytes(offset: int, size: int) -> bytes:
    return offset.to_bytes(size, "little")


def _serialize_xattr_tuple(item: Xattr) -> bytes:
    body = item.name + item.value
    size = _offset_size(len(body), 1)
    return body + _offset_bytes(len(item.name), size)


def _serialize_xattrs(xattrs: list[Xattr]) -> bytes:
    if not xattrs:
        return b""
    elements = [_serialize_xattr_tuple(item) for item in xattrs]
    body = b"".join(elements)
    size = _offset_size(len(body), len(elements))
    framing = bytearray()
    running = 0
    for element in elements:
        running += len(element)
        framing += _offset_bytes(running, size)
    return body + bytes(framing)


def build_file_header(uid: int, gid: int, mode: int, symlink_target: str, xattrs: list[Xattr]) -> bytes:
    """Return the length-prefixed file header variant.

    ``symlink_target`` is encoded back to the raw bytes the kernel stores,
    so targets that are not valid UTF-8 hash the way ostree hashes them.
    """

    ordered = sorted(xattrs, key=lambda item: item.name)
    xattr_data = _serialize_xattrs(ordered)
    target = os.fsencode(symlink_target) + b"\x00"
    body_size = 16 + len(target) + len(xattr_data)
    size = _offset_size(body_size, 1)

    variant = bytearray()
    for value in (uid, gid, mode, 0):
        variant += value.to_bytes(4, "big")
    variant += target
    variant += xattr_data
    variant += _offset_bytes(16 + len(target), size)

    return len(variant).to_bytes(4, "big") + b"\x00\x00\x00\x00" + bytes(variant)


def build_dir_meta(uid: int, gid: int, mode: int, xattrs: list[Xattr]) -> bytes:
    """Return the dirmeta variant; the xattr array is last so no framing is needed."""

    ordered = sorted(xattrs, key=lambda item: item.name)
    head = b"".join(value.to_bytes(4, "big") for value in (uid, gid, mode))
    return head + _serialize_xattrs(ordered)


def read_xattrs(path: Path) -> list[Xattr]:
    """Read extended attributes without following symlinks."""

    try:
        names = os.listxattr(path, follow_symlinks=False)
    except OSError as exc:
        if exc.errno in _XATTR_ABSENT:
            return []
        raise
    return [
        Xattr(
            name=os.fsencode(name) + b"\x00",
            value=os.getxattr(path, name, follow_symlinks=False),
        )
        for name in names
    ]


def ostree_checksum(path: Path) -> str:
    """Compute the OSTree checksum of a file, symlink or directory."""

    st = os.lstat(path)
    uid, gid, mode = st.st_uid, st.st_gid, st.st_mode
    xattrs = read_xattrs(path)

    digest = hashlib.sha256()
    if stat.S_ISDIR(mode):
        digest.update(build_dir_meta(uid, gid, mode, xattrs))
        return digest.hexdigest()

    target = os.readlink(path) if stat.S_ISLNK(mode) else ""
    digest.update(build_file_header(uid, gid, mode, target, xattrs))
    if stat.S_ISREG(mode):
        with path.open("rb") as handle:
            for chunk in iter(lambda: handle.read(_READ_CHUNK), b""):
                digest.update(chunk)
    return digest.hexdigest()


def _checksum_or_dummy(path: Path) -> str:
    try:
        return ostree_checksum(path)
    except OSError as exc:
        LOGGER.warning("failed to compute OSTree checksum for %s: %s; using dummy checksum", path, exc)
        return DUMMY_CHECKSUM


def _path_info(path: Path) -> PathInfo | None:
    st = os.lstat(path)
    if stat.S_ISREG(st.st_mode):
        kind = TYPE_REGULAR
    elif stat.S_ISDIR(st.st_mode):
        kind = TYPE_DIRECTORY
    elif stat.S_ISLNK(st.st_mode):
        kind = TYPE_SYMLINK
    else:
        return None
    mode = PathMode(
        type=kind,
        perms=stat.S_IMODE(st.st_mode) & 0o777,
        setuid=bool(st.st_mode & stat.S_ISUID),
        setgid=bool(st.st_mode & stat.S_ISGID),
        sticky=bool(st.st_mode & stat.S_ISVTX),
    )
    return PathInfo(
        mode=mode,
        uid=st.st_uid,
        gid=st.st_gid,
        size=st.st_size,
        checksum=_checksum_or_dummy(path),
        path=printable(str(path)),
        link=printable(os.readlink(path)) if kind == TYPE_SYMLINK else None,
    )


def scan_tree(root: Path) -> list[PathInfo]:
    """Recursively describe ``root`` (included) in sorted depth-first order.

    Only regular files, directories and symlinks are reported; symlinked
    directories are not descended into. Reported paths and link targets go
    through :func:`~vectorctl.text_utils.printable`; checksums are computed
    from the raw names.
    """

    entries: list[PathInfo] = []
    pending = [root]
    while pending:
        current = pending.pop()
        info = _path_info(current)
        if info is None:
            continue
        entries.append(info)
        if info.mode.is_directory:
            with os.scandir(current) as iterator:
                children = sorted(entry.name for entry in iterator)
            pending.extend(current / name for name in reversed(children))
    return entries


__all__ = [
    "DUMMY_CHECKSUM",
    "Xattr",
    "build_dir_meta",
    "build_file_header",
    "ostree_checksum",
    "read_xattrs",
    "scan_tree",
]
