# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Three-way merge of configuration trees.

Every relative path found in the pristine configuration of the old commit,
the pristine configuration of the new commit, or the live tree is classified
independently:

=====  =====  =====  ==========================================  ==========
old    new    user   condition                                   action
=====  =====  =====  ==========================================  ==========
yes    yes    yes    old == new == user                          (none)
yes    yes    yes    old == new, old != user                     user-only
yes    yes    yes    old != new, old == user                     update
yes    yes    yes    old != new, old != user, new == user        (none)
yes    yes    yes    old != new, old != user, new != user        conflict
no     yes    no                                                 add
no     yes    yes    new == user                                 (none)
no     yes    yes    new != user                                 conflict
yes    no     yes    old == user                                 remove
yes    no     yes    old != user                                 conflict
yes    no     no                                                 (none)
yes    yes    no     old == new                                  user-only
yes    yes    no     old != new                                  conflict
no     no     yes                                                user-only
=====  =====  =====  ==========================================  ==========

Results are sorted by relative path. Conflicts are data, not errors.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum
from pathlib import Path
from typing import Final

from pydantic import BaseModel, ConfigDict

from .livetree import scan_tree
from .ostree.listing import ContentSource, PathInfo
from .text_utils import printable

LOGGER = logging.getLogger(__name__)

PRISTINE_ETC: Final[str] = "/usr/etc"
LIVE_ETC: Final[str] = "/etc"


class EtcChangeAction(Enum):
    ADD = "add"
    UPDATE = "update"
    REMOVE = "remove"
    CONFLICT = "conflict"
    USER_ONLY = "user-only"


class EtcChange(BaseModel):
    """Classified change for one path relative to the configuration root."""

    model_config = ConfigDict(frozen=True)

    path: str
    action: EtcChangeAction
    old: PathInfo | None = None
    new: PathInfo | None = None
    user: PathInfo | None = None


def index_by_relative_path(entries: Iterable[PathInfo], root: str) -> dict[str, PathInfo]:
    """Key ``entries`` by their path relative to ``root``.

    The root entry itself is dropped, as is anything outside ``root``.
    """

    prefix = root.rstrip("/")
    indexed: dict[str, PathInfo] = {}
    for entry in entries:
        path = entry.path.rstrip("/") or "/"
        if path == (prefix or "/"):
            continue
        if not path.startswith(prefix + "/"):
            LOGGER.debug("ignoring %s outside of %s", entry.path, root)
            continue
        relative = path[len(prefix) + 1 :]
        if relative:
            indexed[relative] = entry
    return indexed


def classify(
    relative_path: str,
    old: PathInfo | None,
    new: PathInfo | None,
    user: PathInfo | None,
) -> EtcChange | None:
    """Return the change for one path, or ``None`` when nothing needs reporting."""

    action = _classify_action(old, new, user)
    if action is None:
        return None
    return EtcChange(path=relative_path, action=action, old=old, new=new, user=user)


def _classify_action(
    old: PathInfo | None,
    new: PathInfo | None,
    user: PathInfo | None,
) -> EtcChangeAction | None:
    if old is not None and new is not None and user is not None:
        return _classify_all_present(old, new, user)

    if old is None and new is not None:
        if user is None:
            return EtcChangeAction.ADD
        return None if new.same_content(user) else EtcChangeAction.CONFLICT

    if old is not None and new is None:
        if user is None:
            return None
        return EtcChangeAction.REMOVE if old.same_content(user) else EtcChangeAction.CONFLICT

    if old is not None and new is not None:
        # user deleted the file
        return EtcChangeAction.USER_ONLY if old.same_content(new) else EtcChangeAction.CONFLICT

    if user is not None:
        return EtcChangeAction.USER_ONLY
    return None


def _classify_all_present(old: PathInfo, new: PathInfo, user: PathInfo) -> EtcChangeAction | None:
    old_eq_new = old.same_content(new)
    old_eq_user = old.same_content(user)
    if old_eq_new and old_eq_user:
        return None
    if old_eq_new:
        return EtcChangeAction.USER_ONLY
    if old_eq_user:
        return EtcChangeAction.UPDATE
    if new.same_content(user):
        return None
    return EtcChangeAction.CONFLICT


def compute_etc_diff(
    old_entries: Iterable[PathInfo],
    new_entries: Iterable[PathInfo],
    user_entries: Iterable[PathInfo],
    *,
    old_root: str = PRISTINE_ETC,
    new_root: str = PRISTINE_ETC,
    user_root: str = LIVE_ETC,
) -> list[EtcChange]:
    """Classify every path of the three trees and return the emitted changes."""

    old_map = index_by_relative_path(old_entries, old_root)
    new_map = index_by_relative_path(new_entries, new_root)
    user_map = index_by_relative_path(user_entries, user_root)

    changes: list[EtcChange] = []
    for relative_path in sorted(old_map.keys() | new_map.keys() | user_map.keys()):
        change = classify(
            relative_path,
            old_map.get(relative_path),
            new_map.get(relative_path),
            user_map.get(relative_path),
        )
        if change is not None:
            changes.append(change)
    return changes


class EtcDiffer:
    """Compose commit listings and the live scan into a three-way diff."""

    def __init__(
        self,
        lister: ContentSource,
        *,
        pristine_path: str = PRISTINE_ETC,
        live_root: Path = Path(LIVE_ETC),
    ) -> None:
        self._lister = lister
        self._pristine_path = pristine_path
        self._live_root = live_root

    def list_changes(self, old_commit: str, new_commit: str) -> list[EtcChange]:
        old_entries = self._lister.list_contents(old_commit, self._pristine_path)
        new_entries = self._lister.list_contents(new_commit, self._pristine_path)
        user_entries = scan_tree(self._live_root)
        return compute_etc_diff(
            old_entries,
            new_entries,
            user_entries,
            old_root=self._pristine_path,
            new_root=self._pristine_path,
            user_root=printable(str(self._live_root)),
        )


__all__ = [
    "LIVE_ETC",
    "PRISTINE_ETC",
    "EtcChange",
    "EtcChangeAction",
    "EtcDiffer",
    "classify",
    "compute_etc_diff",
    "index_by_relative_path",
]
