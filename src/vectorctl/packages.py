# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Package-set extraction and version-aware diffing between two commits."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Final

from pydantic import BaseModel, ConfigDict, Field

from .errors import VectorError
from .ostree.listing import ContentSource

LOGGER = logging.getLogger(__name__)

FALLBACK_PACKAGE_DB: Final[str] = "/var/db/pkg"


class PackageUpgrade(BaseModel):
    model_config = ConfigDict(frozen=True)

    old: str
    new: str


class PackageDiff(BaseModel):
    """Upgraded, removed and added packages between two package sets."""

    model_config = ConfigDict(frozen=True)

    upgraded: tuple[PackageUpgrade, ...] = Field(default_factory=tuple)
    removed: tuple[str, ...] = Field(default_factory=tuple)
    added: tuple[str, ...] = Field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not (self.upgraded or self.removed or self.added)


def package_base_name(package: str) -> str:
    """Strip the version suffix from a ``category/name-version`` entry.

    The version boundary is the last ``-`` immediately followed by a digit.
    Entries without a category or without such a boundary are returned as-is.
    """

    category, separator, rest = package.rpartition("/")
    if not separator:
        return package
    for index in range(len(rest) - 1, -1, -1):
        if rest[index] == "-" and index + 1 < len(rest) and rest[index + 1].isdigit():
            return f"{category}/{rest[:index]}"
    return package


def diff_packages(old: Iterable[str], new: Iterable[str]) -> PackageDiff:
    """Reconcile two package sets into upgraded, removed and added entries."""

    old_set = set(old)
    new_set = set(new)
    removed_candidates = sorted(old_set - new_set)
    added_candidates = sorted(new_set - old_set)

    upgraded: list[PackageUpgrade] = []
    removed: list[str] = []
    for package in removed_candidates:
        base = package_base_name(package)
        match = next((candidate for candidate in added_candidates if package_base_name(candidate) == base), None)
        if match is None:
            removed.append(package)
            continue
        upgraded.append(PackageUpgrade(old=package, new=match))
        added_candidates.remove(match)

    return PackageDiff(upgraded=tuple(upgraded), removed=tuple(removed), added=tuple(added_candidates))


class PackageLister:
    """Derive the installed package set of a commit from its package database."""

    def __init__(
        self,
        lister: ContentSource,
        db_path: str,
        *,
        fallback_path: str = FALLBACK_PACKAGE_DB,
    ) -> None:
        self._lister = lister
        self._db_path = db_path
        self._fallback_path = fallback_path

    def list_packages(self, commit: str) -> set[str]:
        if not commit:
            raise ValueError("missing commit parameter")
        try:
            packages = self._list_from(commit, self._db_path)
        except VectorError as exc:
            if self._fallback_path == self._db_path:
                raise
            LOGGER.debug("package database %s unavailable in %s: %s", self._db_path, commit, exc)
            packages = set()
        if packages or self._fallback_path == self._db_path:
            return packages
        return self._list_from(commit, self._fallback_path)

    def _list_from(self, commit: str, db_path: str) -> set[str]:
        prefix = db_path.rstrip("/") + "/"
        packages: set[str] = set()
        for entry in self._lister.list_contents(commit, db_path):
            if not entry.mode.is_directory or not entry.path.startswith(prefix):
                continue
            relative = entry.path[len(prefix) :].rstrip("/")
            if relative.count("/") == 1:
                packages.add(relative)
        return packages


__all__ = [
    "FALLBACK_PACKAGE_DB",
    "PackageDiff",
    "PackageLister",
    "PackageUpgrade",
    "diff_packages",
    "package_base_name",
]
