# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Wire configuration and ``ostree`` adapters for CLI commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from ..config import IniKeyValueStore, UpgradeSettings, default_config_path, load_upgrade_settings
from ..etc_merge import LIVE_ETC, PRISTINE_ETC, EtcDiffer
from ..ostree import ContentLister, OstreeAdmin, OstreeCli, StatusReader
from ..packages import PackageLister

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ClientServices:
    """Collaborators built once per command invocation."""

    settings: UpgradeSettings
    runner: OstreeCli
    status_reader: StatusReader
    admin: OstreeAdmin
    lister: ContentLister

    def package_lister(self) -> PackageLister:
        """Return a package lister over the configured package database.

        Returns:
            PackageLister: Lister reading ``settings.package_db`` from commits.
        """

        return PackageLister(self.lister, self.settings.package_db)

    def etc_differ(self) -> EtcDiffer:
        """Return a differ comparing pristine and live configuration.

        Returns:
            EtcDiffer: Differ rooted at the live ``/etc`` below ``settings.root``.
        """

        return EtcDiffer(self.lister, pristine_path=PRISTINE_ETC, live_root=live_etc_root(self.settings.root))


def live_etc_root(root: Path) -> Path:
    return root / LIVE_ETC.lstrip("/")


def load_settings(config_path: Path | None, *, require_bootloader: bool = False) -> UpgradeSettings:
    """Load settings from ``config_path`` or the default location.

    Args:
        config_path: Explicit configuration file, or ``None`` for the default.
        require_bootloader: Fail unless the boot-media keys are present.

    Returns:
        UpgradeSettings: Parsed client settings.
    """

    path = config_path or default_config_path()
    LOGGER.debug("loading configuration from %s", path)
    return load_upgrade_settings(IniKeyValueStore(path), require_bootloader=require_bootloader)


def build_services(settings: UpgradeSettings, *, verbose: bool) -> ClientServices:
    """Create the ostree adapters for one command invocation.

    Args:
        settings: Client settings; ``root`` selects the sysroot.
        verbose: Echo every ostree invocation to stderr.

    Returns:
        ClientServices: Adapters sharing a single runner.
    """

    runner = OstreeCli(verbose=verbose)
    status_reader = StatusReader(runner, settings.root)
    return ClientServices(
        settings=settings,
        runner=runner,
        status_reader=status_reader,
        admin=OstreeAdmin(runner, settings.root),
        lister=ContentLister(runner, status_reader.repo_dir),
    )


__all__ = ["ClientServices", "build_services", "live_etc_root", "load_settings"]
