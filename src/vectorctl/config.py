# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Configuration access for the upgrade workflow.

Values are looked up as ``Section.Key`` in an externally supplied key/value
store. :class:`IniKeyValueStore` reads the INI files shipped with the OS;
tests and embedders can pass any :class:`KeyValueStore`.
"""

from __future__ import annotations

import configparser
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Final, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from .errors import ConfigError
from .packages import FALLBACK_PACKAGE_DB

CONFIG_ENV_VAR: Final[str] = "VECTORCTL_CONFIG"
ROOT_ENV_VAR: Final[str] = "ROOT"
DEFAULT_CONFIG_PATH: Final[Path] = Path("/etc/vectorctl/client.conf")

KEY_ROOT: Final[str] = "Ostree.Root"
KEY_EFI_ROOT: Final[str] = "Imager.EfiRoot"
KEY_EFI_CERTIFICATE: Final[str] = "Imager.EfiCertificateFileName"
KEY_EFI_EXECUTABLE: Final[str] = "Imager.EfiExecutable"
KEY_BOOTLOADER_PATH: Final[str] = "Imager.EfiBootloaderPath"
KEY_BOOTLOADER_NAME: Final[str] = "Imager.EfiBootloaderName"
KEY_PACKAGE_DB: Final[str] = "Releaser.ReadOnlyVdb"

DEFAULT_EFI_EXECUTABLE: Final[str] = "BOOTX64.EFI"
DEFAULT_BOOTLOADER_PATH: Final[str] = "usr/lib/grub/grub-x86_64.efi"
DEFAULT_BOOTLOADER_NAME: Final[str] = "grubx64.efi"
DEFAULT_SHIM_DIR: Final[str] = "usr/share/shim"


@runtime_checkable
class KeyValueStore(Protocol):
    """Read-only ``Section.Key`` lookup."""

    def get_item(self, key: str) -> str | None:
        """Return the raw value for ``key`` or ``None`` when unset."""

        raise NotImplementedError


class MappingKeyValueStore:
    """Key/value store backed by an in-memory mapping."""

    def __init__(self, values: Mapping[str, str] | None = None) -> None:
        self._values = dict(values or {})

    def get_item(self, key: str) -> str | None:
        return self._values.get(key)


class IniKeyValueStore:
    """Key/value store backed by an INI file; a missing file behaves as empty."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._parser = configparser.ConfigParser(interpolation=None, strict=False)
        self._parser.optionxform = str  # type: ignore[assignment,method-assign]
        if path.is_file():
            try:
                with path.open(encoding="utf-8") as handle:
                    self._parser.read_file(handle)
            except (OSError, configparser.Error) as exc:
                raise ConfigError(f"failed to read configuration {path}: {exc}") from exc

    @property
    def path(self) -> Path:
        return self._path

    def get_item(self, key: str) -> str | None:
        section, _, option = key.partition(".")
        if not option:
            raise ConfigError(f"configuration key {key!r} must look like Section.Key")
        return self._parser.get(section, option, fallback=None)


def default_config_path(environ: Mapping[str, str] | None = None) -> Path:
    """Return the client configuration file to read.

    Args:
        environ: Environment to consult; defaults to :data:`os.environ`.

    Returns:
        Path: ``$VECTORCTL_CONFIG`` when set and non-empty, otherwise
        :data:`DEFAULT_CONFIG_PATH`.
    """

    env = os.environ if environ is None else environ
    override = env.get(CONFIG_ENV_VAR)
    return Path(override) if override else DEFAULT_CONFIG_PATH


class BootloaderSettings(BaseModel):
    """Boot-media locations used to stage boot-loader binaries."""

    model_config = ConfigDict(frozen=True)

    efi_root: Path
    certificate_name: str
    efi_executable: str = DEFAULT_EFI_EXECUTABLE
    bootloader_path: str = DEFAULT_BOOTLOADER_PATH
    bootloader_name: str = DEFAULT_BOOTLOADER_NAME
    shim_dir: str = DEFAULT_SHIM_DIR

    @property
    def certificate_path(self) -> Path:
        return self.efi_root / self.certificate_name


class UpgradeSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    root: Path = Path("/")
    package_db: str = FALLBACK_PACKAGE_DB
    bootloader: BootloaderSettings | None = None


def _optional(store: KeyValueStore, key: str) -> str | None:
    value = store.get_item(key)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _required(store: KeyValueStore, key: str) -> str:
    value = _optional(store, key)
    if value is None:
        raise ConfigError(f"config item {key} is not set")
    return value


def load_bootloader_settings(store: KeyValueStore) -> BootloaderSettings:
    """Read the boot-media keys of the ``Imager`` section.

    Args:
        store: Configuration to read from.

    Returns:
        BootloaderSettings: Locations with defaults filled in for the
        optional executable and boot-loader keys.

    Raises:
        ConfigError: When ``Imager.EfiRoot`` or the certificate name is unset.
    """

    return BootloaderSettings(
        efi_root=Path(_required(store, KEY_EFI_ROOT)),
        certificate_name=_required(store, KEY_EFI_CERTIFICATE),
        efi_executable=_optional(store, KEY_EFI_EXECUTABLE) or DEFAULT_EFI_EXECUTABLE,
        bootloader_path=_optional(store, KEY_BOOTLOADER_PATH) or DEFAULT_BOOTLOADER_PATH,
        bootloader_name=_optional(store, KEY_BOOTLOADER_NAME) or DEFAULT_BOOTLOADER_NAME,
    )


def load_upgrade_settings(
    store: KeyValueStore,
    *,
    require_bootloader: bool = False,
    environ: Mapping[str, str] | None = None,
) -> UpgradeSettings:
    """Build :class:`UpgradeSettings` from ``store`` and the environment.

    The ``ROOT`` environment variable takes precedence over ``Ostree.Root``.

    Args:
        store: Configuration to read from.
        require_bootloader: Also load and validate the boot-media keys.
        environ: Environment to consult; defaults to :data:`os.environ`.

    Returns:
        UpgradeSettings: Settings with ``bootloader`` populated only when
        ``require_bootloader`` is set.

    Raises:
        ConfigError: When a required boot-media key is missing.
    """

    env = os.environ if environ is None else environ
    root = env.get(ROOT_ENV_VAR) or _optional(store, KEY_ROOT) or "/"
    return UpgradeSettings(
        root=Path(root),
        package_db=_optional(store, KEY_PACKAGE_DB) or FALLBACK_PACKAGE_DB,
        bootloader=load_bootloader_settings(store) if require_bootloader else None,
    )


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "BootloaderSettings",
    "IniKeyValueStore",
    "KeyValueStore",
    "MappingKeyValueStore",
    "UpgradeSettings",
    "default_config_path",
    "load_bootloader_settings",
    "load_upgrade_settings",
]
