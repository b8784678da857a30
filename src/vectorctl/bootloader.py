# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Stage boot-loader binaries from a freshly deployed commit onto boot media."""

from __future__ import annotations

import errno
import logging
import os
import shutil
import tempfile
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Final, Protocol

from .config import BootloaderSettings
from .errors import SubprocessExecutionError
from .ostree.deployments import DeploymentStatus
from .process_utils import run_command
from .results import StepResult

LOGGER = logging.getLogger(__name__)

SBVERIFY_BINARY: Final[str] = "sbverify"

SignatureVerifier = Callable[[Path, Path], None]


class DeploymentLocator(Protocol):
    """Status access needed to find the rootfs of a deployed commit."""

    @property
    def sysroot(self) -> Path: ...

    def status(self) -> DeploymentStatus: ...


class PartialInstallError(OSError):
    """Raised when some destinations were already replaced before a failure."""

    def __init__(self, replaced: Sequence[Path], cause: OSError) -> None:
        names = ", ".join(path.name for path in replaced)
        super().__init__(cause.errno, f"replaced {names} before failing: {cause}")
        self.replaced = tuple(replaced)


def sbverify(certificate: Path, binary: Path) -> None:
    """Verify ``binary`` against ``certificate``; raises on failure."""

    run_command([SBVERIFY_BINARY, "--cert", str(certificate), str(binary)], capture_output=True)


def _copy_beside(source: Path, destination: Path) -> Path:
    """Copy ``source`` to a hidden temporary file next to ``destination``."""

    fd, tmp_name = tempfile.mkstemp(prefix=f".{destination.name}.", dir=destination.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as out, source.open("rb") as src:
            shutil.copyfileobj(src, out)
            out.flush()
            os.fsync(out.fileno())
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    return tmp_path


def install_files(pairs: Sequence[tuple[Path, Path]]) -> None:
    """Install every ``(source, destination)`` pair or leave all destinations untouched.

    Every source is first copied to a temporary file beside its destination.
    Only once all copies exist are they renamed into place, so a failed
    read or a full disk never leaves the directory with mixed binaries.

    Args:
        pairs: Files to install, in installation order.

    Raises:
        IsADirectoryError: When a destination is an existing directory.
        OSError: When a copy fails; nothing was replaced.
        PartialInstallError: When a rename fails after earlier renames
            succeeded.
    """

    for _, destination in pairs:
        if destination.is_dir() and not destination.is_symlink():
            raise IsADirectoryError(errno.EISDIR, "cannot replace a directory", str(destination))

    staged: list[tuple[Path, Path]] = []
    try:
        for source, destination in pairs:
            staged.append((_copy_beside(source, destination), destination))
    except BaseException:
        for tmp_path, _ in staged:
            tmp_path.unlink(missing_ok=True)
        raise

    replaced: list[Path] = []
    try:
        for tmp_path, destination in staged:
            os.replace(tmp_path, destination)
            replaced.append(destination)
    except OSError as exc:
        for tmp_path, _ in staged[len(replaced) :]:
            tmp_path.unlink(missing_ok=True)
        if replaced:
            raise PartialInstallError(replaced, exc) from exc
        raise


def install_atomically(source: Path, destination: Path) -> None:
    """Replace ``destination`` with ``source`` or leave it untouched on failure."""

    install_files([(source, destination)])


class BootloaderUpdater:
    """Refresh verified boot-loader directories from a deployment's rootfs."""

    def __init__(
        self,
        settings: BootloaderSettings,
        status_reader: DeploymentLocator,
        *,
        verifier: SignatureVerifier | None = None,
    ) -> None:
        self._settings = settings
        self._status_reader = status_reader
        self._verify = verifier or sbverify

    def find_boot_files(self) -> list[Path]:
        """Return files under the boot-media root named like the EFI executable."""

        wanted = self._settings.efi_executable.lower()
        found: list[Path] = []
        for dirpath, dirnames, filenames in os.walk(self._settings.efi_root):
            dirnames.sort()
            found.extend(Path(dirpath) / name for name in sorted(filenames) if name.lower() == wanted)
        return found

    def update(self, commit: str) -> list[StepResult]:
        """Stage binaries of ``commit`` into every verified boot directory.

        Args:
            commit: Checksum of the deployment whose rootfs supplies the binaries.

        Returns:
            list[StepResult]: One result per skipped boot file or missing shim
            directory, then one per staged directory.

        Raises:
            DeploymentNotFoundError: When ``commit`` has no deployment.
        """

        results: list[StepResult] = []
        directories: list[Path] = []
        boot_files = self.find_boot_files()
        if not boot_files:
            results.append(
                StepResult.warning(
                    str(self._settings.efi_root),
                    f"no {self._settings.efi_executable} found under boot media",
                ),
            )
            return results

        for boot_file in boot_files:
            try:
                self._verify(self._settings.certificate_path, boot_file)
            except SubprocessExecutionError as exc:
                LOGGER.debug("signature verification failed for %s: %s", boot_file, exc)
                results.append(StepResult.warning(str(boot_file), "signature verification failed, skipping"))
                continue
            if boot_file.parent not in directories:
                directories.append(boot_file.parent)

        if not directories:
            return results

        deployment = self._status_reader.status().find_by_commit(commit)
        rootfs = deployment.rootfs(self._status_reader.sysroot)
        sources, source_warnings = self._collect_sources(rootfs)
        results.extend(source_warnings)
        for directory in directories:
            results.append(self._stage_directory(directory, sources))
        return results

    def _collect_sources(self, rootfs: Path) -> tuple[list[tuple[Path, str]], list[StepResult]]:
        sources = [(rootfs / self._settings.bootloader_path, self._settings.bootloader_name)]
        warnings: list[StepResult] = []
        shim_dir = rootfs / self._settings.shim_dir
        if shim_dir.is_dir():
            sources.extend(
                (entry, entry.name)
                for entry in sorted(shim_dir.iterdir())
                if entry.is_file() and not entry.is_symlink()
            )
        else:
            warnings.append(StepResult.warning(str(shim_dir), "shim directory missing, skipping shim binaries"))
        return sources, warnings

    def _stage_directory(self, directory: Path, sources: list[tuple[Path, str]]) -> StepResult:
        missing = [str(source) for source, _ in sources if not source.is_file()]
        if missing:
            return StepResult.fatal(
                str(directory),
                f"missing {', '.join(missing)} in new deployment; boot directory left unchanged",
            )
        try:
            install_files([(source, directory / name) for source, name in sources])
        except PartialInstallError as exc:
            return StepResult.fatal(str(directory), f"boot directory partially updated: {exc.strerror}")
        except OSError as exc:
            return StepResult.fatal(
                str(directory),
                f"failed to install boot-loader files ({exc}); boot directory left unchanged",
            )
        names = ", ".join(name for _, name in sources)
        return StepResult.success(str(directory), f"installed {names}")


__all__ = [
    "BootloaderUpdater",
    "DeploymentLocator",
    "PartialInstallError",
    "SignatureVerifier",
    "install_atomically",
    "install_files",
    "sbverify",
]
