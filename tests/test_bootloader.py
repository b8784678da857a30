# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for boot-loader staging."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pytest

from vectorctl import bootloader as bootloader_module
from vectorctl.bootloader import BootloaderUpdater, PartialInstallError, install_atomically, install_files, sbverify
from vectorctl.config import BootloaderSettings
from vectorctl.errors import DeploymentNotFoundError, SubprocessExecutionError
from vectorctl.ostree.deployments import Deployment, DeploymentStatus
from vectorctl.results import StepOutcome


class FakeStatusReader:
    def __init__(self, sysroot: Path, deployments: Sequence[Deployment]) -> None:
        self.sysroot = sysroot
        self._status = DeploymentStatus(deployments=tuple(deployments))

    def status(self) -> DeploymentStatus:
        return self._status


class RecordingVerifier:
    def __init__(self, rejected: set[Path] | None = None) -> None:
        self.rejected = rejected or set()
        self.calls: list[tuple[Path, Path]] = []

    def __call__(self, certificate: Path, binary: Path) -> None:
        self.calls.append((certificate, binary))
        if binary in self.rejected:
            raise SubprocessExecutionError(["sbverify", str(binary)], 1, None, "bad signature")


def _setup(tmp_path: Path, *, with_grub: bool = True, with_shim: bool = True) -> tuple[BootloaderSettings, Path]:
    efi = tmp_path / "efi"
    for directory in ("EFI/BOOT", "EFI/vector"):
        (efi / directory).mkdir(parents=True)
    (efi / "EFI/BOOT/BOOTX64.EFI").write_bytes(b"old-boot")
    (efi / "EFI/vector/bootx64.efi").write_bytes(b"old-vendor")
    (efi / "EFI/vector/grubx64.efi").write_bytes(b"old-grub")
    (efi / "secureboot.crt").write_bytes(b"cert")

    sysroot = tmp_path / "sysroot"
    rootfs = sysroot / "ostree/deploy/vector/deploy/new.0"
    (rootfs / "usr/lib/grub").mkdir(parents=True)
    if with_grub:
        (rootfs / "usr/lib/grub/grub-x86_64.efi").write_bytes(b"new-grub")
    if with_shim:
        (rootfs / "usr/share/shim").mkdir(parents=True)
        (rootfs / "usr/share/shim/shimx64.efi").write_bytes(b"new-shim")
        (rootfs / "usr/share/shim/mmx64.efi").write_bytes(b"new-mm")
        (rootfs / "usr/share/shim/nested").mkdir()

    settings = BootloaderSettings(efi_root=efi, certificate_name="secureboot.crt")
    return settings, sysroot


def _updater(settings: BootloaderSettings, sysroot: Path, verifier: RecordingVerifier) -> BootloaderUpdater:
    reader = FakeStatusReader(sysroot, [Deployment(checksum="new", stateroot="vector")])
    return BootloaderUpdater(settings, reader, verifier=verifier)


def test_find_boot_files_is_case_insensitive(tmp_path: Path) -> None:
    settings, sysroot = _setup(tmp_path)
    found = _updater(settings, sysroot, RecordingVerifier()).find_boot_files()
    assert [path.relative_to(settings.efi_root).as_posix() for path in found] == [
        "EFI/BOOT/BOOTX64.EFI",
        "EFI/vector/bootx64.efi",
    ]


def test_update_installs_into_every_verified_directory(tmp_path: Path) -> None:
    settings, sysroot = _setup(tmp_path)
    verifier = RecordingVerifier()

    results = _updater(settings, sysroot, verifier).update("new")

    assert [result.outcome for result in results] == [StepOutcome.SUCCESS, StepOutcome.SUCCESS]
    assert all(certificate == settings.certificate_path for certificate, _ in verifier.calls)
    for directory in ("EFI/BOOT", "EFI/vector"):
        target = settings.efi_root / directory
        assert (target / "grubx64.efi").read_bytes() == b"new-grub"
        assert (target / "shimx64.efi").read_bytes() == b"new-shim"
        assert (target / "mmx64.efi").read_bytes() == b"new-mm"
        assert not (target / "nested").exists()


def test_unverified_directory_is_skipped(tmp_path: Path) -> None:
    settings, sysroot = _setup(tmp_path)
    rejected = settings.efi_root / "EFI/vector/bootx64.efi"

    results = _updater(settings, sysroot, RecordingVerifier({rejected})).update("new")

    assert [result.outcome for result in results] == [StepOutcome.WARNING, StepOutcome.SUCCESS]
    assert results[0].subject == str(rejected)
    assert (settings.efi_root / "EFI/vector/grubx64.efi").read_bytes() == b"old-grub"
    assert (settings.efi_root / "EFI/BOOT/grubx64.efi").read_bytes() == b"new-grub"


def test_no_boot_files_is_a_warning(tmp_path: Path) -> None:
    settings = BootloaderSettings(efi_root=tmp_path, certificate_name="secureboot.crt")

    results = _updater(settings, tmp_path, RecordingVerifier()).update("new")

    assert len(results) == 1
    assert results[0].outcome is StepOutcome.WARNING


def test_missing_primary_source_writes_nothing(tmp_path: Path) -> None:
    settings, sysroot = _setup(tmp_path, with_grub=False)

    results = _updater(settings, sysroot, RecordingVerifier()).update("new")

    assert [result.outcome for result in results] == [StepOutcome.FATAL, StepOutcome.FATAL]
    assert (settings.efi_root / "EFI/vector/grubx64.efi").read_bytes() == b"old-grub"
    assert not (settings.efi_root / "EFI/BOOT/shimx64.efi").exists()


def test_missing_shim_directory_is_a_warning(tmp_path: Path) -> None:
    settings, sysroot = _setup(tmp_path, with_shim=False)

    results = _updater(settings, sysroot, RecordingVerifier()).update("new")

    assert [result.outcome for result in results] == [
        StepOutcome.WARNING,
        StepOutcome.SUCCESS,
        StepOutcome.SUCCESS,
    ]
    assert (settings.efi_root / "EFI/BOOT/grubx64.efi").read_bytes() == b"new-grub"


def test_unknown_commit_propagates(tmp_path: Path) -> None:
    settings, sysroot = _setup(tmp_path)
    with pytest.raises(DeploymentNotFoundError):
        _updater(settings, sysroot, RecordingVerifier()).update("other")


def test_install_atomically_replaces_file(tmp_path: Path) -> None:
    source = tmp_path / "source"
    destination = tmp_path / "dest" / "grubx64.efi"
    destination.parent.mkdir()
    source.write_bytes(b"new")
    destination.write_bytes(b"old")

    install_atomically(source, destination)

    assert destination.read_bytes() == b"new"
    assert sorted(path.name for path in destination.parent.iterdir()) == ["grubx64.efi"]


def test_install_atomically_leaves_destination_on_failure(tmp_path: Path) -> None:
    destination = tmp_path / "dest" / "grubx64.efi"
    destination.parent.mkdir()
    destination.write_bytes(b"old")

    with pytest.raises(FileNotFoundError):
        install_atomically(tmp_path / "missing", destination)

    assert destination.read_bytes() == b"old"
    assert sorted(path.name for path in destination.parent.iterdir()) == ["grubx64.efi"]


def test_sbverify_command(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[tuple[tuple[str, ...], dict[str, Any]]] = []

    def fake_run(args: Sequence[str], **kwargs: Any) -> None:
        calls.append((tuple(args), kwargs))

    monkeypatch.setattr(bootloader_module, "run_command", fake_run)

    sbverify(Path("/efi/cert.crt"), Path("/efi/EFI/BOOT/BOOTX64.EFI"))

    assert calls == [
        (("sbverify", "--cert", "/efi/cert.crt", "/efi/EFI/BOOT/BOOTX64.EFI"), {"capture_output": True}),
    ]


def test_blocked_destination_leaves_directory_unchanged(tmp_path: Path) -> None:
    settings, sysroot = _setup(tmp_path)
    (settings.efi_root / "EFI/vector/mmx64.efi").mkdir()

    results = _updater(settings, sysroot, RecordingVerifier()).update("new")

    assert [result.outcome for result in results] == [StepOutcome.SUCCESS, StepOutcome.FATAL]
    assert "left unchanged" in results[1].message
    vendor = settings.efi_root / "EFI/vector"
    assert (vendor / "grubx64.efi").read_bytes() == b"old-grub"
    assert sorted(path.name for path in vendor.iterdir()) == ["bootx64.efi", "grubx64.efi", "mmx64.efi"]


def test_failed_copy_removes_staged_files(tmp_path: Path) -> None:
    target = tmp_path / "boot"
    target.mkdir()
    (target / "grubx64.efi").write_bytes(b"old-grub")
    first = tmp_path / "grub"
    first.write_bytes(b"new-grub")

    with pytest.raises(FileNotFoundError):
        install_files([(first, target / "grubx64.efi"), (tmp_path / "missing", target / "shimx64.efi")])

    assert (target / "grubx64.efi").read_bytes() == b"old-grub"
    assert sorted(path.name for path in target.iterdir()) == ["grubx64.efi"]


def test_failed_rename_reports_partial_install(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    target = tmp_path / "boot"
    target.mkdir()
    sources = []
    for name in ("grubx64.efi", "shimx64.efi"):
        source = tmp_path / name
        source.write_bytes(b"new")
        sources.append((source, target / name))

    real_replace = bootloader_module.os.replace
    calls: list[Path] = []

    def flaky_replace(src: Path, dst: Path) -> None:
        calls.append(Path(dst))
        if len(calls) == 2:
            raise OSError(28, "No space left on device")
        real_replace(src, dst)

    monkeypatch.setattr(bootloader_module.os, "replace", flaky_replace)

    with pytest.raises(PartialInstallError) as excinfo:
        install_files(sources)

    assert excinfo.value.replaced == (target / "grubx64.efi",)
    assert sorted(path.name for path in target.iterdir()) == ["grubx64.efi"]
