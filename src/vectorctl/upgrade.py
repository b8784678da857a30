# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Upgrade orchestration: fetch, compare, analyze, confirm, deploy.

The workflow is strictly sequential; each step consumes the previous one's
output. Hard failures (status, fetch, commit resolution, deploy) propagate as
:class:`~vectorctl.errors.VectorError`. Analysis failures are downgraded to
warnings, a declined confirmation is a normal termination, and boot-loader
staging reports per-item :class:`~vectorctl.results.StepResult` values.
A requested reboot happens only after a successful deploy.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from enum import Enum
from pathlib import Path
from typing import Final, Protocol

from pydantic import BaseModel, ConfigDict, Field

from .errors import ConfigError, VectorError
from .etc_merge import EtcChange
from .ostree.admin import DeploymentMutator
from .ostree.deployments import Deployment, DeploymentStatus
from .ostree.origin import origin_path, read_origin_refspec
from .packages import PackageDiff, diff_packages
from .process_utils import run_command
from .results import StepResult

LOGGER = logging.getLogger(__name__)

CONFIRM_PROMPT: Final[str] = "Do you want to apply this upgrade? [y/N] "
REBOOT_BINARY: Final[str] = "reboot"
AFFIRMATIVE_ANSWERS: Final[frozenset[str]] = frozenset({"y", "yes"})

Prompter = Callable[[str], str]
Rebooter = Callable[[], None]


class UpgradeStage(Enum):
    CHECKING = "checking"
    FETCHING = "fetching"
    UP_TO_DATE = "up-to-date"
    UPDATE_AVAILABLE = "update-available"
    PACKAGE_ANALYSIS = "package-analysis"
    CONFIG_ANALYSIS = "config-analysis"
    PRETEND = "pretend"
    CONFIRMATION = "confirmation"
    ABORTED = "aborted"
    DEPLOYING = "deploying"
    BOOTLOADER = "bootloader"
    SUCCESS = "success"
    REBOOTING = "rebooting"


class UpgradeStatus(Enum):
    UP_TO_DATE = "up-to-date"
    PRETENDED = "pretended"
    ABORTED = "aborted"
    DEPLOYED = "deployed"


class UpgradeOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    assume_yes: bool = False
    pretend: bool = False
    force: bool = False
    update_bootloader: bool = False
    reboot: bool = False


class UpgradeOutcome(BaseModel):
    """Summary of one orchestrator run."""

    model_config = ConfigDict(frozen=True)

    status: UpgradeStatus
    old_commit: str
    new_commit: str
    refspec: str
    forced: bool = False
    packages: PackageDiff | None = None
    etc_changes: tuple[EtcChange, ...] = Field(default_factory=tuple)
    warnings: tuple[str, ...] = Field(default_factory=tuple)
    bootloader: tuple[StepResult, ...] = Field(default_factory=tuple)
    rebooted: bool = False


class StageReporter(Protocol):
    """Receives progress and findings as the orchestrator advances."""

    def stage(self, stage: UpgradeStage, detail: str = "") -> None: ...

    def current_state(self, commit: str, refspec: str) -> None: ...

    def packages(self, diff: PackageDiff) -> None: ...

    def etc_changes(self, changes: Sequence[EtcChange]) -> None: ...

    def warning(self, message: str) -> None: ...

    def step_results(self, results: Sequence[StepResult]) -> None: ...


class CommitStatusReader(Protocol):
    """Deployment status and ref resolution for one sysroot."""

    @property
    def sysroot(self) -> Path: ...

    def status(self) -> DeploymentStatus: ...

    def resolve_commit(self, ref: str) -> str: ...


class PackageSource(Protocol):
    def list_packages(self, commit: str) -> set[str]: ...


class EtcChangeSource(Protocol):
    def list_changes(self, old_commit: str, new_commit: str) -> list[EtcChange]: ...


class BootloaderStager(Protocol):
    def update(self, commit: str) -> list[StepResult]: ...


def reboot_system() -> None:
    """Ask the init system to reboot the machine."""

    run_command([REBOOT_BINARY])


def tracked_refspec(booted: Deployment, sysroot: Path) -> str:
    """Return the refspec of ``booted``, falling back to its origin file."""

    if booted.refspec:
        return booted.refspec
    path = origin_path(booted, sysroot)
    LOGGER.debug("status reported no refspec, reading %s", path)
    return read_origin_refspec(path)


def read_current_state(status_reader: CommitStatusReader) -> tuple[str, str]:
    """Return the booted commit and the refspec it tracks."""

    booted = status_reader.status().currently_booted()
    return booted.checksum, tracked_refspec(booted, status_reader.sysroot)


class Upgrader:
    """Drive one upgrade through its ordered stages."""

    def __init__(
        self,
        *,
        status_reader: CommitStatusReader,
        mutator: DeploymentMutator,
        package_lister: PackageSource,
        reporter: StageReporter,
        prompter: Prompter,
        etc_differ: EtcChangeSource | None = None,
        bootloader: BootloaderStager | None = None,
        rebooter: Rebooter = reboot_system,
    ) -> None:
        self._status_reader = status_reader
        self._mutator = mutator
        self._package_lister = package_lister
        self._reporter = reporter
        self._prompter = prompter
        self._etc_differ = etc_differ
        self._bootloader = bootloader
        self._rebooter = rebooter

    def run(self, options: UpgradeOptions) -> UpgradeOutcome:
        if options.update_bootloader and self._bootloader is None:
            raise ConfigError("boot-loader update requested but boot media is not configured")

        self._reporter.stage(UpgradeStage.CHECKING)
        old_commit, refspec = read_current_state(self._status_reader)
        self._reporter.current_state(old_commit, refspec)

        self._reporter.stage(UpgradeStage.FETCHING, refspec)
        self._mutator.pull_only()
        new_commit = self._status_reader.resolve_commit(refspec)

        forced = False
        if new_commit == old_commit:
            if not options.force:
                self._reporter.stage(UpgradeStage.UP_TO_DATE, new_commit)
                staged = self._maybe_update_bootloader(options, old_commit)
                return UpgradeOutcome(
                    status=UpgradeStatus.UP_TO_DATE,
                    old_commit=old_commit,
                    new_commit=new_commit,
                    refspec=refspec,
                    bootloader=tuple(staged),
                )
            forced = True
        self._reporter.stage(UpgradeStage.UPDATE_AVAILABLE, f"{new_commit} (forced)" if forced else new_commit)

        warnings: list[str] = []
        packages = self._analyze_packages(old_commit, new_commit, warnings)
        etc_changes = self._analyze_config(old_commit, new_commit, warnings)

        def outcome(
            status: UpgradeStatus,
            bootloader: Sequence[StepResult] = (),
            *,
            rebooted: bool = False,
        ) -> UpgradeOutcome:
            return UpgradeOutcome(
                status=status,
                old_commit=old_commit,
                new_commit=new_commit,
                refspec=refspec,
                forced=forced,
                packages=packages,
                etc_changes=tuple(etc_changes),
                warnings=tuple(warnings),
                bootloader=tuple(bootloader),
                rebooted=rebooted,
            )

        if options.pretend:
            self._reporter.stage(UpgradeStage.PRETEND)
            return outcome(UpgradeStatus.PRETENDED)

        if not options.assume_yes and not self._confirm():
            self._reporter.stage(UpgradeStage.ABORTED)
            return outcome(UpgradeStatus.ABORTED)

        self._reporter.stage(UpgradeStage.DEPLOYING)
        self._mutator.deploy_only()

        staged = self._maybe_update_bootloader(options, new_commit)
        self._reporter.stage(UpgradeStage.SUCCESS, new_commit)
        if options.reboot:
            self._reporter.stage(UpgradeStage.REBOOTING)
            self._rebooter()
        return outcome(UpgradeStatus.DEPLOYED, staged, rebooted=options.reboot)

    def _analyze_packages(self, old_commit: str, new_commit: str, warnings: list[str]) -> PackageDiff | None:
        self._reporter.stage(UpgradeStage.PACKAGE_ANALYSIS)
        try:
            old_packages = self._package_lister.list_packages(old_commit)
            new_packages = self._package_lister.list_packages(new_commit)
        except (VectorError, OSError) as exc:
            self._warn(f"failed to analyze package changes: {exc}", warnings)
            return None
        diff = diff_packages(old_packages, new_packages)
        self._reporter.packages(diff)
        return diff

    def _analyze_config(self, old_commit: str, new_commit: str, warnings: list[str]) -> list[EtcChange]:
        if self._etc_differ is None:
            return []
        self._reporter.stage(UpgradeStage.CONFIG_ANALYSIS)
        try:
            changes = self._etc_differ.list_changes(old_commit, new_commit)
        except (VectorError, OSError) as exc:
            self._warn(f"failed to analyze configuration changes: {exc}", warnings)
            return []
        self._reporter.etc_changes(changes)
        return changes

    def _confirm(self) -> bool:
        self._reporter.stage(UpgradeStage.CONFIRMATION)
        answer = self._prompter(CONFIRM_PROMPT)
        return answer.strip().lower() in AFFIRMATIVE_ANSWERS

    def _maybe_update_bootloader(self, options: UpgradeOptions, commit: str) -> list[StepResult]:
        if not options.update_bootloader or self._bootloader is None:
            return []
        self._reporter.stage(UpgradeStage.BOOTLOADER, commit)
        results = self._bootloader.update(commit)
        self._reporter.step_results(results)
        return results

    def _warn(self, message: str, warnings: list[str]) -> None:
        warnings.append(message)
        self._reporter.warning(message)


__all__ = [
    "AFFIRMATIVE_ANSWERS",
    "CONFIRM_PROMPT",
    "REBOOT_BINARY",
    "BootloaderStager",
    "CommitStatusReader",
    "EtcChangeSource",
    "PackageSource",
    "Prompter",
    "Rebooter",
    "StageReporter",
    "UpgradeOptions",
    "UpgradeOutcome",
    "UpgradeStage",
    "UpgradeStatus",
    "Upgrader",
    "read_current_state",
    "reboot_system",
    "tracked_refspec",
]
