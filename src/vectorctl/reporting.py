# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Console rendering for upgrade progress, package and configuration changes."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Final

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .etc_merge import EtcChange, EtcChangeAction
from .logging import fail, info, ok, section, warn
from .ostree.deployments import Deployment
from .packages import PackageDiff
from .results import StepOutcome, StepResult
from .runtime.console.manager import detect_tty, get_console_manager
from .text_utils import printable
from .upgrade import UpgradeStage

NO_PACKAGE_CHANGES: Final[str] = "No package changes detected"
NO_ETC_CHANGES: Final[str] = "No configuration changes detected"

_ACTION_STYLES: Final[dict[EtcChangeAction, str]] = {
    EtcChangeAction.ADD: "green",
    EtcChangeAction.UPDATE: "cyan",
    EtcChangeAction.REMOVE: "magenta",
    EtcChangeAction.CONFLICT: "bold red",
    EtcChangeAction.USER_ONLY: "dim",
}

_STAGE_MESSAGES: Final[dict[UpgradeStage, str]] = {
    UpgradeStage.CHECKING: "Checking current deployment...",
    UpgradeStage.FETCHING: "Fetching updates for {detail}...",
    UpgradeStage.UP_TO_DATE: "System is up to date ({detail}).",
    UpgradeStage.UPDATE_AVAILABLE: "Update available: {detail}",
    UpgradeStage.PACKAGE_ANALYSIS: "Analyzing package changes...",
    UpgradeStage.CONFIG_ANALYSIS: "Analyzing configuration changes...",
    UpgradeStage.PRETEND: "Pretend mode: no changes were applied.",
    UpgradeStage.ABORTED: "Upgrade aborted.",
    UpgradeStage.DEPLOYING: "Deploying update...",
    UpgradeStage.BOOTLOADER: "Updating boot-loader binaries from {detail}...",
    UpgradeStage.SUCCESS: "Upgrade deployed ({detail}). Reboot to activate it.",
    UpgradeStage.REBOOTING: "Rebooting...",
}


def _console(use_color: bool) -> Console:
    return get_console_manager().get(color=use_color, emoji=False)


def package_table(diff: PackageDiff) -> Table:
    """Build the package-change table: upgrades first, then additions and removals.

    Args:
        diff: Package difference between the booted and the new commit.

    Returns:
        Table: Two columns, change kind and package atom(s).
    """

    table = Table(title="Package Changes", box=box.SIMPLE, expand=True)
    table.add_column("Change", style="bold")
    table.add_column("Package", overflow="fold")
    for upgrade in diff.upgraded:
        table.add_row(Text("upgrade", style="cyan"), Text(printable(f"{upgrade.old} -> {upgrade.new}")))
    for package in diff.added:
        table.add_row(Text("add", style="green"), Text(printable(package)))
    for package in diff.removed:
        table.add_row(Text("remove", style="red"), Text(printable(package)))
    return table


def etc_table(changes: Sequence[EtcChange]) -> Table:
    """Build the configuration-change table in the order given.

    Args:
        changes: Classified paths relative to the configuration root.

    Returns:
        Table: Action and path per change; conflicts are highlighted.
    """

    table = Table(title="Configuration Changes", box=box.SIMPLE, expand=True)
    table.add_column("Action", style="bold")
    table.add_column("Path", overflow="fold")
    for change in changes:
        table.add_row(Text(change.action.value, style=_ACTION_STYLES[change.action]), Text(printable(change.path)))
    return table


def deployment_table(deployments: Sequence[Deployment]) -> Table:
    """Build the ``vectorctl status`` table, one row per deployment in status order."""

    table = Table(title="Deployments", box=box.SIMPLE, expand=True)
    table.add_column("#", justify="right")
    table.add_column("Stateroot")
    table.add_column("Commit", overflow="fold")
    table.add_column("Refspec", overflow="fold")
    table.add_column("State")
    for position, deployment in enumerate(deployments):
        flags = [
            name
            for name, enabled in (
                ("booted", deployment.booted),
                ("staged", deployment.staged),
                ("pending", deployment.pending),
                ("rollback", deployment.rollback),
            )
            if enabled
        ]
        table.add_row(
            str(position),
            deployment.stateroot,
            f"{deployment.checksum}.{deployment.serial}",
            deployment.refspec or "-",
            ", ".join(flags) or "-",
        )
    return table


def render_packages(diff: PackageDiff, *, use_emoji: bool, use_color: bool | None = None) -> None:
    """Print the package table, or a single line when nothing changed.

    Args:
        diff: Package difference to show.
        use_emoji: Prefix status lines with emoji markers.
        use_color: Force colour on or off; ``None`` follows TTY detection.
    """

    color = detect_tty() if use_color is None else use_color
    if diff.is_empty:
        info(NO_PACKAGE_CHANGES, use_emoji=use_emoji, use_color=color)
        return
    _console(color).print(package_table(diff))


def render_etc_changes(changes: Sequence[EtcChange], *, use_emoji: bool, use_color: bool | None = None) -> None:
    """Print the configuration table and warn when conflicts need manual review.

    Arguments mirror :func:`render_packages`.
    """

    color = detect_tty() if use_color is None else use_color
    if not changes:
        info(NO_ETC_CHANGES, use_emoji=use_emoji, use_color=color)
        return
    _console(color).print(etc_table(changes))
    conflicts = sum(1 for change in changes if change.action is EtcChangeAction.CONFLICT)
    if conflicts:
        warn(f"{conflicts} configuration conflict(s) need manual review", use_emoji=use_emoji, use_color=color)


def render_deployments(deployments: Sequence[Deployment], *, use_color: bool | None = None) -> None:
    """Print :func:`deployment_table` for ``deployments``."""

    color = detect_tty() if use_color is None else use_color
    _console(color).print(deployment_table(deployments))


def render_step_results(results: Sequence[StepResult], *, use_emoji: bool, use_color: bool | None = None) -> None:
    """Print one line per result; warnings and failures go to stderr.

    Args:
        results: Best-effort step results, typically from boot-loader staging.
        use_emoji: Prefix lines with emoji markers.
        use_color: Force colour on or off; ``None`` follows TTY detection.
    """

    for result in results:
        line = f"{result.subject}: {result.message}" if result.message else result.subject
        if result.outcome is StepOutcome.SUCCESS:
            ok(line, use_emoji=use_emoji, use_color=use_color)
        elif result.outcome is StepOutcome.WARNING:
            warn(line, use_emoji=use_emoji, use_color=use_color)
        else:
            fail(line, use_emoji=use_emoji, use_color=use_color)


class ConsoleStageReporter:
    """:class:`~vectorctl.upgrade.StageReporter` printing to the terminal."""

    def __init__(self, *, use_emoji: bool = True, use_color: bool | None = None) -> None:
        self._use_emoji = use_emoji
        self._use_color = detect_tty() if use_color is None else use_color

    def stage(self, stage: UpgradeStage, detail: str = "") -> None:
        if stage is UpgradeStage.CONFIRMATION:
            section("Confirmation", use_color=self._use_color)
            return
        message = _STAGE_MESSAGES[stage].format(detail=detail)
        if stage in {UpgradeStage.UP_TO_DATE, UpgradeStage.SUCCESS}:
            ok(message, use_emoji=self._use_emoji, use_color=self._use_color)
        elif stage is UpgradeStage.ABORTED:
            warn(message, use_emoji=self._use_emoji, use_color=self._use_color)
        else:
            info(message, use_emoji=self._use_emoji, use_color=self._use_color)

    def current_state(self, commit: str, refspec: str) -> None:
        info(f"Booted commit {commit} tracking {refspec}", use_emoji=self._use_emoji, use_color=self._use_color)

    def packages(self, diff: PackageDiff) -> None:
        render_packages(diff, use_emoji=self._use_emoji, use_color=self._use_color)

    def etc_changes(self, changes: Sequence[EtcChange]) -> None:
        render_etc_changes(changes, use_emoji=self._use_emoji, use_color=self._use_color)

    def warning(self, message: str) -> None:
        warn(message, use_emoji=self._use_emoji, use_color=self._use_color)

    def step_results(self, results: Sequence[StepResult]) -> None:
        render_step_results(results, use_emoji=self._use_emoji, use_color=self._use_color)


__all__ = [
    "NO_ETC_CHANGES",
    "NO_PACKAGE_CHANGES",
    "ConsoleStageReporter",
    "deployment_table",
    "etc_table",
    "package_table",
    "render_deployments",
    "render_etc_changes",
    "render_packages",
    "render_step_results",
]
