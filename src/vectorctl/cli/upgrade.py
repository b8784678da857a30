# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""``vectorctl upgrade``: fetch and deploy the latest commit of the tracked ref."""

from __future__ import annotations

from typing import Annotated

import click
import typer

from ..bootloader import BootloaderUpdater
from ..logging import warn
from ..reporting import ConsoleStageReporter
from ..results import StepOutcome, worst_outcome
from ..upgrade import UpgradeOptions, Upgrader
from ._services import build_services, load_settings
from .shared import ConfigOption, NoEmojiOption, VerboseOption, exit_on_error, require_root


def _prompt(message: str) -> str:
    """Read one answer; end of input counts as an empty answer."""

    try:
        return typer.prompt(message, default="", show_default=False, prompt_suffix="")
    except click.exceptions.Abort:
        return ""


def upgrade_command(
    update_bootloader: Annotated[
        bool,
        typer.Option("--update-bootloader", help="Refresh verified boot-loader binaries on the boot media."),
    ] = False,
    assume_yes: Annotated[
        bool,
        typer.Option("--assume-yes", "-y", help="Deploy without asking for confirmation."),
    ] = False,
    pretend: Annotated[
        bool,
        typer.Option("--pretend", help="Fetch and analyze only; never deploy."),
    ] = False,
    force: Annotated[
        bool,
        typer.Option("--force", help="Redeploy even when already up to date."),
    ] = False,
    reboot: Annotated[
        bool,
        typer.Option("--reboot", help="Reboot after a successful deploy."),
    ] = False,
    verbose: VerboseOption = False,
    config: ConfigOption = None,
    no_emoji: NoEmojiOption = False,
) -> None:
    """Upgrade the system to the latest commit of the booted ref."""

    use_emoji = not no_emoji
    with exit_on_error(use_emoji=use_emoji):
        require_root()
        settings = load_settings(config, require_bootloader=update_bootloader)
        services = build_services(settings, verbose=verbose)
        bootloader = (
            BootloaderUpdater(settings.bootloader, services.status_reader) if settings.bootloader is not None else None
        )
        upgrader = Upgrader(
            status_reader=services.status_reader,
            mutator=services.admin,
            package_lister=services.package_lister(),
            etc_differ=services.etc_differ(),
            reporter=ConsoleStageReporter(use_emoji=use_emoji),
            prompter=_prompt,
            bootloader=bootloader,
        )
        outcome = upgrader.run(
            UpgradeOptions(
                assume_yes=assume_yes,
                pretend=pretend,
                force=force,
                update_bootloader=update_bootloader,
                reboot=reboot,
            ),
        )
    if worst_outcome(outcome.bootloader) is StepOutcome.FATAL:
        warn("Some boot directories were not fully updated; see the messages above.", use_emoji=use_emoji)


def register(app: typer.Typer) -> None:
    app.command("upgrade")(upgrade_command)


__all__ = ["register", "upgrade_command"]
