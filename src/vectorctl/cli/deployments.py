# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""``vectorctl status`` and ``vectorctl switch``."""

from __future__ import annotations

from typing import Annotated

import typer

from ..logging import info, ok
from ..reporting import render_deployments
from ..upgrade import tracked_refspec
from ._services import build_services, load_settings
from .shared import CLIError, ConfigOption, NoEmojiOption, VerboseOption, exit_on_error


def status_command(
    verbose: VerboseOption = False,
    config: ConfigOption = None,
    no_emoji: NoEmojiOption = False,
) -> None:
    """Show every deployment known to the sysroot."""

    use_emoji = not no_emoji
    with exit_on_error(use_emoji=use_emoji):
        services = build_services(load_settings(config), verbose=verbose)
        status = services.status_reader.status()
        render_deployments(status.deployments)
        booted = status.currently_booted()
        refspec = tracked_refspec(booted, services.status_reader.sysroot)
        info(f"Booted {booted.checksum} tracking {refspec}", use_emoji=use_emoji)


def switch_command(
    ref: Annotated[str, typer.Argument(help="Ref to track from now on, e.g. origin:vector/amd64/stable.")],
    verbose: VerboseOption = False,
    config: ConfigOption = None,
    no_emoji: NoEmojiOption = False,
) -> None:
    """Deploy and track a different ref."""

    use_emoji = not no_emoji
    with exit_on_error(use_emoji=use_emoji):
        if not ref.strip():
            raise CLIError("ref must not be empty")
        services = build_services(load_settings(config), verbose=verbose)
        services.admin.switch(ref)
    ok(f"Switched to {ref}. Reboot to activate it.", use_emoji=use_emoji)


def register(app: typer.Typer) -> None:
    app.command("status")(status_command)
    app.command("switch")(switch_command)


__all__ = ["register", "status_command", "switch_command"]
