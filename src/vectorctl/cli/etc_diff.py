# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""``vectorctl etc-diff``: report how an upgrade would affect ``/etc``."""

from __future__ import annotations

from typing import Annotated

import typer

from ..logging import info
from ..reporting import render_etc_changes
from ..upgrade import read_current_state
from ._services import build_services, load_settings
from .shared import ConfigOption, NoEmojiOption, VerboseOption, exit_on_error


def etc_diff_command(
    from_commit: Annotated[
        str | None,
        typer.Option("--from", help="Old commit (defaults to the booted commit)."),
    ] = None,
    to_commit: Annotated[
        str | None,
        typer.Option("--to", help="New commit (defaults to the local head of the tracked ref)."),
    ] = None,
    verbose: VerboseOption = False,
    config: ConfigOption = None,
    no_emoji: NoEmojiOption = False,
) -> None:
    """Three-way compare pristine and live configuration without fetching."""

    use_emoji = not no_emoji
    with exit_on_error(use_emoji=use_emoji):
        services = build_services(load_settings(config), verbose=verbose)
        old_commit, new_commit = from_commit, to_commit
        if old_commit is None or new_commit is None:
            booted_commit, refspec = read_current_state(services.status_reader)
            old_commit = old_commit or booted_commit
            new_commit = new_commit or services.status_reader.resolve_commit(refspec)
        info(f"Comparing {old_commit} -> {new_commit}", use_emoji=use_emoji)
        changes = services.etc_differ().list_changes(old_commit, new_commit)
        render_etc_changes(changes, use_emoji=use_emoji)


def register(app: typer.Typer) -> None:
    app.command("etc-diff")(etc_diff_command)


__all__ = ["etc_diff_command", "register"]
