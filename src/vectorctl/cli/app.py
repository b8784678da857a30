# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""CLI application entry point."""

from __future__ import annotations

from . import deployments, etc_diff, upgrade
from .typer_ext import create_typer

app = create_typer(
    name="vectorctl",
    help="Manage atomic OS deployments.",
    no_args_is_help=True,
    add_completion=False,
)

upgrade.register(app)
deployments.register(app)
etc_diff.register(app)

__all__ = ["app"]
