# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""State-changing ``ostree admin`` operations."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from .runner import OstreeRunner


@runtime_checkable
class DeploymentMutator(Protocol):
    """Fetch, deploy and switch operations against a sysroot."""

    def pull_only(self) -> None:
        raise NotImplementedError

    def deploy_only(self) -> None:
        raise NotImplementedError

    def switch(self, ref: str) -> None:
        raise NotImplementedError


class OstreeAdmin:
    """:class:`DeploymentMutator` backed by ``ostree admin``.

    Atomicity of deploy and switch is owned by the external tool; a failed
    call leaves the previous deployment bootable.
    """

    def __init__(self, runner: OstreeRunner, sysroot: Path) -> None:
        self._runner = runner
        self._sysroot = sysroot

    def _upgrade(self, *extra: str) -> None:
        self._runner.run(["admin", "upgrade", f"--sysroot={self._sysroot}", *extra])

    def pull_only(self) -> None:
        self._upgrade("--pull-only")

    def deploy_only(self) -> None:
        self._upgrade("--deploy-only")

    def switch(self, ref: str) -> None:
        if not ref:
            raise ValueError("invalid ref parameter")
        self._runner.run(["admin", "switch", f"--sysroot={self._sysroot}", ref])


__all__ = ["DeploymentMutator", "OstreeAdmin"]
