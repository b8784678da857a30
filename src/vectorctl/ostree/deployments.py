# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Deployment records derived from ``ostree admin status --json``."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import DeploymentNotFoundError, NoBootedDeploymentError, ParseError
from .runner import OstreeRunner, first_nonempty_line


class Deployment(BaseModel):
    """One bootable deployment as reported by the external tool."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    checksum: str
    stateroot: str
    refspec: str = ""
    booted: bool = False
    pending: bool = False
    rollback: bool = False
    staged: bool = False
    index: int = 0
    serial: int = 0

    @field_validator("checksum")
    @classmethod
    def _require_checksum(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("deployment checksum must not be empty")
        return value

    def rootfs(self, sysroot: Path) -> Path:
        """Return the on-disk root filesystem of this deployment below ``sysroot``."""

        return sysroot / "ostree" / "deploy" / self.stateroot / "deploy" / f"{self.checksum}.{self.serial}"


class DeploymentStatus(BaseModel):
    """Ordered snapshot of every deployment known to the sysroot."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    deployments: tuple[Deployment, ...] = Field(default_factory=tuple)

    def currently_booted(self) -> Deployment:
        for deployment in self.deployments:
            if deployment.booted:
                return deployment
        raise NoBootedDeploymentError

    def find_by_commit(self, checksum: str) -> Deployment:
        for deployment in self.deployments:
            if deployment.checksum == checksum:
                return deployment
        raise DeploymentNotFoundError(checksum)


def parse_status(payload: str) -> DeploymentStatus:
    """Parse the JSON status document into a :class:`DeploymentStatus`."""

    try:
        raw = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise ParseError(f"failed to parse ostree status json: {exc}") from exc
    if not isinstance(raw, dict):
        raise ParseError("ostree status json must be an object")
    try:
        status = DeploymentStatus.model_validate(raw)
    except ValidationError as exc:
        raise ParseError(f"unexpected ostree status layout: {exc}") from exc

    booted = [deployment.checksum for deployment in status.deployments if deployment.booted]
    if len(booted) > 1:
        raise ParseError(f"inconsistent status snapshot, multiple booted deployments: {', '.join(booted)}")
    return status


class StatusReader:
    """Query deployment state and commit ids from a sysroot."""

    def __init__(self, runner: OstreeRunner, sysroot: Path) -> None:
        self._runner = runner
        self._sysroot = sysroot

    @property
    def sysroot(self) -> Path:
        return self._sysroot

    @property
    def repo_dir(self) -> Path:
        return self._sysroot / "ostree" / "repo"

    def status(self) -> DeploymentStatus:
        output = self._runner.run_capture([f"--sysroot={self._sysroot}", "admin", "status", "--json"])
        return parse_status(output)

    def resolve_commit(self, ref: str) -> str:
        """Return the latest local commit id for ``ref``."""

        if not ref:
            raise ValueError("invalid ref parameter")
        output = self._runner.run_capture([f"--repo={self.repo_dir}", "rev-parse", ref])
        commit = first_nonempty_line(output)
        if commit is None:
            raise ParseError(f"no commit found for ref {ref}")
        return commit


__all__ = ["Deployment", "DeploymentStatus", "StatusReader", "parse_status"]
