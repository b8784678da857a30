# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Exception hierarchy shared by the deployment client."""

from __future__ import annotations

from collections.abc import Sequence


class VectorError(Exception):
    """Base class for every failure surfaced by vectorctl."""


class ConfigError(VectorError):
    """Raised when a required configuration key is missing or empty."""


class ParseError(VectorError):
    """Raised when ostree output cannot be parsed into structured data."""


class StateError(VectorError):
    """Raised when the deployment store is not in the state an operation requires."""


class NoBootedDeploymentError(StateError):
    """Raised when the status snapshot contains no booted deployment."""

    def __init__(self) -> None:
        super().__init__("no booted deployment found")


class DeploymentNotFoundError(StateError):
    """Raised when no deployment matches a known commit checksum."""

    def __init__(self, checksum: str) -> None:
        super().__init__(f"no deployment found for commit {checksum}")
        self.checksum = checksum


class SubprocessExecutionError(VectorError):
    """Raised when a subprocess cannot be spawned or exits with a non-zero status."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        stdout: str | None,
        stderr: str | None,
    ) -> None:
        super().__init__(
            f"Command '{' '.join(command)}' exited with status {returncode}. stderr: {stderr or '<none>'}",
        )
        self.command = tuple(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


__all__ = [
    "ConfigError",
    "DeploymentNotFoundError",
    "NoBootedDeploymentError",
    "ParseError",
    "StateError",
    "SubprocessExecutionError",
    "VectorError",
]
