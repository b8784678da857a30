# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tri-state results for best-effort steps."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from pydantic import BaseModel, ConfigDict


class StepOutcome(Enum):
    SUCCESS = "success"
    WARNING = "warning"
    FATAL = "fatal"


class StepResult(BaseModel):
    """Outcome of one best-effort step; ``subject`` names what it acted on."""

    model_config = ConfigDict(frozen=True)

    outcome: StepOutcome
    subject: str
    message: str = ""

    @classmethod
    def success(cls, subject: str, message: str = "") -> StepResult:
        return cls(outcome=StepOutcome.SUCCESS, subject=subject, message=message)

    @classmethod
    def warning(cls, subject: str, message: str) -> StepResult:
        return cls(outcome=StepOutcome.WARNING, subject=subject, message=message)

    @classmethod
    def fatal(cls, subject: str, message: str) -> StepResult:
        return cls(outcome=StepOutcome.FATAL, subject=subject, message=message)


def worst_outcome(results: Iterable[StepResult]) -> StepOutcome:
    """Return the most severe outcome, ``SUCCESS`` for an empty sequence."""

    outcomes = {result.outcome for result in results}
    if StepOutcome.FATAL in outcomes:
        return StepOutcome.FATAL
    if StepOutcome.WARNING in outcomes:
        return StepOutcome.WARNING
    return StepOutcome.SUCCESS


__all__ = ["StepOutcome", "StepResult", "worst_outcome"]
