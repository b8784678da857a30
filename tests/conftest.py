# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from vectorctl.config import CONFIG_ENV_VAR, ROOT_ENV_VAR
from vectorctl.runtime.console.manager import get_console_manager


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep host overrides out of tests and start each one with fresh consoles."""

    monkeypatch.delenv(ROOT_ENV_VAR, raising=False)
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    get_console_manager.cache_clear()
    yield
    get_console_manager.cache_clear()
