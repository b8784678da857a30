# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Read the tracked refspec from a deployment's ``.origin`` keyfile."""

from __future__ import annotations

import configparser
from pathlib import Path
from typing import Final

from ..errors import StateError
from .deployments import Deployment

ORIGIN_SECTION: Final[str] = "origin"
REFSPEC_KEY: Final[str] = "refspec"


def origin_path(deployment: Deployment, sysroot: Path) -> Path:
    """Return the origin file sitting next to the deployment directory."""

    rootfs = deployment.rootfs(sysroot)
    return rootfs.with_name(f"{rootfs.name}.origin")


def read_origin_refspec(path: Path) -> str:
    """Return the ``refspec`` stored in the ``[origin]`` group of ``path``."""

    parser = configparser.ConfigParser(interpolation=None, strict=False, comment_prefixes=("#", ";"))
    try:
        with path.open(encoding="utf-8") as handle:
            parser.read_file(handle)
    except OSError as exc:
        raise StateError(f"failed to open origin file {path}: {exc}") from exc
    except configparser.Error as exc:
        raise StateError(f"failed to parse origin file {path}: {exc}") from exc

    refspec = parser.get(ORIGIN_SECTION, REFSPEC_KEY, fallback="").strip()
    if not refspec:
        raise StateError(f"refspec not found in [{ORIGIN_SECTION}] section of {path}")
    return refspec


__all__ = ["origin_path", "read_origin_refspec"]
