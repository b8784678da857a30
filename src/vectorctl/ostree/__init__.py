# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Protocol adapters for the external ``ostree`` tool."""

from __future__ import annotations

from .admin import DeploymentMutator, OstreeAdmin
from .deployments import Deployment, DeploymentStatus, StatusReader, parse_status
from .listing import ContentLister, PathInfo, PathMode, parse_listing, parse_listing_line, parse_mode_string
from .origin import origin_path, read_origin_refspec
from .runner import OstreeCli, OstreeRunner

__all__ = [
    "ContentLister",
    "Deployment",
    "DeploymentMutator",
    "DeploymentStatus",
    "OstreeAdmin",
    "OstreeCli",
    "OstreeRunner",
    "PathInfo",
    "PathMode",
    "StatusReader",
    "origin_path",
    "parse_listing",
    "parse_listing_line",
    "parse_mode_string",
    "parse_status",
    "read_origin_refspec",
]
