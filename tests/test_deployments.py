# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for deployment status parsing, origin files and admin commands."""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pytest

from vectorctl.errors import DeploymentNotFoundError, NoBootedDeploymentError, ParseError, StateError
from vectorctl.ostree import (
    Deployment,
    DeploymentMutator,
    OstreeAdmin,
    StatusReader,
    origin_path,
    parse_status,
    read_origin_refspec,
)


class RecordingRunner:
    def __init__(self, captures: dict[tuple[str, ...], str] | None = None) -> None:
        self.captures = captures or {}
        self.runs: list[tuple[str, ...]] = []
        self.captured: list[tuple[str, ...]] = []

    def run(self, args: Sequence[str]) -> None:
        self.runs.append(tuple(args))

    def run_capture(self, args: Sequence[str]) -> str:
        self.captured.append(tuple(args))
        return self.captures.get(tuple(args), "")


def _deployment(checksum: str, **fields: Any) -> dict[str, Any]:
    record: dict[str, Any] = {
        "stateroot": "vector",
        "checksum": checksum,
        "refspec": "origin:vector/amd64/stable",
        "booted": False,
        "pending": False,
        "rollback": False,
        "staged": False,
        "index": 0,
        "serial": 0,
    }
    record.update(fields)
    return record


def _status(*deployments: dict[str, Any]) -> str:
    return json.dumps({"deployments": list(deployments)})


def test_parse_status_preserves_order_and_flags() -> None:
    status = parse_status(
        _status(
            _deployment("new", staged=True, pending=True, index=0),
            _deployment("old", booted=True, index=1, serial=2),
        ),
    )
    assert [d.checksum for d in status.deployments] == ["new", "old"]
    assert status.deployments[0].staged and status.deployments[0].pending
    assert status.currently_booted().checksum == "old"
    assert status.currently_booted().serial == 2


def test_parse_status_ignores_unknown_fields() -> None:
    payload = json.dumps(
        {
            "deployments": [_deployment("abc", booted=True, osname="vector", version="2025.1")],
            "transaction": None,
        },
    )
    assert parse_status(payload).currently_booted().checksum == "abc"


def test_missing_refspec_defaults_to_empty() -> None:
    record = _deployment("abc", booted=True)
    del record["refspec"]
    assert parse_status(_status(record)).currently_booted().refspec == ""


@pytest.mark.parametrize(
    "payload",
    [
        "not json",
        "[]",
        json.dumps({"deployments": [{"stateroot": "vector"}]}),
        json.dumps({"deployments": [_deployment("")]}),
        json.dumps({"deployments": "nope"}),
    ],
)
def test_invalid_status_payloads(payload: str) -> None:
    with pytest.raises(ParseError):
        parse_status(payload)


def test_multiple_booted_deployments_are_inconsistent() -> None:
    with pytest.raises(ParseError, match="multiple booted"):
        parse_status(_status(_deployment("a", booted=True), _deployment("b", booted=True)))


def test_no_booted_deployment() -> None:
    status = parse_status(_status(_deployment("a"), _deployment("b")))
    with pytest.raises(NoBootedDeploymentError, match="no booted deployment found"):
        status.currently_booted()


def test_empty_deployment_list() -> None:
    with pytest.raises(NoBootedDeploymentError):
        parse_status(_status()).currently_booted()


def test_find_by_commit() -> None:
    status = parse_status(_status(_deployment("a", booted=True), _deployment("b", index=1)))
    assert status.find_by_commit("b").index == 1
    with pytest.raises(DeploymentNotFoundError) as excinfo:
        status.find_by_commit("zzz")
    assert excinfo.value.checksum == "zzz"
    assert isinstance(excinfo.value, StateError)


def test_rootfs_layout() -> None:
    deployment = Deployment(checksum="abc", stateroot="vector", serial=1)
    assert deployment.rootfs(Path("/sysroot")) == Path("/sysroot/ostree/deploy/vector/deploy/abc.1")


def test_status_reader_queries_sysroot() -> None:
    args = ("--sysroot=/mnt/root", "admin", "status", "--json")
    runner = RecordingRunner({args: _status(_deployment("abc", booted=True))})
    reader = StatusReader(runner, Path("/mnt/root"))

    assert reader.status().currently_booted().checksum == "abc"
    assert runner.captured == [args]
    assert reader.repo_dir == Path("/mnt/root/ostree/repo")


def test_status_is_reread_on_every_query() -> None:
    args = ("--sysroot=/", "admin", "status", "--json")
    runner = RecordingRunner({args: _status(_deployment("abc", booted=True))})
    reader = StatusReader(runner, Path("/"))

    reader.status()
    reader.status()

    assert runner.captured == [args, args]


def test_resolve_commit_returns_first_line() -> None:
    args = ("--repo=/ostree/repo", "rev-parse", "origin:vector/amd64/stable")
    runner = RecordingRunner({args: "\n0123abcd\n"})
    assert StatusReader(runner, Path("/")).resolve_commit("origin:vector/amd64/stable") == "0123abcd"


def test_resolve_commit_rejects_empty_output() -> None:
    reader = StatusReader(RecordingRunner(), Path("/"))
    with pytest.raises(ParseError):
        reader.resolve_commit("vector/stable")


def test_resolve_commit_requires_ref() -> None:
    with pytest.raises(ValueError):
        StatusReader(RecordingRunner(), Path("/")).resolve_commit("")


def test_origin_file_sits_next_to_deployment(tmp_path: Path) -> None:
    deployment = Deployment(checksum="abc", stateroot="vector", serial=0)
    assert origin_path(deployment, tmp_path) == tmp_path / "ostree/deploy/vector/deploy/abc.0.origin"


def test_read_origin_refspec(tmp_path: Path) -> None:
    origin = tmp_path / "abc.0.origin"
    origin.write_text("[origin]\nrefspec=origin:vector/amd64/dev\n", encoding="utf-8")
    assert read_origin_refspec(origin) == "origin:vector/amd64/dev"


@pytest.mark.parametrize(
    "content",
    ["[origin]\n", "[other]\nrefspec=x\n", "refspec=x\n", "[origin]\nrefspec=\n"],
)
def test_read_origin_refspec_failures(tmp_path: Path, content: str) -> None:
    origin = tmp_path / "abc.0.origin"
    origin.write_text(content, encoding="utf-8")
    with pytest.raises(StateError):
        read_origin_refspec(origin)


def test_read_origin_refspec_missing_file(tmp_path: Path) -> None:
    with pytest.raises(StateError):
        read_origin_refspec(tmp_path / "missing.origin")


def test_admin_commands() -> None:
    runner = RecordingRunner()
    admin = OstreeAdmin(runner, Path("/"))
    assert isinstance(admin, DeploymentMutator)

    admin.pull_only()
    admin.deploy_only()
    admin.switch("origin:vector/amd64/dev")

    assert runner.runs == [
        ("admin", "upgrade", "--sysroot=/", "--pull-only"),
        ("admin", "upgrade", "--sysroot=/", "--deploy-only"),
        ("admin", "switch", "--sysroot=/", "origin:vector/amd64/dev"),
    ]


def test_switch_requires_ref() -> None:
    with pytest.raises(ValueError):
        OstreeAdmin(RecordingRunner(), Path("/")).switch("")
