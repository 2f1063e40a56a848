from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest
from helpers import write_files

from solconv.engine.context import ProjectContext
from solconv.scanner import (
    build_file_context,
    discover_files,
    prepare_target,
    resolve_worker_count,
    worker_count_from_env,
)


def test_resolve_worker_count_default_uses_cpu_count(monkeypatch) -> None:
    monkeypatch.setattr(os, "cpu_count", lambda: 4)
    assert resolve_worker_count(None) == 4
    assert resolve_worker_count("auto") == 4
    assert resolve_worker_count("") == 4
    assert resolve_worker_count("0") == 4


def test_resolve_worker_count_default_is_clamped_to_max(monkeypatch) -> None:
    monkeypatch.setattr(os, "cpu_count", lambda: 64)
    assert resolve_worker_count(None) == 32
    assert resolve_worker_count("100") == 32


def test_resolve_worker_count_respects_explicit_values(monkeypatch) -> None:
    monkeypatch.setattr(os, "cpu_count", lambda: 64)
    assert resolve_worker_count(None, default=3) == 3
    assert resolve_worker_count(" 8 ") == 8


def test_resolve_worker_count_warns_on_garbage(monkeypatch, caplog: pytest.LogCaptureFixture) -> None:
    monkeypatch.setattr(os, "cpu_count", lambda: 2)
    with caplog.at_level(logging.WARNING, logger="solconv.scanner"):
        assert resolve_worker_count("many") == 2
    assert "SOLCONV_WORKERS" in caplog.text


def test_worker_count_from_env(monkeypatch) -> None:
    monkeypatch.setenv("SOLCONV_WORKERS", "3")
    assert worker_count_from_env() == 3


def test_prepare_target_prefers_nearest_foundry_project(tmp_path: Path) -> None:
    project_root = tmp_path / "repo"
    nested = project_root / "src" / "tokens"
    nested.mkdir(parents=True)
    (project_root / "foundry.toml").write_text('[profile.default]\nsrc = "contracts"\n', encoding="utf-8")

    target = prepare_target(nested)

    assert target.project_root == project_root.resolve()
    assert target.scan_path == nested.resolve()
    assert target.config.paths.src == "contracts"


def test_prepare_target_accepts_solconv_file_as_root_marker(tmp_path: Path) -> None:
    start = tmp_path / "repo" / "src"
    start.mkdir(parents=True)
    (tmp_path / "repo" / ".solconv").write_text("", encoding="utf-8")

    assert prepare_target(start).project_root == (tmp_path / "repo").resolve()


def test_prepare_target_uses_start_dir_without_markers(tmp_path: Path) -> None:
    start = tmp_path / "repo" / "src"
    start.mkdir(parents=True)

    assert prepare_target(start).project_root == start.resolve()


def test_discover_files_single_file(tmp_path: Path) -> None:
    write_files(tmp_path, {"foundry.toml": "", "src/A.sol": "contract A {}\n", "README.md": "# hi\n"})

    assert discover_files(prepare_target(tmp_path / "src" / "A.sol")) == [(tmp_path / "src" / "A.sol").resolve()]
    assert discover_files(prepare_target(tmp_path / "README.md")) == []


def test_discover_files_is_sorted_and_skips_dependency_dirs(tmp_path: Path) -> None:
    write_files(
        tmp_path,
        {
            "src/b/B.sol": "",
            "src/A.sol": "",
            "lib/dep/C.sol": "",
            "cache/D.sol": "",
            ".git/E.sol": "",
            "script/Deploy.s.sol": "",
        },
    )

    found = discover_files(prepare_target(tmp_path))

    rel = [p.relative_to(tmp_path.resolve()).as_posix() for p in found]
    assert rel == ["script/Deploy.s.sol", "src/A.sol", "src/b/B.sol"]


def test_unreadable_file_becomes_parse_error(project_ctx: ProjectContext, monkeypatch) -> None:
    path = project_ctx.project_root / "src" / "A.sol"
    path.parent.mkdir(parents=True)
    path.write_text("contract A {}\n", encoding="utf-8")

    def _boom(self: Path, *args, **kwargs) -> str:
        raise OSError("permission denied")

    monkeypatch.setattr(Path, "read_text", _boom)
    ctx = build_file_context(project_ctx, path)

    assert ctx.kind == "src"
    assert ctx.items == ()
    assert ctx.parse_error is not None
    assert "permission denied" in ctx.parse_error.message
