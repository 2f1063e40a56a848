from __future__ import annotations

from pathlib import Path

from solconv.engine.context import FileContext, ProjectContext
from solconv.rules.base import BaseRule
from solconv.scanner import build_file_context

SPDX = "// SPDX-License-Identifier: MIT\n"


def make_file_ctx(project_ctx: ProjectContext, *, relpath: str, content: str) -> FileContext:
    path = project_ctx.project_root / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    ctx = build_file_context(project_ctx, path)
    assert ctx.parse_error is None, ctx.parse_error
    return ctx


def run_rule(rule: BaseRule, ctx: FileContext) -> list[tuple[str, int]]:
    assert rule.applies(ctx)
    return [(f.message, f.line) for f in rule.check_file(ctx)]


def write_files(root: Path, files: dict[str, str]) -> None:
    for relpath, content in files.items():
        path = root / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
