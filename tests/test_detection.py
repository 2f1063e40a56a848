from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from helpers import SPDX, make_file_ctx

from solconv.config import OverrideConfig, SolconvConfig
from solconv.engine.context import ProjectContext
from solconv.engine.detection import check_file, detect
from solconv.rules.naming import ConstantNames
from solconv.rules.registry import builtin_rules
from solconv.scanner import build_file_context

UNCLOSED_BLOCK = (
    SPDX
    + """contract A {
    // solconv: ignore-next-line
    function helper() internal {}
    // solconv: ignore-start
}
"""
)


def test_parse_error_yields_no_findings(project_ctx: ProjectContext) -> None:
    path = project_ctx.project_root / "src" / "Broken.sol"
    path.parent.mkdir(parents=True)
    path.write_text("contract Broken {\n    function f() internal {}\n", encoding="utf-8")

    result = check_file(project_ctx.config, builtin_rules(), build_file_context(project_ctx, path))

    assert result.findings == ()
    assert result.raw_count == 0
    assert [(e.kind, e.path) for e in result.errors] == [("parse", path)]


def test_directive_error_disables_inline_suppressions(project_ctx: ProjectContext) -> None:
    ctx = make_file_ctx(project_ctx, relpath="src/A.sol", content=UNCLOSED_BLOCK)

    result = check_file(project_ctx.config, builtin_rules(), ctx)

    assert [(f.rule_id, f.line) for f in result.findings] == [("src", 4)]
    assert len(result.errors) == 1
    error = result.errors[0]
    assert error.kind == "directive"
    assert error.line == 5
    assert error.message == "ignore-start is never closed by ignore-end"


def test_directive_error_keeps_override_filtering(project_ctx: ProjectContext) -> None:
    config = SolconvConfig(overrides=OverrideConfig(overrides=(("src/A.sol", frozenset({"src"})),)))
    project = replace(project_ctx, config=config)
    ctx = make_file_ctx(project, relpath="src/A.sol", content=UNCLOSED_BLOCK)

    result = check_file(config, builtin_rules(), ctx)

    assert result.findings == ()
    assert result.raw_count == 1
    assert [e.kind for e in result.errors] == ["directive"]


def test_only_applicable_rules_run(project_ctx: ProjectContext) -> None:
    ctx = make_file_ctx(
        project_ctx,
        relpath="script/Deploy.s.sol",
        content="contract Deploy {\n    error Oops();\n    function run() public {}\n}\n",
    )
    result = check_file(project_ctx.config, builtin_rules(), ctx)
    assert result.findings == ()


def test_detect_with_explicit_rules(project_ctx: ProjectContext) -> None:
    ctx = make_file_ctx(
        project_ctx,
        relpath="src/A.sol",
        content="contract A {\n    uint256 constant lower = 1;\n    function helper() internal {}\n}\n",
    )
    results = detect(project_ctx, [ctx], rules=[ConstantNames()])
    assert [f.rule_id for f in results[0].findings] == ["constant"]


def test_detect_parallel_matches_serial_and_keeps_order(project_ctx: ProjectContext) -> None:
    contexts = [
        make_file_ctx(
            project_ctx,
            relpath=f"src/F{idx}.sol",
            content=f"contract F{idx} {{\n    function helper{idx}() internal {{}}\n}}\n",
        )
        for idx in range(6)
    ]

    seen: list[Path] = []
    serial = detect(project_ctx, contexts, workers=1)
    parallel = detect(project_ctx, contexts, workers=4, on_file_done=seen.append)

    assert serial == parallel
    assert [r.path for r in parallel] == [c.path for c in contexts]
    assert sorted(seen) == sorted(c.path for c in contexts)
