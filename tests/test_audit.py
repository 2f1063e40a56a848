from __future__ import annotations

import logging
from pathlib import Path

import pytest
from helpers import SPDX, write_files

from solconv.audit import AuditCallbacks, audit_path
from solconv.config import ConfigError

DIRECTIVES = (
    SPDX
    + """pragma solidity ^0.8.0;

contract Directives {
    // solconv: ignore-next-item
    function internalOne() internal {}

    // solconv: ignore-next-line
    function internalTwo() internal {}

    function internalThree() internal {} // solconv: ignore-line

    // solconv: ignore-start
    function internalFour() internal {}
    function internalFive() internal {}
    // solconv: ignore-end

    function internalSix() internal {}
}
"""
)

COUNTER = (
    SPDX
    + """contract Counter {
    uint256 constant lower = 1;
    function bump() internal {}
}
"""
)


def test_inline_directives_leave_only_unsuppressed_findings(tmp_path: Path) -> None:
    write_files(tmp_path, {"foundry.toml": "", "src/Directives.sol": DIRECTIVES})

    result = audit_path(tmp_path, workers=1)

    findings = result.report.findings
    assert [(f.rule_id, f.line) for f in findings] == [("src", 18)]
    assert "'internalSix'" in findings[0].message
    assert result.report.errors == ()


def test_rule_override_only_silences_named_rule(tmp_path: Path) -> None:
    write_files(
        tmp_path,
        {
            ".solconv": '[ignore.overrides]\n"src/Counter.sol" = ["src"]\n',
            "src/Counter.sol": COUNTER,
        },
    )

    report = audit_path(tmp_path, workers=1).report

    assert [(f.rule_id, f.line) for f in report.findings] == [("constant", 3)]
    assert dict(report.counts) == {"constant": 1}


def test_all_override_silences_every_rule(tmp_path: Path) -> None:
    write_files(
        tmp_path,
        {
            ".solconv": '[ignore.overrides]\n"src/**/*.sol" = ["all"]\n',
            "src/nested/Counter.sol": COUNTER,
        },
    )

    report = audit_path(tmp_path, workers=1).report

    assert report.ok
    assert report.files_checked == 1


def test_ignored_files_are_not_checked(tmp_path: Path) -> None:
    write_files(
        tmp_path,
        {
            ".solconv": '[ignore]\nfiles = ["src/Legacy.sol"]\n',
            "src/Legacy.sol": "contract Legacy {\n",
            "src/Counter.sol": COUNTER,
        },
    )

    result = audit_path(tmp_path, workers=1)

    assert [p.name for p in result.files] == ["Counter.sol"]
    assert result.report.files_checked == 1
    assert result.report.errors == ()


def test_unmatched_config_pattern_is_reported(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    write_files(
        tmp_path,
        {
            ".solconv": '[ignore]\nfiles = ["src/Gone.sol"]\n',
            "src/Counter.sol": COUNTER,
        },
    )

    with caplog.at_level(logging.WARNING, logger="solconv.config"):
        audit_path(tmp_path, workers=1)

    assert "src/Gone.sol" in caplog.text


def test_invalid_config_aborts_before_checking(tmp_path: Path) -> None:
    write_files(
        tmp_path,
        {
            ".solconv": '[ignore.overrides]\n"src/Counter.sol" = ["nonexistent"]\n',
            "src/Counter.sol": COUNTER,
        },
    )

    with pytest.raises(ConfigError, match="unknown rule"):
        audit_path(tmp_path, workers=1)


def test_parse_errors_are_reported_per_file(tmp_path: Path) -> None:
    write_files(
        tmp_path,
        {
            "foundry.toml": "",
            "src/Broken.sol": "contract Broken {\n",
            "src/Counter.sol": COUNTER,
        },
    )

    report = audit_path(tmp_path, workers=1).report

    assert [(e.path.name, e.kind) for e in report.errors] == [("Broken.sol", "parse")]
    assert {f.location.path.name for f in report.findings} == {"Counter.sol"}


def test_dependency_directories_are_skipped(tmp_path: Path) -> None:
    write_files(
        tmp_path,
        {
            "foundry.toml": "",
            "lib/forge-std/src/Test.sol": "contract Test {\n",
            "node_modules/pkg/A.sol": "contract A {\n",
            "out/A.sol/A.json": "{}",
            "src/Counter.sol": COUNTER,
        },
    )

    result = audit_path(tmp_path, workers=1)

    assert [p.name for p in result.files] == ["Counter.sol"]
    assert result.report.errors == ()


def test_callbacks_report_progress(tmp_path: Path) -> None:
    write_files(tmp_path, {"src/A.sol": COUNTER, "src/B.sol": COUNTER, "test/A.t.sol": "contract T {}\n"})

    built: list[Path] = []
    checked: list[Path] = []
    totals: list[int] = []
    callbacks = AuditCallbacks(
        on_context_built=built.append,
        on_file_contexts_ready=totals.append,
        on_file_checked=checked.append,
    )

    result = audit_path(tmp_path, workers=2, callbacks=callbacks)

    assert totals == [3]
    assert sorted(built) == sorted(result.files)
    assert sorted(checked) == sorted(result.files)
