from __future__ import annotations

import logging
from pathlib import Path

import pytest

from solconv.config import (
    CheckPaths,
    ConfigError,
    glob_matches,
    load_check_paths,
    load_config,
    warn_unmatched_patterns,
)


def test_load_config_defaults_without_files(tmp_path: Path) -> None:
    config = load_config(tmp_path)
    assert config.config_path is None
    assert config.overrides.ignored_files == ()
    assert config.overrides.overrides == ()
    assert config.paths == CheckPaths()


def test_load_config_reads_ignore_table(tmp_path: Path) -> None:
    (tmp_path / ".solconv").write_text(
        """
[ignore]
files = ["src/legacy/Old.sol"]

[ignore.overrides]
"src/BaseBridgeReceiver.sol" = ["src"]
"test/fuzz/*.sol" = ["ALL", "constant"]
""".lstrip(),
        encoding="utf-8",
    )

    config = load_config(tmp_path)
    assert config.config_path == (tmp_path / ".solconv").resolve()
    overrides = config.overrides
    assert overrides.ignored_files == ("src/legacy/Old.sol",)
    assert overrides.overrides == (
        ("src/BaseBridgeReceiver.sol", frozenset({"src"})),
        ("test/fuzz/*.sol", frozenset({"all", "constant"})),
    )
    assert overrides.is_file_ignored("src/legacy/Old.sol")
    assert overrides.ignored_rules("src/BaseBridgeReceiver.sol") == frozenset({"src"})
    assert overrides.ignored_rules("test/fuzz/Deep.t.sol") == frozenset({"all", "constant"})
    assert overrides.ignored_rules("src/Other.sol") == frozenset()


def test_load_config_searches_parent_directories(tmp_path: Path) -> None:
    (tmp_path / ".solconv").write_text('[ignore]\nfiles = ["x.sol"]\n', encoding="utf-8")
    nested = tmp_path / "packages" / "core"
    nested.mkdir(parents=True)

    config = load_config(nested)
    assert config.config_path == (tmp_path / ".solconv").resolve()
    assert config.overrides.relative(nested / "x.sol", project_root=nested) == "packages/core/x.sol"


def test_load_config_explicit_path_must_exist(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path, config_path=tmp_path / "missing.toml")


@pytest.mark.parametrize(
    ("content", "message"),
    [
        ("[ignore\nfiles = [", "Invalid TOML"),
        ('ignore = "nope"\n', "`ignore` must be a table"),
        ('[ignore]\nfiles = "src/A.sol"\n', "`ignore.files` must be a list of strings"),
        ('[ignore.overrides]\n"src/A.sol" = "src"\n', "must be a list of rule names"),
        ('[ignore.overrides]\n"src/A.sol" = [1]\n', "rule names must be strings"),
        ('[ignore.overrides]\n"src/A.sol" = ["naming"]\n', "unknown rule: 'naming'"),
        ('[check]\nsrc_path = 3\n', "`src_path` must be a string path"),
    ],
)
def test_invalid_config_raises(tmp_path: Path, content: str, message: str) -> None:
    (tmp_path / ".solconv").write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError, match=message):
        load_config(tmp_path)


def test_check_paths_from_foundry_toml(tmp_path: Path) -> None:
    (tmp_path / "foundry.toml").write_text(
        """
[profile.default]
src = "contracts"
test = "./tests/"

[check]
script_path = "deploy"
""".lstrip(),
        encoding="utf-8",
    )
    assert load_check_paths(tmp_path) == CheckPaths(src="contracts", test="tests", script="deploy")


def test_solconv_check_table_wins_over_foundry(tmp_path: Path) -> None:
    (tmp_path / "foundry.toml").write_text('[profile.default]\nsrc = "contracts"\n', encoding="utf-8")
    (tmp_path / ".solconv").write_text('[check]\nsrc_path = "core"\n', encoding="utf-8")
    assert load_config(tmp_path).paths.src == "core"


def test_unreadable_foundry_toml_falls_back_to_defaults(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    (tmp_path / "foundry.toml").write_text("[profile\n", encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="solconv.config"):
        assert load_check_paths(tmp_path) == CheckPaths()
    assert "foundry.toml" in caplog.text


@pytest.mark.parametrize(
    ("pattern", "path", "expected"),
    [
        ("src/A.sol", "src/A.sol", True),
        ("src/*.sol", "src/A.sol", True),
        ("src/*.sol", "src/sub/A.sol", True),
        ("src/**/*.sol", "src/A.sol", True),
        ("src/**/*.sol", "src/a/b/C.sol", True),
        ("test/", "test/unit/A.t.sol", True),
        ("test/", "src/test/A.sol", False),
        ("*.t.sol", "test/unit/A.t.sol", True),
        ("./src/A.sol", "src/A.sol", True),
        ("src/B.sol", "src/A.sol", False),
        ("", "src/A.sol", False),
    ],
)
def test_glob_matches(pattern: str, path: str, expected: bool) -> None:
    assert glob_matches(pattern, path) is expected


def test_warn_unmatched_patterns_logs_each_dead_pattern(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    (tmp_path / ".solconv").write_text(
        '[ignore]\nfiles = ["src/Gone.sol"]\n\n[ignore.overrides]\n"src/A.sol" = ["src"]\n',
        encoding="utf-8",
    )
    config = load_config(tmp_path)
    files = [tmp_path / "src" / "A.sol"]

    with caplog.at_level(logging.WARNING, logger="solconv.config"):
        unmatched = warn_unmatched_patterns(config, files, project_root=tmp_path)

    assert unmatched == ["src/Gone.sol"]
    assert "src/Gone.sol" in caplog.text
    assert "src/A.sol" not in caplog.text
