from __future__ import annotations

import fnmatch
import logging
import tomllib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from solconv.utils import safe_relpath

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when a solconv configuration file is invalid."""


RuleId = str

CONFIG_FILENAME = ".solconv"
FOUNDRY_FILENAME = "foundry.toml"
ALL_RULES = "all"

# Keep this list in config (not in rules) so configuration can be validated
# without importing the validators.
# NOTE: Keep in sync with `solconv.rules.registry.builtin_rules()`; a test
# asserts both lists are identical.
RULE_IDS: tuple[RuleId, ...] = (
    "constant",
    "eip712",
    "error",
    "import",
    "script",
    "src",
    "test",
    "variable",
)


@dataclass(frozen=True, slots=True)
class CheckPaths:
    """Source, test and script roots, as POSIX paths relative to the project root."""

    src: str = "src"
    test: str = "test"
    script: str = "script"


@dataclass(frozen=True, slots=True)
class OverrideConfig:
    ignored_files: tuple[str, ...] = ()
    overrides: tuple[tuple[str, frozenset[RuleId]], ...] = ()
    config_dir: Path | None = None

    def relative(self, path: Path, *, project_root: Path) -> str:
        """`path` as a POSIX path relative to the directory holding the config file."""

        return safe_relpath(path, self.config_dir or project_root)

    def is_file_ignored(self, rel: str) -> bool:
        return any(glob_matches(pattern, rel) for pattern in self.ignored_files)

    def ignored_rules(self, rel: str) -> frozenset[RuleId]:
        rules: set[RuleId] = set()
        for pattern, pattern_rules in self.overrides:
            if glob_matches(pattern, rel):
                rules.update(pattern_rules)
        return frozenset(rules)

    def patterns(self) -> tuple[str, ...]:
        return self.ignored_files + tuple(pattern for pattern, _ in self.overrides)


@dataclass(frozen=True, slots=True)
class SolconvConfig:
    overrides: OverrideConfig = field(default_factory=OverrideConfig)
    paths: CheckPaths = field(default_factory=CheckPaths)
    config_path: Path | None = None


def load_config(project_root: Path | str = ".", *, config_path: Path | None = None) -> SolconvConfig:
    """
    Load the override configuration and path layout for `project_root`.

    The `.solconv` file is taken from `config_path` when given, otherwise it is
    searched for in `project_root` and its parents. A missing file yields the
    defaults; an invalid one raises `ConfigError`.
    """

    root = Path(project_root)
    if config_path is not None:
        if not config_path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")
        found: Path | None = config_path
    else:
        found = find_config_file(root)

    data: dict[str, Any] = {}
    if found is not None:
        data = _read_toml(found)
        logger.debug("loaded config from %s", found)

    overrides = _parse_ignore_table(data.get("ignore"), config_dir=found.parent.resolve() if found else None)
    paths = load_check_paths(root, check_table=data.get("check"))
    return SolconvConfig(overrides=overrides, paths=paths, config_path=found)


def find_config_file(start: Path) -> Path | None:
    try:
        current = start.resolve()
    except OSError:
        current = start
    for candidate in [current, *current.parents]:
        path = candidate / CONFIG_FILENAME
        if path.is_file():
            return path
    return None


def load_check_paths(project_root: Path, *, check_table: Any = None) -> CheckPaths:
    """
    Resolve the src/test/script roots.

    Precedence per key: `[check]` in `.solconv`, `[check]` in `foundry.toml`,
    `[profile.default]` in `foundry.toml`, root-level keys in `foundry.toml`,
    then the Foundry defaults.
    """

    foundry: dict[str, Any] = {}
    foundry_path = project_root / FOUNDRY_FILENAME
    if foundry_path.is_file():
        try:
            foundry = tomllib.loads(foundry_path.read_text(encoding="utf-8"))
        except (tomllib.TOMLDecodeError, OSError) as exc:
            logger.warning("ignoring unreadable %s: %s", foundry_path, exc)
            foundry = {}

    if check_table is not None and not isinstance(check_table, dict):
        raise ConfigError("`check` must be a table.")
    solconv_check = check_table or {}
    foundry_check = foundry.get("check") if isinstance(foundry.get("check"), dict) else {}
    profile = foundry.get("profile", {})
    default_profile = profile.get("default", {}) if isinstance(profile, dict) else {}
    if not isinstance(default_profile, dict):
        default_profile = {}

    def resolve(key: str, fallback: str) -> str:
        for table, name in (
            (solconv_check, f"{key}_path"),
            (foundry_check, f"{key}_path"),
            (default_profile, key),
            (foundry, key),
        ):
            value = table.get(name)
            if value is None:
                continue
            if not isinstance(value, str):
                raise ConfigError(f"`{name}` must be a string path.")
            return normalize_dir(value)
        return fallback

    return CheckPaths(src=resolve("src", "src"), test=resolve("test", "test"), script=resolve("script", "script"))


def normalize_dir(value: str) -> str:
    normalized = value.strip().replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.rstrip("/") or "."


def glob_matches(pattern: str, rel_posix: str) -> bool:
    """
    Match a project-relative POSIX path against an ignore/override pattern.

    - "test/" matches every path under that directory prefix.
    - "**/" matches zero or more directories.
    - Patterns without a slash also match the basename.
    """

    normalized = pattern.strip().replace("\\", "/")
    if normalized.startswith("./"):
        normalized = normalized[2:]
    if not normalized:
        return False

    if normalized.endswith("/"):
        return rel_posix.startswith(normalized)

    candidates = {normalized, normalized.replace("**/", "")}
    if any(fnmatch.fnmatchcase(rel_posix, candidate) for candidate in candidates):
        return True
    if "/" not in normalized:
        return fnmatch.fnmatchcase(rel_posix.rsplit("/", 1)[-1], normalized)
    return False


def warn_unmatched_patterns(config: SolconvConfig, files: Iterable[Path], *, project_root: Path) -> list[str]:
    """Log (and return) configured patterns that match none of `files`."""

    base = config.overrides.config_dir or project_root
    rel_paths = [safe_relpath(path, base) for path in files]
    unmatched: list[str] = []
    for pattern in config.overrides.patterns():
        if not any(glob_matches(pattern, rel) for rel in rel_paths):
            unmatched.append(pattern)
            logger.warning("config pattern matches no files: %s", pattern)
    return unmatched


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc


def _parse_ignore_table(value: Any, *, config_dir: Path | None) -> OverrideConfig:
    if value is None:
        return OverrideConfig(config_dir=config_dir)
    if not isinstance(value, dict):
        raise ConfigError("`ignore` must be a table.")

    files = _validate_str_list(value.get("files"), field_name="ignore.files")
    overrides = _parse_overrides(value.get("overrides"))

    unknown_keys = set(value) - {"files", "overrides"}
    for key in sorted(unknown_keys):
        logger.warning("unknown key in `ignore` table: %s", key)

    return OverrideConfig(ignored_files=files, overrides=overrides, config_dir=config_dir)


def _parse_overrides(value: Any) -> tuple[tuple[str, frozenset[RuleId]], ...]:
    if value is None:
        return ()
    if not isinstance(value, Mapping):
        raise ConfigError("`ignore.overrides` must be a table.")

    parsed: list[tuple[str, frozenset[RuleId]]] = []
    for pattern, rules in value.items():
        field_name = f"ignore.overrides.{pattern!r}"
        if not isinstance(rules, list):
            raise ConfigError(f"`{field_name}` must be a list of rule names.")
        names: set[RuleId] = set()
        for rule in rules:
            if not isinstance(rule, str):
                raise ConfigError(f"`{field_name}` rule names must be strings.")
            names.add(_validate_rule_name(rule, field_name=field_name))
        parsed.append((pattern, frozenset(names)))
    return tuple(parsed)


def _validate_rule_name(value: str, *, field_name: str) -> RuleId:
    normalized = value.strip().lower()
    if normalized == ALL_RULES or normalized in RULE_IDS:
        return normalized
    valid = ", ".join((ALL_RULES, *RULE_IDS))
    raise ConfigError(f"`{field_name}` contains unknown rule: {value!r}. (valid: {valid})")


def _validate_str_list(value: Any, *, field_name: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or any(not isinstance(v, str) for v in value):
        raise ConfigError(f"`{field_name}` must be a list of strings.")
    return tuple(v.strip() for v in value)
