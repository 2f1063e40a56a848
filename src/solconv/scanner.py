from __future__ import annotations

import logging
import os
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from pathlib import Path

from solconv.config import CONFIG_FILENAME, FOUNDRY_FILENAME, SolconvConfig, load_config
from solconv.engine.context import FileContext, ProjectContext
from solconv.engine.parser import parse_source
from solconv.engine.types import ParseError
from solconv.filekinds import SOLIDITY_SUFFIX, classify
from solconv.utils import safe_relpath

logger = logging.getLogger(__name__)

DEFAULT_SKIP_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".idea",
    ".vscode",
    "node_modules",
    "lib",
    "out",
    "cache",
    "broadcast",
    "artifacts",
}

SOLCONV_WORKERS_ENV = "SOLCONV_WORKERS"
DEFAULT_MAX_WORKERS = 32


@dataclass(frozen=True, slots=True)
class ScanTarget:
    project_root: Path
    scan_path: Path
    config: SolconvConfig


def resolve_worker_count(
    raw_value: str | None,
    *,
    default: int | None = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> int:
    """
    Resolve a safe worker count from an env var-style string.

    - None/""/"auto" fall back to the default
    - Values <= 0 fall back to the default
    - Values above `max_workers` are clamped
    """

    cpu = os.cpu_count() or 1
    resolved_default = max(1, default if default is not None else cpu)
    if raw_value is None:
        return min(resolved_default, max_workers)

    normalized = raw_value.strip().lower()
    if not normalized or normalized in {"auto", "default"}:
        return min(resolved_default, max_workers)

    try:
        workers = int(normalized)
    except ValueError:
        logger.warning("ignoring invalid %s value: %r", SOLCONV_WORKERS_ENV, raw_value)
        return min(resolved_default, max_workers)

    if workers <= 0:
        return min(resolved_default, max_workers)
    return min(workers, max_workers)


def worker_count_from_env(*, default: int | None = None) -> int:
    return resolve_worker_count(os.environ.get(SOLCONV_WORKERS_ENV), default=default)


def prepare_target(scan_path: Path, *, config_path: Path | None = None) -> ScanTarget:
    """
    Resolve the project root and load its configuration.

    The project root is the closest directory (at or above `scan_path`) holding
    a `foundry.toml` or `.solconv` file, else the scanned directory itself.
    Raises `ConfigError` for an invalid config file.
    """

    scan_path = scan_path.resolve()
    project_root = _detect_project_root(scan_path)
    config = load_config(project_root, config_path=config_path)
    return ScanTarget(project_root=project_root, scan_path=scan_path, config=config)


def discover_files(target: ScanTarget) -> list[Path]:
    """All Solidity files under the scan path, before the config's ignore list is applied."""

    scan_path = target.scan_path
    if scan_path.is_file():
        return [scan_path] if scan_path.name.endswith(SOLIDITY_SUFFIX) else []

    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(scan_path, topdown=True):
        dirnames[:] = [d for d in dirnames if d not in DEFAULT_SKIP_DIRS]
        base = Path(dirpath)
        for filename in filenames:
            if filename.endswith(SOLIDITY_SUFFIX):
                files.append(base / filename)

    return sorted(set(files))


def build_project_context(target: ScanTarget, files: list[Path]) -> ProjectContext:
    return ProjectContext(
        project_root=target.project_root,
        scan_path=target.scan_path,
        files=tuple(files),
        config=target.config,
    )


def build_file_context(project: ProjectContext, path: Path) -> FileContext:
    relative_path = safe_relpath(path, project.project_root)
    kind = classify(relative_path, project.config.paths)
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.warning("could not read %s: %s", path, exc)
        return FileContext(
            project_root=project.project_root,
            path=path,
            relative_path=relative_path,
            kind=kind,
            text="",
            lines=(),
            parse_error=ParseError(message=f"could not read file: {exc}"),
        )

    return build_file_context_from_text(project, path, text)


def build_file_context_from_text(project: ProjectContext, path: Path, text: str) -> FileContext:
    relative_path = safe_relpath(path, project.project_root)
    parsed = parse_source(text)
    return FileContext(
        project_root=project.project_root,
        path=path,
        relative_path=relative_path,
        kind=classify(relative_path, project.config.paths),
        text=text,
        lines=tuple(text.splitlines()),
        items=parsed.items,
        comments=parsed.comments,
        parse_error=parsed.error,
    )


def build_file_contexts(
    project: ProjectContext,
    paths: list[Path],
    *,
    workers: int = 1,
    on_path_done: Callable[[Path], None] | None = None,
) -> list[FileContext]:
    """
    Read and parse `paths`, optionally in parallel.

    Ordering is deterministic: returned contexts follow the input `paths` order.
    """

    contexts: list[FileContext] = []
    if workers <= 1 or len(paths) <= 1:
        for path in paths:
            contexts.append(build_file_context(project, path))
            if on_path_done is not None:
                on_path_done(path)
        return contexts

    max_workers = min(max(1, workers), len(paths))
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        build_ctx = partial(build_file_context, project)
        for path, ctx in zip(paths, executor.map(build_ctx, paths), strict=True):
            contexts.append(ctx)
            if on_path_done is not None:
                on_path_done(path)
    return contexts


def _detect_project_root(start: Path) -> Path:
    base = start if start.is_dir() else start.parent
    for candidate in [base, *base.parents]:
        if (candidate / FOUNDRY_FILENAME).is_file() or (candidate / CONFIG_FILENAME).is_file():
            return candidate
    return base
