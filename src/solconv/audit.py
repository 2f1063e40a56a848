from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from solconv.config import warn_unmatched_patterns
from solconv.engine.detection import detect
from solconv.engine.report import build_report
from solconv.engine.types import CheckReport
from solconv.scanner import (
    ScanTarget,
    build_file_contexts,
    build_project_context,
    discover_files,
    prepare_target,
    worker_count_from_env,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AuditResult:
    target: ScanTarget
    files: tuple[Path, ...]
    report: CheckReport


@dataclass(frozen=True, slots=True)
class AuditCallbacks:
    on_context_built: Callable[[Path], None] | None = None
    on_file_contexts_ready: Callable[[int], None] | None = None
    on_file_checked: Callable[[Path], None] | None = None


def audit_path(
    scan_path: Path,
    *,
    config_path: Path | None = None,
    workers: int | None = None,
    callbacks: AuditCallbacks | None = None,
) -> AuditResult:
    """
    Check every Solidity file under `scan_path`.

    Configuration is loaded (and validated) before any file is read, so a
    `ConfigError` aborts the run without partial results.
    """

    target = prepare_target(scan_path, config_path=config_path)
    candidates = discover_files(target)
    return audit_files(target, files=candidates, workers=workers, callbacks=callbacks)


def audit_files(
    target: ScanTarget,
    *,
    files: list[Path],
    workers: int | None = None,
    callbacks: AuditCallbacks | None = None,
) -> AuditResult:
    overrides = target.config.overrides
    warn_unmatched_patterns(target.config, files, project_root=target.project_root)

    checked = [p for p in files if not overrides.is_file_ignored(overrides.relative(p, project_root=target.project_root))]
    skipped = len(files) - len(checked)
    if skipped:
        logger.debug("skipping %d file(s) listed in ignore.files", skipped)

    effective_workers = workers if workers is not None else worker_count_from_env()
    project = build_project_context(target, checked)
    file_contexts = build_file_contexts(
        project,
        checked,
        workers=effective_workers,
        on_path_done=callbacks.on_context_built if callbacks else None,
    )
    if callbacks is not None and callbacks.on_file_contexts_ready is not None:
        callbacks.on_file_contexts_ready(len(file_contexts))

    results = detect(
        project,
        file_contexts,
        workers=effective_workers,
        on_file_done=callbacks.on_file_checked if callbacks else None,
    )
    report = build_report(results, files_checked=len(file_contexts))
    logger.debug(
        "checked %d file(s): %d finding(s), %d error(s)",
        report.files_checked,
        report.total,
        len(report.errors),
    )
    return AuditResult(target=target, files=tuple(checked), report=report)
