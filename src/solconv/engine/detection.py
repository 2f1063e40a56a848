from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from pathlib import Path

from solconv.config import SolconvConfig
from solconv.engine.context import FileContext, ProjectContext
from solconv.engine.filtering import filter_findings
from solconv.engine.types import FileError, FileResult, Finding
from solconv.rules.base import BaseRule
from solconv.rules.registry import builtin_rules
from solconv.suppressions import DirectiveError, SuppressionRegion, resolve_regions

logger = logging.getLogger(__name__)


def detect(
    project: ProjectContext,
    files: Iterable[FileContext],
    *,
    workers: int | None = None,
    rules: Sequence[BaseRule] | None = None,
    on_file_done: Callable[[Path], None] | None = None,
) -> list[FileResult]:
    """
    Check every file and return one result per file, in input order.

    Each file is handled independently; with `workers > 1` files are spread
    over a thread pool and the per-file results are merged afterwards.
    """

    active_rules = tuple(rules) if rules is not None else builtin_rules()
    file_list = list(files)
    effective_workers = workers or 1

    results: list[FileResult] = []
    if effective_workers <= 1 or len(file_list) <= 1:
        for file_ctx in file_list:
            results.append(check_file(project.config, active_rules, file_ctx))
            if on_file_done is not None:
                on_file_done(file_ctx.path)
        return results

    max_workers = min(max(1, effective_workers), len(file_list))
    check = partial(check_file, project.config, active_rules)
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        for file_ctx, result in zip(file_list, executor.map(check, file_list), strict=True):
            results.append(result)
            if on_file_done is not None:
                on_file_done(file_ctx.path)
    return results


def check_file(config: SolconvConfig, rules: Iterable[BaseRule], file_ctx: FileContext) -> FileResult:
    """
    Parse, validate and filter a single file.

    A parse error yields no findings. A directive error keeps the file's
    findings but disables its inline suppressions; only the override config
    still applies.
    """

    if file_ctx.parse_error is not None:
        error = FileError(
            path=file_ctx.path,
            kind="parse",
            message=file_ctx.parse_error.message,
            line=file_ctx.parse_error.line,
        )
        logger.debug("%s: parse error: %s", file_ctx.relative_path, error.message)
        return FileResult(path=file_ctx.path, errors=(error,))

    raw: list[Finding] = []
    for rule in rules:
        if rule.applies(file_ctx):
            raw.extend(rule.check_file(file_ctx))

    errors: tuple[FileError, ...] = ()
    regions: tuple[SuppressionRegion, ...]
    try:
        regions = resolve_regions(file_ctx.comments, file_ctx.items)
    except DirectiveError as exc:
        regions = ()
        errors = (FileError(path=file_ctx.path, kind="directive", message=exc.message, line=exc.line),)
        logger.debug("%s: directive error: %s", file_ctx.relative_path, exc.message)

    overrides = config.overrides
    relative = overrides.relative(file_ctx.path, project_root=file_ctx.project_root)
    findings = filter_findings(raw, regions, overrides, relative)
    return FileResult(path=file_ctx.path, findings=tuple(findings), errors=errors, raw_count=len(raw))
