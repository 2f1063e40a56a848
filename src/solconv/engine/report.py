from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from types import MappingProxyType

from solconv.engine.types import CheckReport, FileError, FileResult, Finding


def build_report(results: Iterable[FileResult], files_checked: int) -> CheckReport:
    """Merge per-file results into one report with a deterministic finding order."""

    findings: list[Finding] = []
    errors: list[FileError] = []
    for result in results:
        findings.extend(result.findings)
        errors.extend(result.errors)

    findings.sort(key=_finding_sort_key)
    errors.sort(key=lambda e: (e.path.as_posix(), e.line or 0, e.kind))

    counter = Counter(f.rule_id for f in findings)
    counts = MappingProxyType({rule_id: counter[rule_id] for rule_id in sorted(counter)})
    return CheckReport(files_checked=files_checked, findings=tuple(findings), errors=tuple(errors), counts=counts)


def _finding_sort_key(finding: Finding) -> tuple[str, int, str, int]:
    location = finding.location
    path = location.path.as_posix() if location.path is not None else ""
    return (path, location.start_line or 0, finding.rule_id, location.start_col or 0)
