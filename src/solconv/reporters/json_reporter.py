from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from solconv import __version__
from solconv.engine.types import CheckReport, FileError, Finding
from solconv.utils import safe_relpath

REPORT_SCHEMA_VERSION = 1


def render_json(report: CheckReport, *, project_root: Path) -> str:
    payload = {
        "schema_version": REPORT_SCHEMA_VERSION,
        "tool": {"name": "solconv", "version": __version__},
        "ok": report.ok,
        "files_checked": report.files_checked,
        "total": report.total,
        "counts": dict(report.counts),
        "findings": [_finding_to_dict(f, project_root=project_root) for f in report.findings],
        "errors": [_error_to_dict(e, project_root=project_root) for e in report.errors],
    }
    return json.dumps(payload, indent=2, sort_keys=False)


def _finding_to_dict(finding: Finding, *, project_root: Path) -> dict[str, Any]:
    loc = finding.location
    return {
        "rule_id": finding.rule_id,
        "message": finding.message,
        "location": {
            "path": safe_relpath(loc.path, project_root) if loc.path is not None else None,
            "start_line": loc.start_line,
            "start_col": loc.start_col,
            "end_line": loc.end_line,
            "end_col": loc.end_col,
        },
    }


def _error_to_dict(error: FileError, *, project_root: Path) -> dict[str, Any]:
    return {
        "path": safe_relpath(error.path, project_root),
        "kind": error.kind,
        "message": error.message,
        "line": error.line,
    }
