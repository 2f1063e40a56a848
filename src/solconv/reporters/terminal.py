from __future__ import annotations

from collections import defaultdict
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from solconv import __version__
from solconv.engine.types import CheckReport, FileError, Finding
from solconv.utils import safe_relpath


def render_terminal(report: CheckReport, *, project_root: Path, console: Console, show_details: bool = True) -> None:
    header = Text()
    header.append("solconv ", style="bold")
    header.append(f"v{__version__}", style="dim")
    header.append(" Solidity convention check", style="dim")

    console.print(
        Panel(
            header,
            subtitle=f"Checked {report.files_checked} files",
            border_style="cyan",
        )
    )

    if not show_details:
        _print_summary(report, console=console)
        return

    by_file: dict[str, list[Finding]] = defaultdict(list)
    for finding in report.findings:
        path = finding.location.path
        key = safe_relpath(path, project_root) if path is not None else "<unknown>"
        by_file[key].append(finding)

    for file_path in sorted(by_file):
        console.print(Text(file_path, style="bold"))
        file_lines = _read_lines(project_root / file_path)
        for finding in by_file[file_path]:
            _print_finding(console, finding, file_lines=file_lines)
        console.print()

    if report.errors:
        console.print(Text("Errors", style="bold red"))
        for error in report.errors:
            _print_error(console, error, project_root=project_root)
        console.print()

    _print_summary(report, console=console)


def _print_finding(console: Console, finding: Finding, *, file_lines: list[str]) -> None:
    location = finding.location
    loc = ""
    if location.start_line is not None:
        loc = f"{location.start_line}"
        if location.start_col is not None:
            loc += f":{location.start_col}"

    line = Text()
    line.append("  ✖ ", style="bold red")
    line.append(finding.rule_id, style="bold")
    if loc:
        line.append(f"  ({loc})", style="dim")
    line.append(f"  {finding.message}")
    console.print(line)

    if location.start_line is not None:
        idx = location.start_line - 1
        if 0 <= idx < len(file_lines):
            console.print(f"     {location.start_line:>4} │ {file_lines[idx].rstrip()}", style="dim")


def _print_error(console: Console, error: FileError, *, project_root: Path) -> None:
    line = Text()
    line.append("  ✖ ", style="bold red")
    line.append(safe_relpath(error.path, project_root), style="bold")
    if error.line is not None:
        line.append(f":{error.line}", style="dim")
    line.append(f"  {error.kind} error: {error.message}")
    console.print(line)


def _print_summary(report: CheckReport, *, console: Console) -> None:
    console.print(Text("─" * 60, style="dim"))
    if report.ok:
        console.print(Text("No convention violations found.", style="bold green"))
    else:
        console.print(
            Text(
                f"Findings: {report.total}  Errors: {len(report.errors)}",
                style="bold red",
            )
        )
    if report.counts:
        breakdown = " ".join(f"{rule_id}={count}" for rule_id, count in report.counts.items())
        console.print(Text(f"By rule: {breakdown}", style="dim"))
    console.print(Text("─" * 60, style="dim"))


def _read_lines(path: Path) -> list[str]:
    try:
        return path.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError:
        return []
