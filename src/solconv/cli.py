from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated

import click
import typer
from rich.console import Console
from rich.table import Table

from solconv import __version__
from solconv.audit import AuditCallbacks, AuditResult, audit_files
from solconv.config import ConfigError
from solconv.engine.types import CheckReport
from solconv.logging_utils import configure_logging
from solconv.reporters.json_reporter import render_json
from solconv.reporters.terminal import render_terminal
from solconv.rules.base import ALL_KINDS
from solconv.rules.registry import builtin_rules
from solconv.scanner import discover_files, prepare_target

EXIT_OK = 0
EXIT_FINDINGS = 1
EXIT_ERROR = 2

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="solconv: convention checker for Foundry-style Solidity projects.",
)
console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger(__name__)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def _main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Verbose logs (printed to stderr)."),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Reduce non-essential output."),
    ] = False,
    progress: Annotated[
        bool,
        typer.Option("--progress/--no-progress", help="Show a progress bar for long runs.", show_default=True),
    ] = True,
) -> None:
    """solconv CLI."""

    if verbose and quiet:
        raise typer.BadParameter("Choose at most one: --verbose or --quiet.")
    configure_logging(verbose=verbose, quiet=quiet)
    ctx.obj = {"verbose": verbose, "quiet": quiet, "progress": progress}


def _cli_settings() -> dict[str, bool]:
    ctx = click.get_current_context(silent=True)
    if ctx is None or not isinstance(ctx.obj, dict):
        return {"verbose": False, "quiet": False, "progress": True}
    return {
        "verbose": bool(ctx.obj.get("verbose", False)),
        "quiet": bool(ctx.obj.get("quiet", False)),
        "progress": bool(ctx.obj.get("progress", True)),
    }


def exit_code_for(report: CheckReport) -> int:
    if report.errors:
        return EXIT_ERROR
    if report.findings:
        return EXIT_FINDINGS
    return EXIT_OK


def _audit_with_optional_progress(
    path: Path,
    *,
    config_path: Path | None,
    workers: int | None,
    show_progress: bool,
) -> AuditResult:
    from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeElapsedColumn

    target = prepare_target(path, config_path=config_path)
    files = discover_files(target)
    logger.debug("discovered %d Solidity file(s) under %s", len(files), target.scan_path)

    if not show_progress:
        return audit_files(target, files=files, workers=workers)

    progress = Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=Console(stderr=True),
        transient=True,
    )
    parse_task = progress.add_task("Parse", total=len(files))
    check_task = progress.add_task("Check", total=1)

    def _on_context_built(_path: Path) -> None:
        progress.advance(parse_task, 1)

    def _on_ready(total: int) -> None:
        progress.update(check_task, total=total, completed=0)

    def _on_checked(_path: Path) -> None:
        progress.advance(check_task, 1)

    callbacks = AuditCallbacks(
        on_context_built=_on_context_built,
        on_file_contexts_ready=_on_ready,
        on_file_checked=_on_checked,
    )
    with progress:
        return audit_files(target, files=files, workers=workers, callbacks=callbacks)


@app.command()
def check(
    path: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=True,
            dir_okay=True,
            resolve_path=True,
            help="File or directory to check (default: current directory).",
        ),
    ] = Path("."),
    config_file: Annotated[
        Path | None,
        typer.Option(
            "--config",
            exists=True,
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
            help="Path to a .solconv file (default: searched upward from the project root).",
        ),
    ] = None,
    output_format: Annotated[
        str,
        typer.Option("--format", help="Output format: terminal, json.", show_default=True),
    ] = "terminal",
    workers: Annotated[
        int | None,
        typer.Option("--workers", min=1, help="Number of files checked in parallel (default: SOLCONV_WORKERS or CPU count)."),
    ] = None,
) -> None:
    """
    Check Solidity sources against the project conventions.

    Exit status: 0 when clean, 1 when findings remain, 2 when the
    configuration is invalid or a file could not be parsed.
    """

    normalized = output_format.strip().lower()
    if normalized not in {"terminal", "json"}:
        raise typer.BadParameter("Unsupported format. Use: terminal, json.")

    settings = _cli_settings()
    try:
        result = _audit_with_optional_progress(
            path,
            config_path=config_file,
            workers=workers,
            show_progress=settings["progress"] and not settings["quiet"] and normalized == "terminal",
        )
    except ConfigError as exc:
        err_console.print(f"[bold red]Invalid configuration:[/bold red] {exc}", markup=True, highlight=False)
        raise typer.Exit(code=EXIT_ERROR) from exc

    if normalized == "json":
        typer.echo(render_json(result.report, project_root=result.target.project_root))
    else:
        render_terminal(
            result.report,
            project_root=result.target.project_root,
            console=console,
            show_details=not settings["quiet"],
        )

    code = exit_code_for(result.report)
    if code != EXIT_OK:
        raise typer.Exit(code=code)


@app.command()
def rules(
    output_format: Annotated[
        str,
        typer.Option("--format", help="Output format: terminal, json.", show_default=True),
    ] = "terminal",
) -> None:
    """
    List the built-in rules.
    """

    rows = [
        {
            "rule_id": rule.meta.rule_id,
            "title": rule.meta.title,
            "description": rule.meta.description,
            "applies_to": sorted(rule.meta.applies_to),
        }
        for rule in builtin_rules()
    ]

    normalized = output_format.strip().lower()
    if normalized == "json":
        typer.echo(json.dumps(rows, indent=2, sort_keys=True))
        return
    if normalized != "terminal":
        raise typer.BadParameter("Unsupported format. Use: terminal, json.")

    table = Table(title="solconv rules")
    table.add_column("ID", style="bold")
    table.add_column("Title")
    table.add_column("Files")
    table.add_column("Description")
    for row in rows:
        table.add_row(
            str(row["rule_id"]),
            str(row["title"]),
            "all" if set(row["applies_to"]) == ALL_KINDS else ", ".join(row["applies_to"]),
            str(row["description"]),
        )
    console.print(table)
