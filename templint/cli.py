"""Typer-based CLI for templint."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Tuple

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import TEMPLATE_EXTENSIONS
from .config_manager import load_config
from .corrector import correction_diff
from .errors import ConfigError, DocumentParseError
from .linter import LINTERS
from .models import Offense
from .parser import Document
from .runner import Runner

console = Console()

app = typer.Typer(
    help="🔍 templint — lint and autocorrect Ruby embedded in ERB templates.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"templint v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    """templint: find unsafe and unidiomatic Ruby in ERB templates."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _collect_files(paths: List[Path]) -> List[Path]:
    files: List[Path] = []
    for path in paths:
        if path.is_dir():
            files.extend(
                sorted(p for p in path.rglob("*") if p.is_file() and p.suffix in TEMPLATE_EXTENSIONS)
            )
        else:
            files.append(path)
    return files


def _render(filename: str, rows: List[Tuple[Document, Offense, str]]) -> Table:
    table = Table(title=filename, show_lines=False)
    table.add_column("Location", style="cyan", no_wrap=True)
    table.add_column("Linter")
    table.add_column("Severity")
    table.add_column("Message")
    for document, offense, status in rows:
        line, column = document.position(offense.range.begin_pos)
        rule = f"{offense.linter}/{offense.rule}" if offense.rule else offense.linter
        message = f"{offense.message} {status}".strip()
        table.add_row(f"{line}:{column}", rule, offense.severity, message)
    return table


@app.command("check")
def check(
    paths: List[Path] = typer.Argument(..., exists=True, help="Templates or directories to lint."),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to a .templint.toml file."),
    autocorrect: bool = typer.Option(False, "--autocorrect", "-a", help="Correct offenses in place."),
    show_diff: bool = typer.Option(False, "--diff", help="Print corrections as a diff instead of writing files."),
):
    """Lint templates and optionally apply automatic corrections."""
    try:
        runner = Runner.from_config(load_config(config_path))
    except ConfigError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(2)

    files = _collect_files(paths)
    remaining = 0
    failed = False
    for path in files:
        try:
            document = Document.from_file(path)
        except DocumentParseError as exc:
            console.print(f"[red]Parse error:[/red] {exc}")
            failed = True
            continue

        rows: List[Tuple[Document, Offense, str]] = []
        if autocorrect or show_diff:
            report = runner.autocorrect(document)
            for corrected_in, corrected in report.corrections:
                rows.extend((corrected_in, o, "[green]corrected[/green]") for o in corrected)
            offenses, final = report.offenses, report.document
            if report.text != document.text:
                if show_diff:
                    console.print(correction_diff(document.text, report.text, str(path)), markup=False)
                else:
                    path.write_text(report.text, encoding="utf-8")
        else:
            offenses, final = runner.run(document), document
        rows.extend((final, o, "") for o in offenses)

        remaining += len(offenses)
        if rows:
            console.print(_render(document.filename, rows))

    if remaining:
        console.print(f"\n[yellow]{remaining} offense(s) in {len(files)} file(s)[/yellow]")
    else:
        console.print(f"[green]✅ No offenses in {len(files)} file(s)[/green]")
    if failed or remaining:
        raise typer.Exit(1)


@app.command("linters")
def list_linters():
    """List the available linters."""
    table = Table(title="Linters")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    for name, cls in sorted(LINTERS.items()):
        table.add_row(name, (cls.__doc__ or "").strip().splitlines()[0])
    console.print(table)


if __name__ == "__main__":
    app()
