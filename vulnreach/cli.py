"""Typer-based CLI for vulnreach."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from . import __version__, config
from .config_manager import clear_witness_config, load_witness_config, save_witness_config
from .loader import load_result
from .models import GraphContractError, Result
from .render import render_json, render_text
from .witness import call_stacks

console = Console()

app = typer.Typer(
    help="Find which known vulnerabilities are reachable through a program's call graph.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"vulnreach v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    )
):
    """vulnreach: witness call stacks for vulnerable dependencies."""
    pass


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _open_result(result_file: Path) -> Result:
    try:
        return load_result(result_file)
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"'{result_file}' is not valid JSON: {exc}")
    except GraphContractError as exc:
        raise typer.BadParameter(f"'{result_file}' is not a consistent result: {exc}")


@app.command("witness")
def witness(
    result_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Analysis result JSON."),
    as_json: Optional[bool] = typer.Option(None, "--json/--text", help="Output format (default from config)."),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="Parallel searches."),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Full traces and debug logging."),
):
    """Print one representative call stack per reachable vulnerability.

    Exits with status 3 when at least one vulnerability is called.
    """
    _setup_logging(verbose)
    settings = load_witness_config()
    result = _open_result(result_file)
    stacks = call_stacks(result, max_workers=workers or settings["max_workers"])

    use_json = as_json if as_json is not None else settings["output"] == "json"
    if use_json:
        typer.echo(render_json(result, stacks))
    else:
        typer.echo(render_text(result, stacks, verbose=verbose), nl=False)

    if any(stack is not None for stack in stacks.values()):
        raise typer.Exit(code=config.EXIT_VULNS_FOUND)


@app.command("graph")
def graph(
    result_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Analysis result JSON."),
    imports: bool = typer.Option(False, "--imports", help="Show the import graph instead of calls."),
):
    """Show who calls (or imports) what in an analysis result."""
    result = _open_result(result_file)
    if imports:
        edges = result.imports.importers_map()
        table = Table(title="Import graph")
        table.add_column("Package", style="cyan")
        table.add_column("Imports")
    else:
        edges = result.call_graph.callers_map()
        table = Table(title="Call graph")
        table.add_column("Caller", style="cyan")
        table.add_column("Callees")

    if not edges:
        typer.echo("No edges.")
        return
    for src in sorted(edges):
        table.add_row(src, "\n".join(edges[src]))
    console.print(table)


@app.command("show-config")
def show_config():
    """Show the effective witness settings."""
    settings = load_witness_config()
    typer.echo(f"Config file: {config.CONFIG_FILE}")
    typer.echo(f"max_workers: {settings['max_workers']}")
    typer.echo(f"output:      {settings['output']}")


@app.command("set-config")
def set_config(
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="Parallel searches."),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Default format: text or json."),
):
    """Persist witness settings to the config file."""
    if workers is None and output is None:
        raise typer.BadParameter("Nothing to set. Pass --workers and/or --output.")
    try:
        saved = save_witness_config(max_workers=workers, output=output)
    except ValueError as exc:
        raise typer.BadParameter(str(exc))
    if not saved:
        typer.echo("Failed to save configuration.", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Saved to {config.CONFIG_FILE}")


@app.command("reset-config")
def reset_config():
    """Drop saved witness settings and go back to defaults."""
    if not clear_witness_config():
        typer.echo("Failed to save configuration.", err=True)
        raise typer.Exit(code=1)
    typer.echo("Witness settings reset to defaults.")
