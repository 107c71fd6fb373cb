"""
RecVault Typer CLI Application

Operator commands for inspecting and clearing the persisted caches,
running a watch-history sync, and running the service with periodic
persistence until interrupted.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from recvault import __version__
from recvault.app import RecVaultService
from recvault.config.loader import load_settings
from recvault.config.models.settings import Settings
from recvault.context import AppContext, build_context
from recvault.services.sync.models import SyncResult, SyncStatus
from recvault.services.trakt.client import CATEGORIES
from recvault.shared.constants import Application
from recvault.shared.errors import RecVaultError, create_validation_error
from recvault.shared.logging import setup_structured_logger

console = Console()

app = typer.Typer(
    name="recvault",
    help=Application.DESCRIPTION,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@dataclass
class CliState:
    config_path: Optional[Path] = None
    log_level: Optional[str] = None
    json_output: bool = False


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"recvault {__version__}")
        raise typer.Exit


@app.callback()
def main_callback(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="TOML configuration file", dir_okay=False
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override the log level"),
    json_output: bool = typer.Option(False, "--json", help="Print machine-readable JSON"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version"
    ),
) -> None:
    """RecVault operator commands."""
    ctx.obj = CliState(config_path=config, log_level=log_level, json_output=json_output)


def _state(ctx: typer.Context) -> CliState:
    return ctx.obj if isinstance(ctx.obj, CliState) else CliState()


def _settings(state: CliState) -> Settings:
    settings = load_settings(state.config_path)
    level = state.log_level or ("DEBUG" if settings.app.debug else settings.logging.level)
    if not isinstance(logging.getLevelName(level.upper()), int):
        raise create_validation_error(
            f"Unknown log level '{level}'", field="log_level", operation="cli"
        )
    setup_structured_logger(
        level=level,
        log_file=settings.logging.file,
        use_rich_console=settings.logging.console_output,
    )
    return settings


def _fail(error: RecVaultError, state: CliState) -> typer.Exit:
    if state.json_output:
        typer.echo(json.dumps({"success": False, "error": error.to_dict()}))
    else:
        console.print(f"[red]Error:[/red] {error.message}")
    return typer.Exit(1)


def _emit_json(payload: dict[str, Any]) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False, default=str))


# stats ----------------------------------------------------------------


async def _collect_stats(context: AppContext) -> dict[str, Any]:
    try:
        await context.persistence.load_all()
        return {
            "caches": {
                name: stats.to_dict()
                for name, stats in context.registry.stats_snapshot().items()
            },
            "counters": context.registry.counters(),
        }
    finally:
        await context.close()


@app.command("stats")
def stats_command(ctx: typer.Context) -> None:
    """Show size and usage of every persisted cache."""
    state = _state(ctx)
    try:
        context = build_context(_settings(state))
        data = asyncio.run(_collect_stats(context))
    except RecVaultError as e:
        raise _fail(e, state) from e

    if state.json_output:
        _emit_json(data)
        return

    table = Table(title="Cache Statistics")
    table.add_column("Cache", style="cyan")
    table.add_column("Entries", justify="right")
    table.add_column("Max", justify="right")
    table.add_column("Usage", justify="right", style="green")
    for name, stats in data["caches"].items():
        table.add_row(
            name,
            str(stats["size"]),
            str(stats["max_size"]),
            f"{stats['usage_percentage']:.2f}%",
        )
    console.print(table)
    for counter, value in data["counters"].items():
        console.print(f"{counter}: {value}")


# clear ----------------------------------------------------------------


async def _clear(context: AppContext, name: Optional[str]) -> dict[str, int]:
    try:
        await context.persistence.load_all()
        if name is None:
            cleared = context.registry.clear_all()
        else:
            cleared = {name: context.registry.clear_named(name)}
        await context.persistence.save_all()
        return cleared
    finally:
        await context.close()


@app.command("clear")
def clear_command(
    ctx: typer.Context,
    name: Optional[str] = typer.Argument(None, help="Cache to clear"),
    all_caches: bool = typer.Option(False, "--all", help="Clear every cache"),
) -> None:
    """Clear one named cache, or all of them, and persist the result."""
    state = _state(ctx)
    if (name is None) == (not all_caches):
        console.print("[red]Error:[/red] give a cache name or --all, not both")
        raise typer.Exit(2)

    try:
        context = build_context(_settings(state))
        cleared = asyncio.run(_clear(context, None if all_caches else name))
    except RecVaultError as e:
        raise _fail(e, state) from e

    if state.json_output:
        _emit_json({"success": True, "cleared": cleared})
        return
    for cache_name, previous in cleared.items():
        console.print(f"Cleared [cyan]{cache_name}[/cyan] ({previous} entries)")


# sync -----------------------------------------------------------------


async def _run_sync(context: AppContext, credential: str, category: str) -> SyncResult:
    async with RecVaultService(context):
        return await context.sync_engine.sync(credential, category)


def _print_sync_result(result: SyncResult) -> None:
    status_style = "green" if result.ok else "yellow"
    console.print(f"Status: [{status_style}]{result.status.value}[/{status_style}]")
    if result.mode:
        console.print(f"Mode: {result.mode.value} ({result.changed} changed)")
    if result.message:
        console.print(result.message)
    if result.status is SyncStatus.NEEDS_REAUTH:
        console.print("Re-authenticate the watch-history account and try again.")

    preferences = result.preferences
    if preferences is None:
        return
    table = Table(title="Preferences")
    table.add_column("Kind", style="cyan")
    table.add_column("Top entries")
    for kind, items in (
        ("genres", preferences.genres),
        ("actors", preferences.actors),
        ("directors", preferences.directors),
    ):
        table.add_row(kind, ", ".join(f"{i.name} ({i.weight:g})" for i in items) or "-")
    if preferences.years:
        years = preferences.years
        table.add_row("years", f"{years.start}-{years.end}, preferred {years.preferred}")
    console.print(table)


@app.command("sync")
def sync_command(
    ctx: typer.Context,
    credential: str = typer.Argument(
        ..., envvar="RECVAULT_TRAKT_TOKEN", help="Watch-history access token"
    ),
    category: str = typer.Option("movies", "--category", help="movies or shows"),
) -> None:
    """Synchronize one account's watch-history and print its preferences."""
    state = _state(ctx)
    if category not in CATEGORIES:
        console.print(f"[red]Error:[/red] category must be one of {', '.join(CATEGORIES)}")
        raise typer.Exit(2)

    try:
        context = build_context(_settings(state))
        result = asyncio.run(_run_sync(context, credential, category))
    except RecVaultError as e:
        raise _fail(e, state) from e

    if state.json_output:
        _emit_json(result.to_dict())
    else:
        _print_sync_result(result)
    if not result.ok:
        raise typer.Exit(1)


# serve ----------------------------------------------------------------


@app.command("serve")
def serve_command(ctx: typer.Context) -> None:
    """Restore caches and keep persisting them until interrupted."""
    state = _state(ctx)
    try:
        context = build_context(_settings(state))
        asyncio.run(RecVaultService(context).run_until_signalled())
    except RecVaultError as e:
        raise _fail(e, state) from e


def main() -> None:
    app()


if __name__ == "__main__":
    main()
