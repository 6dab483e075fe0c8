"""
CLI utility helpers — settings loading and output formatting.
"""

from __future__ import annotations

import json
from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from protorelease.core.errors import ConfigError, ReleaseError
from protorelease.core.logging import configure_logging
from protorelease.core.settings import MirrorSettings

console = Console()
err_console = Console(stderr=True)


# ── Settings ─────────────────────────────────────────────────────────────


def load_settings(**overrides: Any) -> MirrorSettings:
    """Build settings from env/.env plus the CLI options that were given.

    Raises:
        ConfigError: If validation fails.
    """
    given = {key: value for key, value in overrides.items() if value is not None}
    try:
        settings = MirrorSettings(**given)
    except ValidationError as exc:
        raise ConfigError(f"invalid settings: {exc}", cause=exc) from exc
    configure_logging(level=settings.log_level, json_format=settings.json_logs)
    return settings


# ── Output helpers ───────────────────────────────────────────────────────


def fail(error: ReleaseError) -> None:
    """Print a fatal error diagnostic and exit 1."""
    context = error.context.to_dict()
    where = f" (version {context['version']})" if "version" in context else ""
    label = escape(f"[{error.category.value}]")
    err_console.print(f"[bold red]Error[/bold red] {label}{where}: {escape(error.message)}")
    raise typer.Exit(code=1)


def print_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def print_table(rows: list[dict[str, Any]], *, title: str = "") -> None:
    """Render a list of dicts as a Rich table."""
    if not rows:
        console.print("[dim]No items.[/dim]")
        return
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in rows[0]:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*(escape(str(v)) for v in row.values()))
    console.print(table)
