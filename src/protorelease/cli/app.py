"""
Root Typer application for the protorelease CLI.

Every command reads ``MirrorSettings`` from the environment first; options
given on the command line override individual fields.
"""

from __future__ import annotations

from pathlib import Path

import typer
from typer import Typer

from protorelease.cli.utils import console, fail, load_settings, print_json, print_table
from protorelease.core.errors import ReleaseError
from protorelease.release import naming
from protorelease.release.ledger import ReleaseLedger
from protorelease.release.pipeline import (
    discover_or_empty,
    open_target,
    open_upstream,
    run_mirror,
)

app = Typer(
    name="protorelease",
    help="protorelease — mirror protocol definitions into per-version release tags.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from protorelease import __version__

        typer.echo(f"protorelease {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """protorelease CLI — publish one immutable tag per protocol version."""


# ── Shared options ───────────────────────────────────────────────────────

_WORK_DIR = typer.Option(None, "--work-dir", help="Bare upstream mirror directory.")
_TARGET_DIR = typer.Option(None, "--target-dir", help="Repository receiving releases.")
_JSON = typer.Option(False, "--json", help="Output as JSON.")


# ── Commands ─────────────────────────────────────────────────────────────


@app.command("run")
def run_cmd(
    work_dir: Path | None = _WORK_DIR,
    target_dir: Path | None = _TARGET_DIR,
    upstream_url: str | None = typer.Option(None, "--upstream-url", help="Remote to fetch from."),
    fetch: bool | None = typer.Option(None, "--fetch/--no-fetch", help="Fetch upstream first."),
    max_workers: int | None = typer.Option(None, "--max-workers", "-j", help="Concurrent versions."),
    fail_fast: bool | None = typer.Option(None, "--fail-fast/--keep-going", help="Stop at first failure."),
    log_level: str | None = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ERROR."),
    as_json: bool = _JSON,
) -> None:
    """Fetch upstream and publish every protocol version not yet tagged."""
    try:
        settings = load_settings(
            work_dir=work_dir,
            target_dir=target_dir,
            upstream_url=upstream_url,
            fetch=fetch,
            max_workers=max_workers,
            fail_fast=fail_fast,
            log_level=log_level,
        )
        outcome = run_mirror(settings)
    except ReleaseError as exc:
        fail(exc)
        return

    report = outcome.report
    if as_json:
        print_json(outcome.to_dict())
    else:
        console.print(
            f"Latest stable upstream: [bold]v{outcome.stable_version}[/bold] "
            f"at {outcome.stable_commit[:12]}"
        )
        rows = [
            {"version": str(r.version), "tag": r.tag_name, "status": "created", "detail": r.commit}
            for r in report.releases
        ]
        rows += [
            {"version": str(v), "tag": naming.tag_name(v), "status": "exists", "detail": ""}
            for v in report.skipped
        ]
        rows += [
            {"version": str(f.version), "tag": f.tag_name, "status": "failed", "detail": f.error.message}
            for f in report.failures
        ]
        rows += [
            {"version": str(v), "tag": naming.tag_name(v), "status": "not started", "detail": ""}
            for v in report.not_started
        ]
        print_table(rows, title="Releases")

    if not report.ok or report.not_started:
        raise typer.Exit(code=1)


@app.command("catalog")
def catalog_cmd(
    ref: str | None = typer.Option(None, "--ref", help="Upstream revision (default: latest stable)."),
    work_dir: Path | None = _WORK_DIR,
    as_json: bool = _JSON,
) -> None:
    """List the protocol versions defined at an upstream revision."""
    try:
        settings = load_settings(work_dir=work_dir)
        upstream = open_upstream(settings)
        commit = ref if ref is not None else upstream.latest_stable()[1]
        catalog = discover_or_empty(upstream, commit, settings.proto_path)
    except ReleaseError as exc:
        fail(exc)
        return

    rows = [
        {"version": str(v), "tag": naming.tag_name(v), "content": str(content)}
        for v, content in catalog.items()
    ]
    if as_json:
        print_json({"commit": commit, "versions": rows})
    else:
        print_table(rows, title=f"Protocol versions at {commit}")


@app.command("status")
def status_cmd(
    work_dir: Path | None = _WORK_DIR,
    target_dir: Path | None = _TARGET_DIR,
    as_json: bool = _JSON,
) -> None:
    """Show which versions at the latest stable upstream are already released."""
    try:
        settings = load_settings(work_dir=work_dir, target_dir=target_dir)
        upstream = open_upstream(settings)
        ledger = ReleaseLedger(open_target(settings))
        _, commit = upstream.latest_stable()
        catalog = discover_or_empty(upstream, commit, settings.proto_path)
        rows = []
        for version in catalog.versions():
            tag = naming.tag_name(version)
            rows.append({"version": str(version), "tag": tag, "released": ledger.has_release(tag)})
    except ReleaseError as exc:
        fail(exc)
        return

    if as_json:
        print_json({"commit": commit, "versions": rows})
    else:
        print_table(rows, title=f"Release status at {commit[:12]}")
