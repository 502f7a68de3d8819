"""jstore CLI — inspect and append to JSON Lines stores.

Commands:
    jstore init                write jstore.toml in the current project
    jstore append PATH [JSON]  append JSON (argument or stdin)
    jstore latest PATH         print the newest valid entry
    jstore at PATH N           print entry N (1-based)
    jstore len PATH            print the number of entries
    jstore cat PATH            print every valid entry with its ordinal
    jstore check PATH          report corrupt lines and dangling writes
    jstore status PATH         summary table (entries, size, corruption, latest)
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

import click

from jstore.config import JStoreConfig, init_config, load_config
from jstore.errors import JsonlError
from jstore.store import JsonlStore

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_cfg() -> JStoreConfig:
    try:
        return load_config()
    except Exception as exc:
        raise click.ClickException(str(exc)) from exc


class _StoreContext:
    """Open a store for one command, turning store errors into ClickException."""

    def __init__(self, path: str) -> None:
        self.path = path
        self.store: JsonlStore | None = None

    def __enter__(self) -> JsonlStore:
        cfg = click.get_current_context().find_object(JStoreConfig) or _load_cfg()
        try:
            self.store = JsonlStore(self.path, cfg.store)
        except JsonlError as exc:
            raise click.ClickException(str(exc)) from exc
        return self.store

    def __exit__(self, exc_type: type[BaseException] | None, exc: BaseException | None, tb: object) -> None:
        if self.store is not None:
            self.store.close()
        if isinstance(exc, JsonlError):
            raise click.ClickException(str(exc)) from exc


def _dump(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


def _read_stdin() -> str:
    data = click.get_text_stream("stdin").read()
    if not data.strip():
        msg = "no JSON given (pass it as an argument or on stdin)"
        raise click.UsageError(msg)
    return data


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="jstore")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """jstore — crash-tolerant JSON Lines store."""
    cfg = _load_cfg()
    level = logging.DEBUG if verbose else getattr(logging, cfg.logging.level)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s", stream=sys.stderr)
    ctx.obj = cfg


# ---------------------------------------------------------------------------
# jstore init
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--dir", "root", default=".", show_default=True, help="Project root")
def init(root: str) -> None:
    """Create jstore.toml with the default settings commented out."""
    root_path = Path(root).resolve()
    try:
        config_path = init_config(root_path)
        click.echo(f"Created {config_path}")
    except FileExistsError:
        click.echo("jstore.toml already exists — skipping init")


# ---------------------------------------------------------------------------
# jstore append
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("path", type=click.Path(dir_okay=False))
@click.argument("payload", required=False)
def append(path: str, payload: str | None) -> None:
    """Append JSON to PATH. Several newline-separated documents are written all-or-nothing."""
    if payload is None:
        payload = _read_stdin()
    with _StoreContext(path) as store:
        n = store.write(payload)
        click.echo(f"Wrote {n} bytes ({len(store)} entries)")


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def latest(path: str) -> None:
    """Print the newest valid entry, skipping a corrupt tail."""
    with _StoreContext(path) as store:
        click.echo(_dump(store.latest()))


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.argument("ordinal", type=int)
def at(path: str, ordinal: int) -> None:
    """Print entry ORDINAL (1-based)."""
    with _StoreContext(path) as store:
        click.echo(_dump(store.at(ordinal)))


@cli.command(name="len")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def length(path: str) -> None:
    """Print the number of entries in PATH."""
    with _StoreContext(path) as store:
        click.echo(len(store))


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def cat(path: str) -> None:
    """Print every valid entry, prefixed with its ordinal."""
    with _StoreContext(path) as store:
        for n, value in store.iter_entries():
            click.echo(f"{n}\t{_dump(value)}")


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def check(path: str) -> None:
    """Report corrupt lines and dangling writes. Exits 1 if any are found."""
    with _StoreContext(path) as store:
        report = store.check()
    click.echo(f"{report.lines} lines, {len(report.corrupt)} corrupt")
    for n in report.corrupt:
        click.echo(f"  corrupt: line {n}")
    if report.dangling:
        click.echo(f"  dangling: {report.dangling} bytes after the last newline")
    if not report.ok:
        raise SystemExit(1)


# ---------------------------------------------------------------------------
# jstore status
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def status(path: str) -> None:
    """Show entry count, size, corruption and the latest entry of PATH."""
    from rich.console import Console
    from rich.markup import escape as _markup_escape
    from rich.table import Table

    cfg = click.get_current_context().find_object(JStoreConfig) or _load_cfg()
    console = Console()

    with _StoreContext(path) as store:
        report = store.check()
        entries = len(store)
        size = store.path.stat().st_size
        latest_raw = store.read()

    table = Table(title=f"jstore — {path}", show_header=True, header_style="bold")
    table.add_column("Metric", style="dim", no_wrap=True)
    table.add_column("Value", justify="right")

    config_path = cfg.config_path
    table.add_row("Config", str(config_path) if config_path.exists() else "[dim]defaults[/dim]")
    table.add_row("Entry cap", f"{cfg.store.max_entry_size:,} bytes")
    table.add_row("", "")
    table.add_row("Entries", str(entries))
    table.add_row("Size", f"{size:,} bytes")
    if report.corrupt:
        shown = ", ".join(str(n) for n in report.corrupt[:10])
        more = f" (+{len(report.corrupt) - 10})" if len(report.corrupt) > 10 else ""
        table.add_row("Corrupt lines", f"[yellow]⚠ {shown}{more}[/yellow]")
    else:
        table.add_row("Corrupt lines", "[green]none[/green]")
    if report.dangling:
        table.add_row("Dangling tail", f"[yellow]{report.dangling} bytes[/yellow]")
    if latest_raw:
        preview = latest_raw.decode("utf-8")
        if len(preview) > 60:
            preview = preview[:57] + "..."
        table.add_row("Latest", _markup_escape(preview))
    else:
        table.add_row("Latest", "[red]no valid entry[/red]")

    console.print(table)
