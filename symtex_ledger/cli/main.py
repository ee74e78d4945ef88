# symtex_ledger/cli/main.py
"""
CLI for recording, querying, verifying and exporting the Symtex audit ledger.
"""

import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from symtex_ledger.config import LedgerConfig
from symtex_ledger.core.errors import ConfigError, LedgerError, QueryError, StorageError, ValidationError
from symtex_ledger.core.types import LedgerEntry, format_timestamp
from symtex_ledger.ledger import Ledger
from symtex_ledger.seed import SEED_FIRST_SEQUENCE, seed_ledger
from symtex_ledger.storage import SQLiteStorage
from symtex_ledger.verify.alerts import log_alert
from symtex_ledger.verify.verifier import ChainVerifier

app = typer.Typer(
    name="symtex-ledger",
    help="Record, query, verify and export the Symtex six-W audit ledger",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

_SEVERITY_STYLE = {
    "debug": "dim",
    "info": "cyan",
    "notice": "blue",
    "warning": "yellow",
    "error": "red",
    "critical": "bold red",
}


def load_config() -> LedgerConfig:
    try:
        return LedgerConfig.from_env()
    except ConfigError as e:
        console.print(f"[red]Invalid configuration: {e}[/]")
        raise typer.Exit(1)


def get_db_path(db_flag: Optional[Path] = None, config: Optional[LedgerConfig] = None) -> Path:
    """Resolve DB path in this order:
    1. --db flag
    2. LEDGER_DB_PATH environment variable
    3. Default: ~/.symtex/ledger.db
    """
    return (config or load_config()).resolve_db_path(db_flag)


def open_ledger(db: Optional[Path], must_exist: bool = True, config: Optional[LedgerConfig] = None) -> Ledger:
    config = config or load_config()
    db_path = get_db_path(db, config)

    if must_exist and not db_path.exists():
        console.print(f"[red]Database file not found: {db_path}[/]")
        console.print("[yellow]To get started:[/]")
        console.print("  • Seed sample data: symtex-ledger seed")
        console.print("  • Set env var: export LEDGER_DB_PATH=/path/to/ledger.db")
        console.print("  • Or use --db: symtex-ledger entries --db /custom/path.db")
        raise typer.Exit(1)

    try:
        return Ledger(f"sqlite://{db_path}", config=config)
    except LedgerError as e:
        console.print(f"[red]Failed to load ledger: {str(e)}[/]")
        console.print("[yellow]Run 'symtex-ledger verify' to locate the damage.[/]")
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"[red]Failed to open database: {str(e)}[/]")
        console.print("[yellow]The file may be corrupted or not a valid SQLite DB.[/]")
        raise typer.Exit(1)


def _entry_table(entries: List[LedgerEntry], title: str) -> Table:
    table = Table(title=title)
    table.add_column("Seq", justify="right")
    table.add_column("When")
    table.add_column("Who")
    table.add_column("Category")
    table.add_column("Severity")
    table.add_column("Description")
    table.add_column("Flag")

    for entry in entries:
        severity = entry.what.severity.value
        style = _SEVERITY_STYLE.get(severity, "")
        table.add_row(
            str(entry.sequence),
            format_timestamp(entry.when)[:19].replace("T", " "),
            f"{entry.who.name} ({entry.who.type.value})",
            entry.what.category.value,
            f"[{style}]{severity}[/]" if style else severity,
            entry.what.description[:70] + ("..." if len(entry.what.description) > 70 else ""),
            "⚑" if entry.is_flagged else "",
        )
    return table


@app.callback()
def main(
    ctx: typer.Context,
    db: Optional[Path] = typer.Option(
        None,
        "--db",
        help="Path to SQLite database (overrides LEDGER_DB_PATH env var)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Manage the Symtex audit ledger."""
    level = "DEBUG" if verbose else load_config().log_level
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )
    ctx.obj = {"db": db}


def _db(ctx: typer.Context, db: Optional[Path]) -> Optional[Path]:
    return db or (ctx.obj or {}).get("db")


@app.command()
def append(
    ctx: typer.Context,
    payload_file: Optional[Path] = typer.Argument(None, help="JSON payload (object or list); stdin if omitted"),
    db: Optional[Path] = typer.Option(None, "--db", hidden=True),
):
    """Append one or more six-W events."""
    try:
        raw = payload_file.read_text(encoding="utf-8") if payload_file else sys.stdin.read()
        data = json.loads(raw)
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Could not read payload: {str(e)}[/]")
        raise typer.Exit(1)

    payloads = data if isinstance(data, list) else [data]
    with open_ledger(_db(ctx, db), must_exist=False) as ledger:
        for payload in payloads:
            try:
                entry = ledger.append(payload)
            except ValidationError as e:
                console.print(f"[red]Invalid payload: {str(e)}[/]")
                raise typer.Exit(1)
            except StorageError as e:
                console.print(f"[red]Append failed, nothing was recorded: {str(e)}[/]")
                raise typer.Exit(1)
            console.print(
                f"[green]Appended #{entry.sequence}[/] {entry.id}  {entry.crypto.content_hash[:16]}…"
            )


@app.command()
def entries(
    ctx: typer.Context,
    db: Optional[Path] = typer.Option(None, "--db", hidden=True),
    actor_type: Optional[List[str]] = typer.Option(None, "--actor-type", help="user, cognate, system, ..."),
    actor_id: Optional[List[str]] = typer.Option(None, "--actor-id"),
    category: Optional[List[str]] = typer.Option(None, "--category", "-c"),
    severity: Optional[List[str]] = typer.Option(None, "--severity", "-s"),
    status: Optional[List[str]] = typer.Option(None, "--status"),
    space: Optional[List[str]] = typer.Option(None, "--space"),
    project: Optional[List[str]] = typer.Option(None, "--project"),
    tag: Optional[List[str]] = typer.Option(None, "--tag", "-t"),
    flagged: bool = typer.Option(False, "--flagged", help="Only flagged entries"),
    date_from: Optional[str] = typer.Option(None, "--from", help="ISO timestamp (inclusive)"),
    date_to: Optional[str] = typer.Option(None, "--to", help="ISO timestamp (inclusive)"),
    search: Optional[str] = typer.Option(None, "--search", "-q"),
    sort: str = typer.Option("when", "--sort", help="when, sequence, severity or category"),
    direction: str = typer.Option("desc", "--direction", help="asc or desc"),
    page: int = typer.Option(1, "--page", "-p"),
    page_size: int = typer.Option(20, "--page-size", "-n"),
    cursor: Optional[str] = typer.Option(None, "--cursor", help="next_cursor from a previous page"),
    as_json: bool = typer.Option(False, "--json", help="Print entries as JSON lines"),
):
    """Filter, sort and page through entries."""
    flt = {
        "actor_type": actor_type or (),
        "actor_id": actor_id or (),
        "category": category or (),
        "severity": severity or (),
        "status": status or (),
        "space_id": space or (),
        "project_id": project or (),
        "tags": tag or (),
        "flagged_only": flagged,
        "search": search,
    }
    if date_from or date_to:
        flt["date_range"] = {"from": date_from or "0001-01-01T00:00:00Z", "to": date_to or "9999-12-31T23:59:59Z"}

    with open_ledger(_db(ctx, db)) as ledger:
        try:
            result = ledger.query(
                flt,
                {"field": sort, "direction": direction},
                {"page": page, "page_size": page_size, "cursor": cursor},
            )
        except QueryError as e:
            console.print(f"[red]Invalid query: {str(e)}[/]")
            raise typer.Exit(1)

    if result.degraded:
        console.print(f"[yellow]Warning: index inconsistent, served by full scan ({'; '.join(result.warnings)})[/]")

    if as_json:
        for entry in result.entries:
            typer.echo(json.dumps(entry.to_dict(), separators=(",", ":")))
        return

    if not result.entries:
        console.print("[yellow]No entries match.[/]")
        return

    console.print(_entry_table(list(result.entries), "Ledger Entries"))
    where = f"Page {result.page} of {result.total_pages}" if result.page else "Cursor page"
    console.print(f"{where}: {result.total_count} matching entries")
    if result.next_cursor:
        console.print(f"Next cursor: {result.next_cursor}", soft_wrap=True)


@app.command()
def show(
    ctx: typer.Context,
    ref: str = typer.Argument(..., help="Sequence number or entry id"),
    db: Optional[Path] = typer.Option(None, "--db", hidden=True),
):
    """Show one entry in full."""
    with open_ledger(_db(ctx, db)) as ledger:
        entry = ledger.get(int(ref)) if ref.isdigit() else ledger.get_by_id(ref)
        children = ledger.children(entry.id) if entry else []

    if entry is None:
        console.print(f"[red]No entry '{ref}'[/]")
        raise typer.Exit(1)

    console.print(f"[bold cyan]{entry.summary()}[/]")
    console.print_json(json.dumps(entry.to_dict()))
    if children:
        console.print("Children: " + ", ".join(str(child.sequence) for child in children))


@app.command()
def verify(
    ctx: typer.Context,
    db: Optional[Path] = typer.Option(None, "--db", hidden=True),
    start: Optional[int] = typer.Option(None, "--start", help="First sequence (default: genesis)"),
    end: Optional[int] = typer.Option(None, "--end", help="Last sequence (default: tail)"),
):
    """Verify the hash chain (sequence continuity, content hashes, links)."""
    db_path = get_db_path(_db(ctx, db))

    if not db_path.exists():
        console.print(f"[red]Database file not found: {db_path}[/]")
        raise typer.Exit(1)

    # read rows directly: a tampered store must still be checkable even if it can't be loaded
    try:
        storage = SQLiteStorage(db_path)
        stored = storage.load_entries()
        storage.close()
    except Exception as e:
        console.print(f"[red]Failed to open database: {str(e)}[/]")
        raise typer.Exit(1)

    if start is not None and end is not None and start > end:
        console.print(f"[red]Invalid range: --start {start} is after --end {end}[/]")
        raise typer.Exit(1)

    if not stored:
        console.print("[green]✓ Empty ledger is valid[/]")
        return

    first = stored[0].sequence
    lo = first if start is None else max(start, first)
    hi = stored[-1].sequence if end is None else end
    by_sequence = {entry.sequence: entry for entry in stored}
    selected = [entry for entry in stored if lo <= entry.sequence <= hi]

    result = ChainVerifier().verify_entries(selected, previous=by_sequence.get(lo - 1), from_genesis=lo == first)

    if result.is_valid:
        console.print("[green]✓ Ledger is valid[/]")
        console.print(f"  {result.message}")
    else:
        log_alert(result.failure.to_error())
        console.print(f"[red]✗ Verification failed: broken at sequence {result.broken_at}[/]")
        console.print(f"  • [{result.failure.category}] {result.failure.message}")
        raise typer.Exit(1)


@app.command()
def stats(
    ctx: typer.Context,
    db: Optional[Path] = typer.Option(None, "--db", hidden=True),
):
    """Entry counts by category, actor type and severity."""
    with open_ledger(_db(ctx, db)) as ledger:
        summary = ledger.stats()
        root = ledger.merkle_root()

    console.print(f"Total entries: {summary['total']}   Flagged: {summary['flagged']}")
    for title, key in (("By category", "by_category"), ("By actor type", "by_actor_type"),
                       ("By severity", "by_severity")):
        table = Table(title=title)
        table.add_column("Value")
        table.add_column("Entries", justify="right")
        for value, count in sorted(summary[key].items(), key=lambda item: (-item[1], item[0])):
            table.add_row(value, str(count))
        console.print(table)
    if root:
        console.print(f"Merkle root: {root}")


@app.command()
def flag(
    ctx: typer.Context,
    sequence: int = typer.Argument(..., help="Sequence number to annotate"),
    db: Optional[Path] = typer.Option(None, "--db", hidden=True),
    unflag: bool = typer.Option(False, "--unflag", help="Clear the flag instead"),
    review: Optional[str] = typer.Option(None, "--review", help="pending, reviewed, approved or rejected"),
    notes: Optional[str] = typer.Option(None, "--notes"),
):
    """Flag an entry for review (annotation only; the chain is untouched)."""
    changes = {"is_flagged": not unflag}
    if review is not None:
        changes["review_status"] = review
    if notes is not None:
        changes["notes"] = notes

    with open_ledger(_db(ctx, db)) as ledger:
        try:
            entry = ledger.annotate(sequence, **changes)
        except LedgerError as e:
            console.print(f"[red]{str(e)}[/]")
            raise typer.Exit(1)

    state = "flagged" if entry.is_flagged else "unflagged"
    review_text = f", review {entry.review_status.value}" if entry.review_status else ""
    console.print(f"[green]Entry {sequence} {state}{review_text}[/]")


@app.command()
def export(
    ctx: typer.Context,
    db: Optional[Path] = typer.Option(None, "--db", hidden=True),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file (default: ledger-export.jsonl)"),
):
    """Export the full ledger as JSONL (one entry per line, ascending sequence)."""
    with open_ledger(_db(ctx, db)) as ledger:
        snapshot = ledger.snapshot()

    if not snapshot.count:
        console.print("[yellow]Ledger is empty, nothing to export[/]")
        raise typer.Exit(0)

    out_path = output or Path("ledger-export.jsonl")
    with open(out_path, "w", encoding="utf-8") as f:
        for entry in snapshot:
            # Export full entry as JSON (including crypto and annotation)
            json.dump(entry.to_dict(), f, separators=(",", ":"))
            f.write("\n")

    console.print(f"[green]Exported {snapshot.count} entries to {out_path}[/]")
    console.print("Format: JSONL — one hash-chained entry per line")


@app.command()
def seed(
    ctx: typer.Context,
    db: Optional[Path] = typer.Option(None, "--db", hidden=True),
):
    """Append the demo activity (20 events, numbered from 1001 on an empty ledger)."""
    config = replace(load_config(), initial_sequence=SEED_FIRST_SEQUENCE)
    with open_ledger(_db(ctx, db), must_exist=False, config=config) as ledger:
        added = seed_ledger(ledger)

    console.print(f"[green]Seeded {len(added)} entries ({added[0].sequence}..{added[-1].sequence})[/]")


if __name__ == "__main__":
    app()
