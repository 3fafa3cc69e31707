"""Read-only store commands: show, stats, check."""

from typing import Optional

import typer
from rich.table import Table

from . import store_app, console, load_cli_config
from ..daemon.errors import CorruptState
from ..daemon.store import EntryStore
from ..daemon.utils.invariants import run_all_checks


def _open_store(path: Optional[str]):
    config = load_cli_config()
    grants = config.grants
    entry_store = EntryStore(path or config.store.path, grants.to_base_units(grants.default_max_quota))
    try:
        entry_store.load()
    except CorruptState as e:
        console.print(f"[red]Store is corrupt: {e}[/red]")
        raise typer.Exit(1)
    return config, entry_store


@store_app.command("show")
def show_requester(
    requester_id: str,
    path: Optional[str] = typer.Option(None, "--path", help="Store document (defaults to store.path)"),
):
    """Show a requester's quota and grant entries."""
    config, entry_store = _open_store(path)
    account = entry_store.get(requester_id)
    if account is None:
        console.print(f"[red]Requester '{requester_id}' not found[/red]")
        raise typer.Exit(1)

    fmt = config.grants.format_amount
    symbol = config.grants.symbol
    console.print(f"[bold]Requester {account.id}[/bold]")
    console.print(f"  Used:     {fmt(account.used_quota())}/{fmt(account.max_quota)} {symbol}")
    console.print(f"  Next seq: {account.next_sequence_number}")
    console.print(f"  Messages: {len(account.message_log)}")

    table = Table(title="Grant entries")
    table.add_column("#", justify="right")
    table.add_column("Status")
    table.add_column(f"Amount ({symbol})", justify="right")
    table.add_column("Beneficiary")
    table.add_column("Ledger id")
    table.add_column("Created")
    for entry in account.entries:
        table.add_row(
            str(entry.sequence_number),
            entry.status.value,
            fmt(entry.amount),
            entry.beneficiary,
            entry.external_id,
            entry.created_at.isoformat(),
        )
    console.print(table)


@store_app.command("stats")
def store_stats(
    path: Optional[str] = typer.Option(None, "--path", help="Store document (defaults to store.path)"),
):
    """Totals by grant status."""
    config, entry_store = _open_store(path)
    summary = entry_store.store.stats()

    table = Table(title=f"Store {entry_store.path}")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("accounts", str(summary.pop("accounts")))
    outstanding = summary.pop("outstanding_amount")
    for status, count in summary.items():
        table.add_row(status, str(count))
    table.add_row(f"outstanding ({config.grants.symbol})", config.grants.format_amount(outstanding))
    console.print(table)


@store_app.command("check")
def store_check(
    path: Optional[str] = typer.Option(None, "--path", help="Store document (defaults to store.path)"),
):
    """Run store invariants; exits 1 on any violation."""
    _, entry_store = _open_store(path)
    results = run_all_checks(entry_store.store)

    failed = False
    for result in results:
        if result.passed:
            console.print(f"  [green]PASS[/green] {result.name}")
        else:
            failed = True
            console.print(f"  [red]FAIL[/red] {result.name} - {result.detail}")

    if failed:
        raise typer.Exit(1)
