"""Store migration commands."""

from __future__ import annotations

import json
from pathlib import Path

import typer

from . import console, load_cli_config, migrate_app
from ..daemon.store import EntryStore
from ..daemon.store.migration import migrate_v1


def _read_json(path: Path):
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Cannot read {path}: {e}[/red]")
        raise typer.Exit(1)


@migrate_app.command("v1")
def migrate_from_v1(
    old_db: Path = typer.Argument(..., help="First-generation document with a 'recipients' map"),
    entries: Path = typer.Argument(..., help="Exported fuse entry list (beneficiary, amount, id)"),
    out: Path = typer.Argument(..., help="Where to write the converted store"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing output document"),
):
    """Convert a one-fuse-per-requester document into the current store schema."""
    if out.exists() and not force:
        console.print(f"[red]{out} already exists (use --force to overwrite)[/red]")
        raise typer.Exit(1)

    config = load_cli_config()
    grants = config.grants
    old_doc = _read_json(old_db)
    if not isinstance(old_doc, dict):
        console.print(f"[red]{old_db} is not a JSON object[/red]")
        raise typer.Exit(1)

    try:
        store, skipped = migrate_v1(
            old_doc,
            _read_json(entries),
            grants.to_base_units(grants.default_max_quota),
            grants.beneficiary_pattern,
        )
    except (KeyError, TypeError, ValueError) as e:
        console.print(f"[red]Migration failed: {e}[/red]")
        raise typer.Exit(1)

    target = EntryStore(out, store.default_max_quota)
    target.store = store
    target.save()

    console.print(f"[green]Migrated {len(store.users)} requesters to {out}[/green]")
    if skipped:
        console.print(f"[yellow]Skipped {len(skipped)} requesters without a matching entry: {', '.join(skipped)}[/yellow]")
