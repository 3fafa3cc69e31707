"""Faucet CLI: modular command package."""

from pathlib import Path

import typer
from rich.console import Console

from ..daemon.utils.config_loader import ConfigLoader, FaucetConfig

# ── Shared state ────────────────────────────────────────────────────────────

app = typer.Typer(help="Faucet - quota-bounded plasma fuse bot")
console = Console()

# Sub-command groups
daemon_app = typer.Typer()
store_app = typer.Typer()
migrate_app = typer.Typer()

app.add_typer(daemon_app, name="daemon", help="Manage the faucet daemon process")
app.add_typer(store_app, name="store", help="Inspect the persisted grant store")
app.add_typer(migrate_app, name="migrate", help="Convert older store documents")

# ── Path constants ──────────────────────────────────────────────────────────

FAUCET_DIR = Path.home() / ".faucet"
PID_FILE = FAUCET_DIR / "faucet.pid"
LOG_DIR = FAUCET_DIR / "logs"
CONFIG_DIR = FAUCET_DIR / "config"
CONFIG_FILE = CONFIG_DIR / "faucet.yaml"

DEFAULT_CONFIG_YAML = """version: 1
bot_name: free plasma bot

telegram:
  # token is read from FAUCET_TELEGRAM_TOKEN
  api_base: https://api.telegram.org
  poll_timeout_seconds: 30

ledger:
  # url and owner_address may be set with FAUCET_LEDGER_URL / FAUCET_OWNER_ADDRESS
  url: http://127.0.0.1:35997
  owner_address: ""
  page_size: 1024
  timeout_seconds: 30

store:
  path: ~/.faucet/db.json

grants:
  symbol: QSR
  decimals: 8
  min_amount: 10
  default_amount: 10
  default_max_quota: 50
  pending_timeout_seconds: 180
  lock_duration_seconds: 36000

scheduler:
  command_tick_ms: 100
  reconcile_interval_seconds: 10
  drain_order: lifo
"""


# ── Shared helpers ──────────────────────────────────────────────────────────

def get_daemon_pid():
    if PID_FILE.exists():
        try:
            return int(PID_FILE.read_text().strip())
        except ValueError:
            return None
    return None


def load_cli_config() -> FaucetConfig:
    try:
        return ConfigLoader().load_config()
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


# ── Init command (lives at top level, so defined here) ──────────────────────

@app.command("init")
def init_faucet():
    """Create local runtime folders and a default faucet.yaml."""
    console.print(f"[bold]Initializing faucet runtime in {FAUCET_DIR}...[/bold]")

    FAUCET_DIR.mkdir(parents=True, exist_ok=True)
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    if CONFIG_FILE.exists():
        console.print(f"[yellow]{CONFIG_FILE} already exists, leaving it untouched.[/yellow]")
    else:
        console.print("Creating default faucet.yaml...")
        CONFIG_FILE.write_text(DEFAULT_CONFIG_YAML)

    console.print("[green]Faucet initialized.[/green]")
    console.print("Set FAUCET_TELEGRAM_TOKEN and FAUCET_OWNER_ADDRESS (or a .env file) before starting.")


# ── Register submodule commands (import triggers decorator registration) ────

from . import daemon_cmds   # noqa: E402, F401
from . import store_cmds    # noqa: E402, F401
from . import migrate_cmds  # noqa: E402, F401
