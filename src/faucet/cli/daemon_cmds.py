"""Daemon lifecycle commands: start, stop, status."""

import os
import signal
import subprocess
import sys

import httpx
import typer

from . import daemon_app, console, FAUCET_DIR, PID_FILE, LOG_DIR, CONFIG_DIR, get_daemon_pid, load_cli_config
from ..daemon.errors import CorruptState
from ..daemon.store import EntryStore

DEFAULT_PORT = 9100


def _pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    return True


@daemon_app.command("start")
def start_daemon(
    port: int = typer.Option(DEFAULT_PORT, help="Admin HTTP port"),
    host: str = typer.Option("127.0.0.1", help="Admin HTTP bind address"),
):
    """Start the faucet daemon."""
    config = load_cli_config()
    if not config.telegram.token:
        console.print("[red]FAUCET_TELEGRAM_TOKEN is required before starting daemon.[/red]")
        raise typer.Exit(1)
    if not config.ledger.owner_address:
        console.print("[yellow]ledger.owner_address is empty; no grant will ever become active.[/yellow]")

    # The daemon refuses a corrupt store anyway; fail here with a readable message instead
    grants = config.grants
    try:
        EntryStore(config.store.path, grants.to_base_units(grants.default_max_quota)).load()
    except CorruptState as exc:
        console.print(f"[red]Store is corrupt, daemon not started: {exc}[/red]")
        raise typer.Exit(1)

    FAUCET_DIR.mkdir(parents=True, exist_ok=True)
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    pid = get_daemon_pid()
    if pid:
        if _pid_alive(pid):
            console.print(f"[red]Daemon already running (PID {pid})[/red]")
            return
        console.print("[yellow]Stale PID file found, removing...[/yellow]")
        PID_FILE.unlink()

    console.print(f"[green]Starting faucet daemon on {host}:{port}...[/green]")

    env = os.environ.copy()
    env["FAUCET_LOG_DIR"] = str(LOG_DIR)
    env.setdefault("FAUCET_CONFIG_DIR", str(CONFIG_DIR))

    cmd = [
        sys.executable, "-m", "uvicorn",
        "faucet.daemon.app:app",
        "--host", host,
        "--port", str(port),
    ]

    with open(LOG_DIR / "daemon.out", "a") as log_file:
        proc = subprocess.Popen(cmd, env=env, stdout=log_file, stderr=subprocess.STDOUT)

    PID_FILE.write_text(str(proc.pid))

    console.print(f"Daemon started with PID {proc.pid}")
    console.print(f"Store: {config.store.path}")
    console.print(f"Logs: {LOG_DIR}/daemon.out")


@daemon_app.command("stop")
def stop_daemon():
    """Stop the faucet daemon. Shutdown saves the store one last time."""
    pid = get_daemon_pid()
    if not pid:
        console.print("[red]Daemon not running (PID file not found)[/red]")
        return

    try:
        os.kill(pid, signal.SIGTERM)
        console.print(f"[green]Stopped daemon (PID {pid})[/green]")
    except ProcessLookupError:
        console.print("[yellow]Daemon process not found, cleaning up PID file[/yellow]")
    if PID_FILE.exists():
        PID_FILE.unlink()


@daemon_app.command("status")
def status_daemon(port: int = typer.Option(DEFAULT_PORT, help="Admin HTTP port")):
    """Check daemon status and readiness."""
    pid = get_daemon_pid()
    if not pid or not _pid_alive(pid):
        console.print("[red]Daemon is NOT running[/red]")
        return

    console.print(f"[green]Daemon is running (PID {pid})[/green]")
    try:
        response = httpx.get(f"http://127.0.0.1:{port}/ready", timeout=5.0)
        report = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        console.print(f"[yellow]Readiness unknown: {exc}[/yellow]")
        return

    if report.get("ready"):
        console.print("Ready: [green]yes[/green]")
    else:
        console.print("Ready: [red]no[/red]")
        for name, check in (report.get("checks") or {}).items():
            if not check.get("ok"):
                console.print(f"  {name}: {check.get('error') or check.get('failed')}")
