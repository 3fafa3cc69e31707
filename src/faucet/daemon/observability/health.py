"""Liveness and readiness helpers."""

from __future__ import annotations

from datetime import datetime, UTC
from typing import Optional

from faucet import __version__
from ..context import AppContext
from ..utils.invariants import run_all_checks


def liveness_report() -> dict:
    return {
        "status": "ok",
        "version": __version__,
        "ts": datetime.now(UTC).isoformat(),
    }


def readiness_report(ctx: Optional[AppContext]) -> tuple[bool, dict]:
    checks: dict[str, dict] = {}
    ready = True

    if ctx is None or not ctx.entry_store.loaded:
        checks["store"] = {"ok": False, "error": "store not loaded"}
        return False, {"ready": False, "checks": checks, "ts": datetime.now(UTC).isoformat()}

    checks["store"] = {"ok": True, "path": str(ctx.entry_store.path)}

    failed = [c for c in run_all_checks(ctx.entry_store.store) if not c.passed]
    checks["invariants"] = {
        "ok": not failed,
        "failed": [{"name": c.name, "detail": c.detail} for c in failed],
    }
    if failed:
        ready = False

    return ready, {"ready": ready, "checks": checks, "ts": datetime.now(UTC).isoformat()}
