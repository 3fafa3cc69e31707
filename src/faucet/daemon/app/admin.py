"""Faucet admin endpoints: health, readiness and read-only store inspection."""

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from ..observability import liveness_report, readiness_report

router = APIRouter()


def _ctx(request: Request):
    ctx = getattr(request.app.state, "ctx", None)
    if ctx is None:
        raise HTTPException(status_code=503, detail="Daemon not started")
    return ctx


@router.get("/health")
async def health():
    return liveness_report()


@router.get("/ready")
async def ready(request: Request):
    ready_ok, report = readiness_report(getattr(request.app.state, "ctx", None))
    status_code = 200 if ready_ok else 503
    return JSONResponse(content=report, status_code=status_code)


@router.get("/v1/stats")
async def stats(request: Request):
    ctx = _ctx(request)
    return ctx.entry_store.store.stats()


@router.get("/v1/requesters/{requester_id}")
async def get_requester(requester_id: str, request: Request):
    ctx = _ctx(request)
    account = ctx.entry_store.get(requester_id)
    if account is None:
        raise HTTPException(status_code=404, detail=f"Requester '{requester_id}' not found")

    payload = account.to_dict()
    payload.pop("messageLog", None)
    payload["id"] = account.id
    payload["usedQuota"] = account.used_quota()
    payload["remainingQuota"] = account.remaining_quota()
    payload["messageCount"] = len(account.message_log)
    return payload
