"""Faucet daemon application package.

Creates the FastAPI app, registers routers, and wires up lifecycle events.
Re-exports `app` so uvicorn can serve `faucet.daemon.app:app`.
"""

import os
from dotenv import load_dotenv
from fastapi import FastAPI

from faucet import __version__
from ..utils.logging_config import setup_logging
from .admin import router as admin_router
from .lifecycle import startup_event, shutdown_event


def create_app(with_lifecycle: bool = True) -> FastAPI:
    application = FastAPI(title="Faucet", version=__version__)
    application.state.ctx = None

    if with_lifecycle:
        @application.on_event("startup")
        async def _startup():
            await startup_event(application)

        @application.on_event("shutdown")
        async def _shutdown():
            await shutdown_event(application)

    application.include_router(admin_router)
    return application


load_dotenv()
setup_logging(os.getenv("FAUCET_LOG_LEVEL", "INFO"))

app = create_app()

__all__ = ["app", "create_app"]
