# leadcomps/entrypoints/fastapi_app.py
from __future__ import annotations

import logging

from fastapi import FastAPI

from ..config import settings
from ..db import create_all
from .api.routers import comparables, config, health, rental


def create_app() -> FastAPI:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="LeadComps - Comparables & Rental Valuation")

    @app.on_event("startup")
    async def _startup() -> None:
        # Single place where DB tables are created in dev.
        await create_all()

    app.include_router(health.router)
    app.include_router(comparables.router)
    app.include_router(config.router)
    app.include_router(rental.router)

    return app
