# sellerscore/entrypoints/fastapi_app.py
from __future__ import annotations

from fastapi import FastAPI

from ..db import AsyncSessionLocal, engine
from ..logging_setup import configure_logging
from ..models import Base
from ..service_layer.motivation import MotivationEngine, build_engine
from .api.routers import health, motivation


def create_app(motivation_engine: MotivationEngine | None = None, *, create_tables: bool = True) -> FastAPI:
    configure_logging()
    app = FastAPI(title="DealFlow - Seller Motivation Scoring")
    app.state.engine = motivation_engine or build_engine(AsyncSessionLocal)

    if create_tables:
        @app.on_event("startup")
        async def _startup() -> None:
            # Single place where DB tables are created in dev.
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

    # Routers
    app.include_router(health.router)
    app.include_router(motivation.router)

    return app
