from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from dupsweep.api.routes.health import router as health_router
from dupsweep.api.routes.records import router as records_router
from dupsweep.api.routes.runs import router as runs_router
from dupsweep.core.config import get_settings
from dupsweep.core.logging import configure_logging
from dupsweep.db.init_db import initialize_database


@asynccontextmanager
async def lifespan(_app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level)
    initialize_database()
    yield


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.include_router(health_router, prefix="/api/v1")
    app.include_router(records_router, prefix="/api/v1")
    app.include_router(runs_router, prefix="/api/v1")
    return app
