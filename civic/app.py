"""
FastAPI application entry point for the civic backend.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from civic.config import Settings, get_settings
from civic.dependencies import build_db_client, build_sync_service
from civic.errors import register_exception_handlers
from civic.routes import router
from civic.x_updates import SyncScheduler


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    db = build_db_client(settings)
    sync_service = build_sync_service(settings, db)
    scheduler = (
        SyncScheduler(sync_service, settings.x_sync_interval_seconds)
        if settings.x_sync_enabled
        else None
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if scheduler:
            scheduler.start()
        try:
            yield
        finally:
            if scheduler:
                scheduler.stop()

    app = FastAPI(
        title="Oluora Civic Engagement Platform API",
        description=(
            "API for managing community projects, townhalls, votes, "
            "and X updates in Abia State"
        ),
        version="1.0.0",
        docs_url="/api-docs",
        servers=[{"url": settings.api_base_url}],
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db = db
    app.state.sync_service = sync_service
    app.state.scheduler = scheduler

    register_exception_handlers(app)
    app.include_router(router, prefix=settings.api_prefix)

    @app.get("/health", include_in_schema=False)
    def health() -> dict:
        return {"status": "ok"}

    return app
