"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from snapshot_cache.interface.dependencies import ping_store, shutdown, startup
from snapshot_cache.interface.error_handlers import register_error_handlers
from snapshot_cache.interface.routes import github_router, router


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    await startup()
    try:
        yield
    finally:
        await shutdown()


def create_app() -> FastAPI:
    """Build the application; resources are created by the lifespan hook."""
    app = FastAPI(
        title="Repository Snapshot Cache",
        version="1.0.0",
        description=(
            "Serves GitHub repository metadata from a local MongoDB mirror, "
            "refreshing it from the GitHub API when it goes stale and "
            "falling back to the cached copy when GitHub is unavailable."
        ),
        lifespan=_lifespan,
    )

    register_error_handlers(app)
    app.include_router(router)
    app.include_router(github_router)

    @app.get("/health", include_in_schema=False)
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/health/ready", include_in_schema=False)
    async def ready() -> JSONResponse:
        # Liveness above never touches MongoDB; readiness does.
        if await ping_store():
            return JSONResponse({"status": "ok"})
        return JSONResponse({"status": "error", "message": "store unavailable"}, status_code=503)

    return app
