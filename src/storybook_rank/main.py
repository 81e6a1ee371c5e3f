# src/storybook_rank/main.py
"""Main entry point for the Storybook Rank application."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.gzip import GZipMiddleware

from storybook_rank.api.v1 import (
    books_router,
    pages_router,
    songs_router,
    system_router,
)
from storybook_rank.core.settings import settings
from storybook_rank.services.task_queue import ReadCountWorker

# Initialize FastAPI app
app = FastAPI(
    title="Storybook Rank API",
    description="Read-count ranking and popularity for books, pages and songs",
    version=settings.app_version,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(books_router, prefix="/api/v1")
app.include_router(pages_router, prefix="/api/v1")
app.include_router(songs_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    if settings.read_worker_enabled and not settings.read_queue_sync:
        worker = ReadCountWorker()
        await worker.start()
        app.state.read_worker = worker
    else:
        app.state.read_worker = None


@app.on_event("shutdown")
async def on_shutdown() -> None:
    worker: ReadCountWorker | None = getattr(app.state, "read_worker", None)
    if worker:
        await worker.stop()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("storybook_rank.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
