"""
FastAPI application factory for the face position service.

Routes:
- /healthz -> liveness check
- /faces -> latest detection snapshot (JSON, ETag/If-None-Match)
- /* -> static display client (index.html, js, css)
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from runtime.store import SnapshotStore
from .routes import api


def create_app(store: SnapshotStore, static_dir: Optional[str] = None) -> FastAPI:
    """Create the FastAPI app and wire routes/static assets."""
    app = FastAPI(
        title="Face Position Service",
        version="0.1.0",
        description="Latest face detections for overlay display clients",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.store = store

    # Display clients are served from other origins/ports
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "HEAD", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["ETag"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        t0 = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            elapsed_ms = (time.perf_counter() - t0) * 1000
            logging.exception(f"[http] {request.method} {request.url.path} failed after {elapsed_ms:.1f}ms")
            raise
        elapsed_ms = (time.perf_counter() - t0) * 1000
        logging.info(
            f"[http] {request.method} {request.url.path} {response.status_code} {elapsed_ms:.1f}ms"
        )
        return response

    app.include_router(api.router)

    # Static site last so it never shadows the API routes
    if static_dir:
        static_path = Path(static_dir)
        if static_path.is_dir():
            app.mount("/", StaticFiles(directory=str(static_path), html=True), name="static")
            logging.info(f"[http] serving static from {static_path}")
        else:
            logging.warning(f"[http] static directory {static_path} not found, not serving files")

    return app
