"""
Render worker HTTP API – one synchronous render per ``POST /``.

The uploader is built once in the lifespan hook (the process's composition
root) and handed to every job; nothing else is shared between requests.
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .jobs import run_job
from .schema import JobResult
from .storage import VideoUploader

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    uploader: VideoUploader | None = None,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.settings = settings or get_settings()
        app.state.uploader = uploader or VideoUploader.from_settings(app.state.settings)
        yield

    app = FastAPI(title="Render Worker", lifespan=lifespan)

    @app.get("/health")
    async def health():
        return {"ok": True}

    @app.post("/")
    async def render(request: Request):
        try:
            body = await request.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        logger.info("[worker] received request: %s", json.dumps(body, indent=2))

        try:
            return await run_job(
                body,
                settings=request.app.state.settings,
                uploader=request.app.state.uploader,
            )
        except Exception as exc:
            logger.error("[worker] error processing request: %s", exc)
            failed = JobResult.failed(str(exc) or "Unknown error during processing")
            return JSONResponse(failed.to_payload(), status_code=500)

    return app


app = create_app()
