from __future__ import annotations

import logging
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import AppSettings
from .dependencies import build_lifespan, settings
from .routes import conflict, jobs, system


def create_app(
    app_settings: Optional[AppSettings] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    app_settings = app_settings or settings
    app = FastAPI(
        title="Legal Processor Tracker",
        version=__version__,
        lifespan=build_lifespan(app_settings, transport),
    )
    app.state.settings = app_settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[app_settings.frontend_origin, "http://localhost", "http://127.0.0.1"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(system.router)
    app.include_router(jobs.router)
    app.include_router(conflict.router)
    return app


app = create_app()


def main() -> None:
    import uvicorn

    logging.basicConfig(level=settings.log_level)
    uvicorn.run("legal_tracker.app:app", host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
