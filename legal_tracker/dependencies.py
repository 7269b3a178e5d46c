from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request

from .config import AppSettings, load_settings
from .services.tracking import JobTracker

logger = logging.getLogger(__name__)

settings = load_settings()


def build_lifespan(app_settings: AppSettings, transport: Optional[httpx.AsyncBaseTransport] = None):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        tracker = JobTracker.from_settings(app_settings, transport=transport)
        app.state.tracker = tracker
        logger.info("Tracking jobs against %s", app_settings.api_url)
        try:
            yield
        finally:
            await tracker.aclose()

    return lifespan


def get_tracker(request: Request) -> JobTracker:
    return request.app.state.tracker


def get_settings(request: Request) -> AppSettings:
    return request.app.state.settings
