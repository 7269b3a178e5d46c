from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from ..config import AppSettings
from ..dependencies import get_settings, get_tracker
from ..schemas import NotificationView
from ..services.tracking import PIPELINE_STAGES, JobTracker

router = APIRouter()


def _settings_snapshot(settings: AppSettings) -> Dict[str, Any]:
    return {
        "api_url": settings.api_url,
        "api_timeout_sec": settings.api_timeout,
        "status_poll_sec": settings.status_poll_interval,
        "accepted_content_types": sorted(settings.accepted_content_types),
    }


@router.get("/healthz")
async def healthz() -> Dict[str, str]:
    return {"status": "ok"}


@router.get("/status")
async def tracker_status(
    tracker: JobTracker = Depends(get_tracker),
    settings: AppSettings = Depends(get_settings),
) -> Dict[str, Any]:
    return {
        **tracker.snapshot(),
        "total_jobs": len(tracker.store),
        "stages": [{"key": s.key, "label": s.label} for s in PIPELINE_STAGES],
        "settings": _settings_snapshot(settings),
    }


@router.get("/notifications", response_model=List[NotificationView])
async def notifications(tracker: JobTracker = Depends(get_tracker)) -> List[Dict[str, Any]]:
    return [item.as_dict() for item in tracker.notifier.drain()]
