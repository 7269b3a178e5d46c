from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_tracker
from ..schemas import ActionResult, ConflictStatus
from ..services.tracking import ConflictStateError, JobTracker
from ..services.tracking.tracker import format_job_row

router = APIRouter(prefix="/conflict")


@router.get("", response_model=ConflictStatus)
async def conflict_status(tracker: JobTracker = Depends(get_tracker)) -> Dict[str, Any]:
    context = tracker.conflicts.context
    return {
        "state": tracker.conflicts.state.value,
        "context": context.as_dict() if context else None,
    }


@router.post("/close", response_model=ActionResult)
async def close_conflict(tracker: JobTracker = Depends(get_tracker)) -> Dict[str, Any]:
    try:
        tracker.close_conflict()
    except ConflictStateError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return {"ok": True}


@router.post("/reprocess", response_model=ActionResult)
async def reprocess(tracker: JobTracker = Depends(get_tracker)) -> Dict[str, Any]:
    try:
        record = await tracker.reprocess()
    except ConflictStateError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    if record is None:
        return {"ok": False, "detail": "Failed to reprocess file"}
    return {"ok": True, "extra": {"job": format_job_row(record)}}
