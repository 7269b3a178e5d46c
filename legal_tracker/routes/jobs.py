from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from ..dependencies import get_tracker
from ..schemas import ActionResult, BatchReportResponse, CompletedRow, JobRow
from ..services.tracking import JobTracker, SelectedFile, UploadInProgress

router = APIRouter()


async def _read_uploads(uploads: List[UploadFile]) -> List[SelectedFile]:
    selected: List[SelectedFile] = []
    for upload in uploads:
        content = await upload.read()
        await upload.close()
        selected.append(
            SelectedFile(
                name=upload.filename or "upload.pdf",
                content=content,
                content_type=upload.content_type or "",
            )
        )
    return selected


def _collect(files: Optional[List[UploadFile]], file: Optional[UploadFile]) -> List[UploadFile]:
    uploads: List[UploadFile] = []
    if files:
        uploads.extend(files)
    if file:
        uploads.append(file)
    return uploads


@router.post("/selection")
async def select_files(
    files: Optional[List[UploadFile]] = File(None),
    file: Optional[UploadFile] = File(None),
    tracker: JobTracker = Depends(get_tracker),
) -> Dict[str, Any]:
    selected = await _read_uploads(_collect(files, file))
    accepted = tracker.select(selected)
    accepted_names = {f.name for f in accepted}
    return {
        "pending": [f.as_dict() for f in accepted],
        "skipped": [f.name for f in selected if f.name not in accepted_names],
    }


@router.post("/upload", response_model=BatchReportResponse)
async def upload_files(
    files: Optional[List[UploadFile]] = File(None),
    file: Optional[UploadFile] = File(None),
    tracker: JobTracker = Depends(get_tracker),
) -> Dict[str, Any]:
    if tracker.busy:
        raise HTTPException(status_code=409, detail="Another upload or reprocess request is still running")
    uploads = _collect(files, file)
    skipped: List[str] = []
    if uploads:
        selected = await _read_uploads(uploads)
        accepted = tracker.select(selected)
        accepted_names = {f.name for f in accepted}
        skipped = [f.name for f in selected if f.name not in accepted_names]
    if not tracker.uploads.pending:
        raise HTTPException(status_code=400, detail="No PDF files selected")
    try:
        report = await tracker.upload()
    except UploadInProgress as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return {**report.as_dict(), "skipped": skipped}


@router.get("/jobs", response_model=List[JobRow])
async def list_jobs(tracker: JobTracker = Depends(get_tracker)) -> List[Dict[str, Any]]:
    return tracker.active_rows()


@router.get("/jobs/completed", response_model=List[CompletedRow])
async def list_completed(tracker: JobTracker = Depends(get_tracker)) -> List[Dict[str, Any]]:
    return [summary.as_dict() for summary in tracker.completed()]


@router.post("/refresh", response_model=ActionResult)
async def refresh(tracker: JobTracker = Depends(get_tracker)) -> Dict[str, Any]:
    ok = await tracker.refresh()
    return {"ok": ok, "detail": None if ok else "Status poll failed"}


@router.post("/clear-completed", response_model=ActionResult)
async def clear_completed(tracker: JobTracker = Depends(get_tracker)) -> Dict[str, Any]:
    if not await tracker.clear_completed():
        raise HTTPException(status_code=502, detail="Failed to clear completed documents")
    return {"ok": True, "detail": "Completed documents cleared successfully!"}
