from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from .models import (
    BlobUpload,
    JobOutput,
    LifecycleStatus,
    OutputLink,
    RemoteJob,
    ReprocessResult,
    SharePointUpload,
    StageState,
    StageStatus,
    SubmitResult,
    WordPressUpload,
)
from .stages import stage_key_from_wire

logger = logging.getLogger(__name__)

_LIFECYCLE_ALIASES = {
    "uploading": LifecycleStatus.SUBMITTING,
    "submitting": LifecycleStatus.SUBMITTING,
    "uploaded": LifecycleStatus.SUBMITTED,
    "submitted": LifecycleStatus.SUBMITTED,
    "queued": LifecycleStatus.SUBMITTED,
    "pending": LifecycleStatus.SUBMITTED,
    "processing": LifecycleStatus.PROCESSING,
    "in_progress": LifecycleStatus.PROCESSING,
    "running": LifecycleStatus.PROCESSING,
    "completed": LifecycleStatus.COMPLETED,
    "done": LifecycleStatus.COMPLETED,
    "failed": LifecycleStatus.FAILED,
    "error": LifecycleStatus.FAILED,
}

_STAGE_STATE_ALIASES = {
    "pending": StageState.PENDING,
    "queued": StageState.PENDING,
    "in_progress": StageState.IN_PROGRESS,
    "processing": StageState.IN_PROGRESS,
    "running": StageState.IN_PROGRESS,
    "completed": StageState.COMPLETED,
    "done": StageState.COMPLETED,
    "failed": StageState.FAILED,
    "error": StageState.FAILED,
}


class PipelineApiError(RuntimeError):
    def __init__(self, message: str, *, status_code: Optional[int] = None, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


def parse_lifecycle(raw: Any) -> LifecycleStatus:
    value = str(raw or "").strip().lower()
    status = _LIFECYCLE_ALIASES.get(value)
    if status is None:
        logger.debug("Unknown remote job status %r; treating as processing", raw)
        return LifecycleStatus.PROCESSING
    return status


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text or None


def _int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _parse_links(raw: Any) -> Tuple[OutputLink, ...]:
    links: List[OutputLink] = []
    for item in raw or []:
        if isinstance(item, dict) and item.get("url"):
            links.append(OutputLink(name=str(item.get("name") or item["url"]), url=str(item["url"])))
        elif isinstance(item, str) and item:
            links.append(OutputLink(name=item.rsplit("/", 1)[-1] or item, url=item))
    return tuple(links)


def parse_stage(raw: Dict[str, Any]) -> Optional[StageStatus]:
    key = stage_key_from_wire(raw.get("step"))
    if key is None:
        logger.debug("Ignoring unknown pipeline step %r", raw.get("step"))
        return None
    state = _STAGE_STATE_ALIASES.get(str(raw.get("status") or "").strip().lower(), StageState.PENDING)
    return StageStatus(
        stage_key=key,
        state=state,
        message=_opt_str(raw.get("message")),
        error_detail=_opt_str(raw.get("error")),
        updated_at=_opt_str(raw.get("updated_at")),
    )


def parse_output(raw: Dict[str, Any]) -> JobOutput:
    sharepoint = raw.get("sharepoint")
    wordpress = raw.get("wordpress")
    azure_blob = raw.get("azure_blob")
    return JobOutput(
        total_chunks=_int(raw.get("total_chunks")),
        successful_chunks=_int(raw.get("successful_chunks")),
        failed_chunks=_int(raw.get("failed_chunks")),
        cost=_opt_str(raw.get("cost")),
        processed_time=_opt_str(raw.get("processed_time")),
        processing_duration=_opt_str(raw.get("processing_duration")),
        sharepoint=SharePointUpload(
            uploaded=bool(sharepoint.get("uploaded")),
            files_count=_int(sharepoint.get("files_count")),
        ) if isinstance(sharepoint, dict) else None,
        wordpress=WordPressUpload(
            uploaded=bool(wordpress.get("uploaded")),
            urls=tuple(str(u) for u in wordpress.get("urls") or [] if u),
        ) if isinstance(wordpress, dict) else None,
        azure_blob=BlobUpload(
            uploaded=bool(azure_blob.get("uploaded")),
            links=_parse_links(azure_blob.get("urls")),
        ) if isinstance(azure_blob, dict) else None,
        output_files=tuple(str(name) for name in raw.get("docx_files") or [] if name),
    )


def parse_remote_job(raw: Dict[str, Any]) -> RemoteJob:
    stages = []
    for item in raw.get("progress") or raw.get("stages") or []:
        if isinstance(item, dict):
            stage = parse_stage(item)
            if stage is not None:
                stages.append(stage)
    return RemoteJob(
        id=str(raw.get("id") or ""),
        original_file=str(raw.get("original_file") or ""),
        lifecycle_status=parse_lifecycle(raw.get("status")),
        stages=tuple(stages),
        output=parse_output(raw),
        error=_opt_str(raw.get("error")),
    )


def parse_snapshot(payload: Any) -> List[RemoteJob]:
    if not isinstance(payload, dict):
        raise PipelineApiError("Status response is not an object")
    files = payload.get("files")
    if files is None:
        return []
    if not isinstance(files, list):
        raise PipelineApiError("Status response 'files' is not a list")
    return [parse_remote_job(item) for item in files if isinstance(item, dict)]


class PipelineApiClient:
    """Async client for the remote document processing pipeline."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 120.0,
        connect_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = httpx.Timeout(timeout, connect=connect_timeout)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def base_url(self) -> str:
        return self._base_url

    def _http(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, *, action: str, **kwargs: Any) -> httpx.Response:
        url = f"{self._base_url}/{path.lstrip('/')}"
        try:
            response = await self._http().request(method, url, **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text if exc.response is not None else str(exc)
            raise PipelineApiError(
                f"{action} failed ({exc.response.status_code})",
                status_code=exc.response.status_code,
                detail=detail,
            ) from exc
        except httpx.RequestError as exc:
            raise PipelineApiError(f"{action} request failed: {exc}") from exc

    @staticmethod
    def _json(response: httpx.Response, action: str) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise PipelineApiError(f"{action} returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise PipelineApiError(f"{action} returned an unexpected payload")
        return payload

    async def submit(self, filename: str, content: bytes, content_type: str = "application/pdf") -> SubmitResult:
        response = await self._request(
            "POST",
            "/upload",
            action="Upload",
            files={"file": (filename, content, content_type)},
        )
        payload = self._json(response, "Upload")
        returned_name = str(payload.get("filename") or filename)
        if payload.get("already_processed"):
            return SubmitResult(
                filename=returned_name,
                already_processed=True,
                existing_files=_parse_links(payload.get("existing_files")),
            )
        file_id = payload.get("file_id")
        if not file_id:
            raise PipelineApiError("Upload response missing file_id")
        return SubmitResult(filename=returned_name, file_id=str(file_id))

    async def reprocess(self, filename: str) -> ReprocessResult:
        response = await self._request("POST", "/reprocess", action="Reprocess", json={"filename": filename})
        payload = self._json(response, "Reprocess")
        file_id = payload.get("file_id")
        if not file_id:
            raise PipelineApiError("Reprocess response missing file_id")
        return ReprocessResult(file_id=str(file_id), filename=str(payload.get("filename") or filename))

    async def poll_status(self) -> List[RemoteJob]:
        response = await self._request("GET", "/status", action="Status poll")
        try:
            payload = response.json()
        except ValueError as exc:
            raise PipelineApiError("Status poll returned invalid JSON") from exc
        return parse_snapshot(payload)

    async def clear_completed(self) -> None:
        await self._request("POST", "/clear-completed", action="Clear completed")
