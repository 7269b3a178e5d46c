from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class StageRow(BaseModel):
    key: str
    label: str
    state: str
    message: Optional[str] = None
    error: Optional[str] = None
    updated_at: Optional[str] = None
    reported: bool = False


class JobRow(BaseModel):
    id: str
    name: str
    status: str
    provisional: bool = False
    submitted_at: str
    error: Optional[str] = None
    stages: List[StageRow] = Field(default_factory=list)


class DownloadLink(BaseModel):
    name: str
    url: str


class CompletedRow(BaseModel):
    id: str
    original_file: str
    processed_time: Optional[str] = None
    processing_duration: Optional[str] = None
    total_chunks: int = 0
    successful_chunks: int = 0
    failed_chunks: int = 0
    cost: Optional[str] = None
    downloads: List[DownloadLink] = Field(default_factory=list)
    output_files: List[str] = Field(default_factory=list)
    wordpress_urls: List[str] = Field(default_factory=list)
    destinations: Dict[str, bool] = Field(default_factory=dict)


class ConflictView(BaseModel):
    filename: str
    existing_files: List[DownloadLink] = Field(default_factory=list)


class ConflictStatus(BaseModel):
    state: str
    context: Optional[ConflictView] = None


class BatchReportResponse(BaseModel):
    tracked: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)
    conflicts: List[ConflictView] = Field(default_factory=list)
    total: int = 0
    skipped: List[str] = Field(default_factory=list)


class NotificationView(BaseModel):
    level: str
    message: str
    blocking: bool = False
    created_at: str


class ActionResult(BaseModel):
    ok: bool
    detail: Optional[str] = None
    extra: Dict[str, Any] = Field(default_factory=dict)
