from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union
from uuid import uuid4


def utc_now() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="seconds")


class LifecycleStatus(str, Enum):
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (LifecycleStatus.COMPLETED, LifecycleStatus.FAILED)


ACTIVE_STATUSES = frozenset(
    {LifecycleStatus.SUBMITTING, LifecycleStatus.SUBMITTED, LifecycleStatus.PROCESSING}
)


class StageState(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


# Job identity is a tagged variant. A record starts Provisional while its upload
# is in flight and becomes Confirmed once the server has issued an id.
# LocalFailure marks a submission that never reached the pipeline.


@dataclass(frozen=True)
class Provisional:
    value: str

    @classmethod
    def new(cls) -> "Provisional":
        return cls(f"temp-{uuid4().hex}")


@dataclass(frozen=True)
class Confirmed:
    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise ValueError("Confirmed job id must be non-empty")


@dataclass(frozen=True)
class LocalFailure:
    value: str

    @classmethod
    def new(cls) -> "LocalFailure":
        return cls(f"error-{uuid4().hex}")


JobIdentity = Union[Provisional, Confirmed, LocalFailure]


@dataclass(frozen=True)
class StageStatus:
    stage_key: str
    state: StageState = StageState.PENDING
    message: Optional[str] = None
    error_detail: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass(frozen=True)
class OutputLink:
    name: str
    url: str

    def as_dict(self) -> Dict[str, str]:
        return {"name": self.name, "url": self.url}


@dataclass(frozen=True)
class SharePointUpload:
    uploaded: bool = False
    files_count: int = 0


@dataclass(frozen=True)
class WordPressUpload:
    uploaded: bool = False
    urls: Tuple[str, ...] = ()


@dataclass(frozen=True)
class BlobUpload:
    uploaded: bool = False
    links: Tuple[OutputLink, ...] = ()


@dataclass(frozen=True)
class JobOutput:
    """Output metadata reported by the pipeline for a job."""
    total_chunks: int = 0
    successful_chunks: int = 0
    failed_chunks: int = 0
    cost: Optional[str] = None
    processed_time: Optional[str] = None
    processing_duration: Optional[str] = None
    sharepoint: Optional[SharePointUpload] = None
    wordpress: Optional[WordPressUpload] = None
    azure_blob: Optional[BlobUpload] = None
    output_files: Tuple[str, ...] = ()


@dataclass(frozen=True)
class JobRecord:
    identity: JobIdentity
    display_name: str
    lifecycle_status: LifecycleStatus
    submitted_at: str = field(default_factory=utc_now)
    error_message: Optional[str] = None
    stages: Tuple[StageStatus, ...] = ()
    output: Optional[JobOutput] = None

    @property
    def id(self) -> str:
        return self.identity.value

    @property
    def is_provisional(self) -> bool:
        return isinstance(self.identity, Provisional)

    @property
    def is_active(self) -> bool:
        return self.lifecycle_status in ACTIVE_STATUSES


@dataclass(frozen=True)
class RemoteJob:
    """One entry of a status snapshot as reported by the pipeline."""
    id: str
    original_file: str
    lifecycle_status: LifecycleStatus
    stages: Tuple[StageStatus, ...] = ()
    output: Optional[JobOutput] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class SubmitResult:
    filename: str
    already_processed: bool = False
    file_id: Optional[str] = None
    existing_files: Tuple[OutputLink, ...] = ()


@dataclass(frozen=True)
class ReprocessResult:
    file_id: str
    filename: str


@dataclass(frozen=True)
class ConflictContext:
    filename: str
    existing_files: Tuple[OutputLink, ...] = ()

    def as_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "existing_files": [link.as_dict() for link in self.existing_files],
        }


@dataclass(frozen=True)
class CompletedJobSummary:
    id: str
    display_name: str
    output: JobOutput

    @classmethod
    def from_record(cls, record: JobRecord) -> "CompletedJobSummary":
        return cls(id=record.id, display_name=record.display_name, output=record.output or JobOutput())

    @property
    def download_links(self) -> Tuple[OutputLink, ...]:
        blob = self.output.azure_blob
        return blob.links if blob else ()

    def as_dict(self) -> Dict[str, Any]:
        out = self.output
        return {
            "id": self.id,
            "original_file": self.display_name,
            "processed_time": out.processed_time,
            "processing_duration": out.processing_duration,
            "total_chunks": out.total_chunks,
            "successful_chunks": out.successful_chunks,
            "failed_chunks": out.failed_chunks,
            "cost": out.cost,
            "downloads": [link.as_dict() for link in self.download_links],
            "output_files": list(out.output_files),
            "wordpress_urls": list(out.wordpress.urls) if out.wordpress else [],
            "destinations": {
                "sharepoint": bool(out.sharepoint and out.sharepoint.uploaded),
                "wordpress": bool(out.wordpress and out.wordpress.uploaded),
                "azure": bool(out.azure_blob and out.azure_blob.uploaded),
            },
        }


@dataclass
class BatchReport:
    tracked: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    conflicts: List[ConflictContext] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "tracked": list(self.tracked),
            "failed": list(self.failed),
            "conflicts": [c.as_dict() for c in self.conflicts],
            "total": len(self.tracked) + len(self.failed) + len(self.conflicts),
        }
