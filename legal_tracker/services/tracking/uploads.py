from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import AbstractSet, Iterable, List

from ...config import PDF_CONTENT_TYPE
from ...utils.files import format_size_mb, is_accepted_type
from .cancellation import CancellationToken
from .client import PipelineApiClient, PipelineApiError
from .conflicts import ConflictResolutionFlow
from .models import (
    BatchReport,
    Confirmed,
    ConflictContext,
    JobRecord,
    LifecycleStatus,
    LocalFailure,
    Provisional,
)
from .store import JobRecordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectedFile:
    name: str
    content: bytes
    content_type: str = PDF_CONTENT_TYPE

    @property
    def size(self) -> int:
        return len(self.content)

    def as_dict(self) -> dict:
        return {"name": self.name, "size": self.size, "size_mb": format_size_mb(self.size)}


class UploadInProgress(RuntimeError):
    pass


class UploadQueueController:
    """Submits selected files one at a time and keeps an optimistic record per file."""

    def __init__(
        self,
        store: JobRecordStore,
        client: PipelineApiClient,
        conflicts: ConflictResolutionFlow,
        *,
        accepted_content_types: AbstractSet[str] = frozenset({PDF_CONTENT_TYPE}),
    ) -> None:
        self._store = store
        self._client = client
        self._conflicts = conflicts
        self._accepted = frozenset(accepted_content_types)
        self._pending: List[SelectedFile] = []
        self._uploading = False

    @property
    def pending(self) -> List[SelectedFile]:
        return list(self._pending)

    @property
    def is_uploading(self) -> bool:
        return self._uploading

    def select(self, files: Iterable[SelectedFile]) -> List[SelectedFile]:
        accepted: List[SelectedFile] = []
        for selected in files:
            if is_accepted_type(selected.content_type, self._accepted):
                accepted.append(selected)
            else:
                logger.debug("Skipping %s: content type %r not accepted", selected.name, selected.content_type)
        self._pending = accepted
        return list(accepted)

    def clear_selection(self) -> None:
        self._pending = []

    async def submit_pending(self, token: CancellationToken) -> BatchReport:
        return await self.submit_batch(self._pending, token)

    async def submit_batch(self, files: Iterable[SelectedFile], token: CancellationToken) -> BatchReport:
        if self._uploading:
            raise UploadInProgress("An upload batch is already running")
        batch = list(files)
        report = BatchReport()
        self._uploading = True
        try:
            for selected in batch:
                await self._submit_one(selected, token, report)
        finally:
            self._pending = []
            self._uploading = False
        logger.info(
            "Upload batch finished: %d tracked, %d failed, %d already processed",
            len(report.tracked),
            len(report.failed),
            len(report.conflicts),
        )
        return report

    async def _submit_one(self, selected: SelectedFile, token: CancellationToken, report: BatchReport) -> None:
        temp = JobRecord(
            identity=Provisional.new(),
            display_name=selected.name,
            lifecycle_status=LifecycleStatus.SUBMITTING,
        )
        self._store.insert(temp)

        try:
            result = await token.run(self._client.submit(selected.name, selected.content, selected.content_type))
        except PipelineApiError as exc:
            failed = replace(
                temp,
                identity=LocalFailure.new(),
                lifecycle_status=LifecycleStatus.FAILED,
                error_message=str(exc) or "Upload failed",
            )
            self._store.replace(temp.id, failed)
            report.failed.append(failed.id)
            logger.warning("Upload of %s failed: %s", selected.name, exc)
            return

        if result.already_processed:
            self._store.replace(temp.id, None)
            context = ConflictContext(filename=result.filename, existing_files=result.existing_files)
            report.conflicts.append(context)
            self._conflicts.open(context)
            return

        confirmed = replace(
            temp,
            identity=Confirmed(result.file_id or ""),
            lifecycle_status=LifecycleStatus.SUBMITTED,
        )
        self._store.replace(temp.id, confirmed)
        report.tracked.append(confirmed.id)
