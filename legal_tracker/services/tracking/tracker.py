from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

import httpx

from ...config import PDF_CONTENT_TYPE, AppSettings
from .cancellation import CancellationToken
from .client import PipelineApiClient, PipelineApiError
from .conflicts import ConflictResolutionFlow, ConflictState
from .models import BatchReport, CompletedJobSummary, JobRecord, LifecycleStatus
from .notifications import Notifier
from .reconciler import StatusReconciler
from .stages import stage_rows
from .store import JobRecordStore
from .uploads import SelectedFile, UploadInProgress, UploadQueueController

logger = logging.getLogger(__name__)


def format_job_row(record: JobRecord) -> Dict[str, Any]:
    return {
        "id": record.id,
        "name": record.display_name,
        "status": record.lifecycle_status.value,
        "provisional": record.is_provisional,
        "submitted_at": record.submitted_at,
        "error": record.error_message,
        "stages": stage_rows(record.stages),
    }


class JobTracker:
    """One consuming scope: owns the record store and every flow that writes to it."""

    def __init__(
        self,
        client: PipelineApiClient,
        *,
        poll_interval: float = 3.0,
        accepted_content_types: Iterable[str] = (PDF_CONTENT_TYPE,),
        notification_history: int = 50,
    ) -> None:
        self.client = client
        self.token = CancellationToken()
        self.store = JobRecordStore()
        self.notifier = Notifier(history=notification_history)
        self.conflicts = ConflictResolutionFlow(self.store, client, self.notifier)
        self.uploads = UploadQueueController(
            self.store,
            client,
            self.conflicts,
            accepted_content_types=frozenset(accepted_content_types),
        )
        self.reconciler = StatusReconciler(self.store, client, self.token, interval=poll_interval)

    @classmethod
    def from_settings(
        cls,
        settings: AppSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "JobTracker":
        client = PipelineApiClient(
            settings.api_url,
            timeout=settings.api_timeout,
            connect_timeout=settings.api_connect_timeout,
            transport=transport,
        )
        return cls(
            client,
            poll_interval=settings.status_poll_interval,
            accepted_content_types=settings.accepted_content_types,
            notification_history=settings.notification_history,
        )

    @property
    def busy(self) -> bool:
        return self.uploads.is_uploading or self.conflicts.state is ConflictState.REPROCESSING

    def select(self, files: Iterable[SelectedFile]) -> List[SelectedFile]:
        return self.uploads.select(files)

    async def upload(self, files: Optional[Iterable[SelectedFile]] = None) -> BatchReport:
        if self.busy:
            raise UploadInProgress("Another upload or reprocess request is still running")
        if files is not None:
            self.uploads.select(files)
        return await self.uploads.submit_pending(self.token)

    async def reprocess(self) -> Optional[JobRecord]:
        return await self.conflicts.reprocess(self.token)

    def close_conflict(self) -> None:
        self.conflicts.close()

    async def refresh(self) -> bool:
        return await self.reconciler.poll_once()

    async def clear_completed(self) -> bool:
        try:
            await self.token.run(self.client.clear_completed())
        except PipelineApiError as exc:
            logger.error("Error clearing completed documents: %s", exc)
            self.notifier.error("Failed to clear completed documents")
            return False
        self.store.remove_completed()
        self.reconciler.clear_completed_projection()
        self.notifier.info("Completed documents cleared successfully!")
        return True

    def active_rows(self) -> List[Dict[str, Any]]:
        return [
            format_job_row(record)
            for record in self.store.records()
            if record.lifecycle_status is not LifecycleStatus.COMPLETED
        ]

    def completed(self) -> List[CompletedJobSummary]:
        return self.reconciler.completed

    def snapshot(self) -> Dict[str, Any]:
        context = self.conflicts.context
        return {
            "busy": self.busy,
            "pending_selection": [f.as_dict() for f in self.uploads.pending],
            "jobs": self.active_rows(),
            "completed": [summary.as_dict() for summary in self.completed()],
            "active_count": self.store.active_count(),
            "conflict": {
                "state": self.conflicts.state.value,
                "context": context.as_dict() if context else None,
            },
            "polling": self.reconciler.snapshot(),
        }

    async def aclose(self) -> None:
        self.token.cancel()
        await self.reconciler.aclose()
        await self.client.aclose()
