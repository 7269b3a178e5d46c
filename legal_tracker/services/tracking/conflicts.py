from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from .cancellation import CancellationToken
from .client import PipelineApiClient, PipelineApiError
from .models import Confirmed, ConflictContext, JobRecord, LifecycleStatus
from .notifications import Notifier
from .store import JobRecordStore

logger = logging.getLogger(__name__)


class ConflictState(str, Enum):
    IDLE = "idle"
    AWAITING_DECISION = "awaiting-decision"
    REPROCESSING = "reprocessing"


class ConflictStateError(RuntimeError):
    pass


class ConflictResolutionFlow:
    """Holds an "already processed" conflict until the user closes it or asks to reprocess."""

    def __init__(self, store: JobRecordStore, client: PipelineApiClient, notifier: Notifier) -> None:
        self._store = store
        self._client = client
        self._notifier = notifier
        self._state = ConflictState.IDLE
        self._context: Optional[ConflictContext] = None
        self._queued: Optional[ConflictContext] = None

    @property
    def state(self) -> ConflictState:
        return self._state

    @property
    def context(self) -> Optional[ConflictContext]:
        return self._context

    def open(self, context: ConflictContext) -> None:
        logger.info("File %s was already processed; awaiting decision", context.filename)
        if self._state is ConflictState.REPROCESSING:
            self._queued = context
            return
        if self._context is not None:
            logger.info("Replacing unanswered conflict for %s", self._context.filename)
        self._context = context
        self._state = ConflictState.AWAITING_DECISION

    def close(self) -> None:
        if self._state is not ConflictState.AWAITING_DECISION:
            raise ConflictStateError(f"No conflict awaiting a decision (state={self._state.value})")
        self._context = None
        self._state = ConflictState.IDLE

    async def reprocess(self, token: CancellationToken) -> Optional[JobRecord]:
        if self._state is not ConflictState.AWAITING_DECISION or self._context is None:
            raise ConflictStateError(f"No conflict awaiting a decision (state={self._state.value})")
        context = self._context
        self._state = ConflictState.REPROCESSING
        try:
            try:
                result = await token.run(self._client.reprocess(context.filename))
            except PipelineApiError as exc:
                self._notifier.error(f"Failed to reprocess file: {exc}")
                return None
            record = JobRecord(
                identity=Confirmed(result.file_id),
                display_name=result.filename,
                lifecycle_status=LifecycleStatus.SUBMITTED,
            )
            self._store.insert(record)
            logger.info("Reprocessing %s as job %s", record.display_name, record.id)
            return record
        finally:
            self._settle()

    def _settle(self) -> None:
        self._context = None
        self._state = ConflictState.IDLE
        if self._queued is not None:
            queued, self._queued = self._queued, None
            self.open(queued)
