"""In-memory job record store.

Every write is expressed as a typed event and applied by :func:`reduce`, a
pure transition from (state, event) to the next state. ``JobRecordStore`` holds
the current state, applies events one at a time and notifies listeners with the
previous and current state after each one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, Iterable, List, Optional, Tuple, Union

from .models import CompletedJobSummary, JobRecord, LifecycleStatus, RemoteJob
from .stages import normalize_stages

logger = logging.getLogger(__name__)

StoreState = Tuple[JobRecord, ...]


@dataclass(frozen=True)
class RecordInserted:
    record: JobRecord


@dataclass(frozen=True)
class RecordReplaced:
    old_id: str
    record: Optional[JobRecord]


@dataclass(frozen=True)
class SnapshotMerged:
    remote_jobs: Tuple[RemoteJob, ...]


@dataclass(frozen=True)
class CompletedRemoved:
    pass


StoreEvent = Union[RecordInserted, RecordReplaced, SnapshotMerged, CompletedRemoved]
StoreListener = Callable[[StoreState, StoreState], None]


def count_active(state: StoreState) -> int:
    return sum(1 for record in state if record.is_active)


def _ensure_untracked(state: StoreState, record_id: str) -> None:
    if any(record.id == record_id for record in state):
        raise AssertionError(f"Job id {record_id!r} is already tracked")


def find_remote_match(record: JobRecord, remote_jobs: Iterable[RemoteJob]) -> Optional[RemoteJob]:
    """Match by id first, then by display name. The first name match wins."""
    candidates = tuple(remote_jobs)
    for remote in candidates:
        if remote.id and remote.id == record.id:
            return remote
    for remote in candidates:
        if remote.original_file and remote.original_file == record.display_name:
            return remote
    return None


def merge_record(record: JobRecord, remote: RemoteJob) -> JobRecord:
    error_message = None
    if remote.lifecycle_status is LifecycleStatus.FAILED:
        error_message = remote.error or record.error_message
    return replace(
        record,
        lifecycle_status=remote.lifecycle_status,
        stages=normalize_stages(remote.stages),
        output=remote.output,
        error_message=error_message,
    )


def reduce(state: StoreState, event: StoreEvent) -> StoreState:
    if isinstance(event, RecordInserted):
        _ensure_untracked(state, event.record.id)
        return state + (event.record,)

    if isinstance(event, RecordReplaced):
        present = any(record.id == event.old_id for record in state)
        remaining = tuple(record for record in state if record.id != event.old_id)
        if event.record is None:
            return remaining
        _ensure_untracked(remaining, event.record.id)
        if not present:
            return state + (event.record,)
        return tuple(event.record if record.id == event.old_id else record for record in state)

    if isinstance(event, SnapshotMerged):
        merged: List[JobRecord] = []
        for record in state:
            remote = find_remote_match(record, event.remote_jobs)
            merged.append(merge_record(record, remote) if remote is not None else record)
        return tuple(merged)

    if isinstance(event, CompletedRemoved):
        return tuple(record for record in state if record.lifecycle_status is not LifecycleStatus.COMPLETED)

    raise TypeError(f"Unknown store event: {event!r}")


class JobRecordStore:
    """Single owner of the tracked job records."""

    def __init__(self) -> None:
        self._state: StoreState = ()
        self._listeners: List[StoreListener] = []

    @property
    def state(self) -> StoreState:
        return self._state

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def dispatch(self, event: StoreEvent) -> StoreState:
        previous = self._state
        self._state = reduce(previous, event)
        for listener in list(self._listeners):
            listener(previous, self._state)
        return self._state

    def insert(self, record: JobRecord) -> None:
        self.dispatch(RecordInserted(record))

    def replace(self, old_id: str, new_record: Optional[JobRecord]) -> None:
        self.dispatch(RecordReplaced(old_id, new_record))

    def merge_snapshot(self, remote_jobs: Iterable[RemoteJob]) -> None:
        self.dispatch(SnapshotMerged(tuple(remote_jobs)))

    def remove_completed(self) -> List[JobRecord]:
        removed = [r for r in self._state if r.lifecycle_status is LifecycleStatus.COMPLETED]
        self.dispatch(CompletedRemoved())
        if removed:
            logger.info("Removed %d completed job(s) from the local list", len(removed))
        return removed

    def active_count(self) -> int:
        return count_active(self._state)

    def records(self) -> List[JobRecord]:
        return list(self._state)

    def get(self, job_id: str) -> Optional[JobRecord]:
        for record in self._state:
            if record.id == job_id:
                return record
        return None

    def completed_summaries(self) -> List[CompletedJobSummary]:
        return [
            CompletedJobSummary.from_record(record)
            for record in self._state
            if record.lifecycle_status is LifecycleStatus.COMPLETED
        ]

    def __len__(self) -> int:
        return len(self._state)
