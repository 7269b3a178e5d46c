from __future__ import annotations

from .cancellation import CancellationToken, OperationCancelled
from .client import PipelineApiClient, PipelineApiError
from .conflicts import ConflictResolutionFlow, ConflictState, ConflictStateError
from .models import (
    CompletedJobSummary,
    Confirmed,
    ConflictContext,
    JobRecord,
    LifecycleStatus,
    LocalFailure,
    Provisional,
    RemoteJob,
    StageState,
    StageStatus,
)
from .reconciler import StatusReconciler
from .stages import PIPELINE_STAGES, resolve_stage, stage_rows
from .store import JobRecordStore
from .tracker import JobTracker
from .uploads import SelectedFile, UploadInProgress, UploadQueueController

__all__ = [
    "CancellationToken",
    "OperationCancelled",
    "PipelineApiClient",
    "PipelineApiError",
    "ConflictResolutionFlow",
    "ConflictState",
    "ConflictStateError",
    "CompletedJobSummary",
    "Confirmed",
    "ConflictContext",
    "JobRecord",
    "LifecycleStatus",
    "LocalFailure",
    "Provisional",
    "RemoteJob",
    "StageState",
    "StageStatus",
    "StatusReconciler",
    "PIPELINE_STAGES",
    "resolve_stage",
    "stage_rows",
    "JobRecordStore",
    "JobTracker",
    "SelectedFile",
    "UploadInProgress",
    "UploadQueueController",
]
