"""Fixed processing pipeline and per-stage lookups.

The pipeline order is a process-wide constant. It drives both the display
order of stage rows and the canonical ordering of a record's ``stages``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .models import StageState, StageStatus


@dataclass(frozen=True)
class StageDescriptor:
    key: str
    label: str
    wire_name: str


PIPELINE_STAGES: Tuple[StageDescriptor, ...] = (
    StageDescriptor("ingest-original", "Azure Upload (Original PDF)", "azure_upload"),
    StageDescriptor("initialize", "Initialization", "initialization"),
    StageDescriptor("extract-text", "Text Extraction", "extraction"),
    StageDescriptor("ai-convert", "AI Conversion (Upto 24 hrs)", "ai_conversion"),
    StageDescriptor("generate-output", "DOCX Creation", "docx_creation"),
    StageDescriptor("upload-output", "Azure Upload (DOCX)", "azure_docx_upload"),
    StageDescriptor("upload-sharepoint", "SharePoint Upload", "sharepoint_upload"),
    StageDescriptor("upload-wordpress", "WordPress Upload", "wordpress_upload"),
)

STAGE_KEYS: Tuple[str, ...] = tuple(stage.key for stage in PIPELINE_STAGES)

_POSITION = {stage.key: idx for idx, stage in enumerate(PIPELINE_STAGES)}
_KEY_LOOKUP = {
    **{stage.wire_name: stage.key for stage in PIPELINE_STAGES},
    **{stage.key: stage.key for stage in PIPELINE_STAGES},
}


def stage_key_from_wire(name: Optional[str]) -> Optional[str]:
    if not name:
        return None
    return _KEY_LOOKUP.get(str(name).strip().lower())


def stage_position(key: str) -> int:
    return _POSITION[key]


def normalize_stages(stages: Iterable[StageStatus]) -> Tuple[StageStatus, ...]:
    """Drop unknown keys, keep the last entry per key, order by pipeline position."""
    latest: Dict[str, StageStatus] = {}
    for status in stages:
        if status.stage_key in _POSITION:
            latest[status.stage_key] = status
    return tuple(sorted(latest.values(), key=lambda s: _POSITION[s.stage_key]))


def resolve_stage(stages: Sequence[StageStatus], key: str) -> Optional[StageStatus]:
    """Return the status reported for ``key``, or None when no data exists yet."""
    for status in stages:
        if status.stage_key == key:
            return status
    return None


def stage_view(descriptor: StageDescriptor, status: Optional[StageStatus]) -> Dict[str, Any]:
    if status is None:
        return {
            "key": descriptor.key,
            "label": descriptor.label,
            "state": StageState.PENDING.value,
            "message": None,
            "error": None,
            "updated_at": None,
            "reported": False,
        }
    return {
        "key": descriptor.key,
        "label": descriptor.label,
        "state": status.state.value,
        "message": status.message or None,
        "error": status.error_detail or None,
        "updated_at": status.updated_at,
        "reported": True,
    }


def stage_rows(stages: Sequence[StageStatus]) -> List[Dict[str, Any]]:
    return [stage_view(descriptor, resolve_stage(stages, descriptor.key)) for descriptor in PIPELINE_STAGES]
