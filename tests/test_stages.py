from __future__ import annotations

from legal_tracker.services.tracking.models import StageState, StageStatus
from legal_tracker.services.tracking.stages import (
    PIPELINE_STAGES,
    STAGE_KEYS,
    normalize_stages,
    resolve_stage,
    stage_key_from_wire,
    stage_rows,
)


def test_pipeline_has_eight_stages_in_fixed_order():
    assert STAGE_KEYS == (
        "ingest-original",
        "initialize",
        "extract-text",
        "ai-convert",
        "generate-output",
        "upload-output",
        "upload-sharepoint",
        "upload-wordpress",
    )
    assert PIPELINE_STAGES[3].label == "AI Conversion (Upto 24 hrs)"


def test_wire_names_map_to_stage_keys():
    assert stage_key_from_wire("azure_upload") == "ingest-original"
    assert stage_key_from_wire("docx_creation") == "generate-output"
    assert stage_key_from_wire("ai-convert") == "ai-convert"
    assert stage_key_from_wire("unknown_step") is None
    assert stage_key_from_wire(None) is None


def test_missing_stage_renders_as_pending_without_message():
    stages = (StageStatus("extract-text", StageState.IN_PROGRESS, message="page 3/10"),)

    assert resolve_stage(stages, "initialize") is None
    rows = stage_rows(stages)

    assert [row["key"] for row in rows] == list(STAGE_KEYS)
    init_row = rows[1]
    assert init_row["state"] == "pending"
    assert init_row["message"] is None
    assert init_row["reported"] is False
    extract_row = rows[2]
    assert extract_row["state"] == "in_progress"
    assert extract_row["message"] == "page 3/10"


def test_normalize_stages_dedupes_and_orders_by_pipeline():
    raw = [
        StageStatus("upload-wordpress", StageState.PENDING),
        StageStatus("initialize", StageState.IN_PROGRESS),
        StageStatus("initialize", StageState.COMPLETED),
        StageStatus("not-a-stage", StageState.FAILED),
    ]

    normalized = normalize_stages(raw)

    assert [s.stage_key for s in normalized] == ["initialize", "upload-wordpress"]
    assert normalized[0].state is StageState.COMPLETED
