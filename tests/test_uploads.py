from __future__ import annotations

import asyncio

import pytest

from legal_tracker.services.tracking import (
    ConflictState,
    LifecycleStatus,
    LocalFailure,
    SelectedFile,
    UploadInProgress,
)

from conftest import CONNECT_ERROR, make_tracker, pdf


def test_new_upload_replaces_provisional_record(pipeline):
    async def scenario():
        tracker = make_tracker(pipeline, interval=5)
        seen = []
        tracker.store.subscribe(lambda prev, cur: seen.append([(r.id, r.lifecycle_status) for r in cur]))
        try:
            report = await tracker.upload([pdf("contract.pdf")])
        finally:
            await tracker.aclose()
        return tracker, report, seen

    tracker, report, seen = asyncio.run(scenario())

    assert report.tracked == ["srv-1"]
    records = tracker.store.records()
    assert len(records) == 1
    record = records[0]
    assert record.id == "srv-1"
    assert record.display_name == "contract.pdf"
    assert record.lifecycle_status is LifecycleStatus.SUBMITTED
    assert not record.is_provisional
    # The optimistic record was visible before the response arrived.
    first_id, first_status = seen[0][0]
    assert first_id.startswith("temp-")
    assert first_status is LifecycleStatus.SUBMITTING


def test_duplicate_upload_opens_conflict_without_record(pipeline):
    pipeline.upload_responses["contract.pdf"] = {
        "already_processed": True,
        "filename": "contract.pdf",
        "existing_files": [{"name": "out.docx", "url": "https://blob/out.docx"}],
    }

    async def scenario():
        tracker = make_tracker(pipeline, interval=5)
        try:
            report = await tracker.upload([pdf("contract.pdf")])
        finally:
            await tracker.aclose()
        return tracker, report

    tracker, report = asyncio.run(scenario())

    assert tracker.store.records() == []
    assert len(report.conflicts) == 1
    assert tracker.conflicts.state is ConflictState.AWAITING_DECISION
    context = tracker.conflicts.context
    assert context.filename == "contract.pdf"
    assert [(l.name, l.url) for l in context.existing_files] == [("out.docx", "https://blob/out.docx")]


def test_batch_tracks_n_minus_conflicts_and_survives_failures(pipeline):
    pipeline.upload_responses["dup.pdf"] = {"already_processed": True, "filename": "dup.pdf", "existing_files": []}
    pipeline.upload_responses["broken.pdf"] = 500
    pipeline.upload_responses["offline.pdf"] = CONNECT_ERROR
    files = [pdf("a.pdf"), pdf("dup.pdf"), pdf("broken.pdf"), pdf("offline.pdf"), pdf("b.pdf")]

    async def scenario():
        tracker = make_tracker(pipeline, interval=5)
        try:
            report = await tracker.upload(files)
        finally:
            await tracker.aclose()
        return tracker, report

    tracker, report = asyncio.run(scenario())

    records = tracker.store.records()
    assert len(records) == len(files) - len(report.conflicts)
    assert [r.display_name for r in records] == ["a.pdf", "broken.pdf", "offline.pdf", "b.pdf"]
    failed = [r for r in records if r.lifecycle_status is LifecycleStatus.FAILED]
    assert len(failed) == 2
    assert all(isinstance(r.identity, LocalFailure) for r in failed)
    assert failed[0].id != failed[1].id
    assert all(r.id.startswith("error-") for r in failed)
    assert "Upload failed" in failed[0].error_message
    assert report.tracked == ["srv-1", "srv-2"]
    assert [p for _, p in pipeline.calls if p == "/upload"] == ["/upload"] * 5


def test_selection_filters_non_pdf_and_is_cleared_after_batch(pipeline):
    async def scenario():
        tracker = make_tracker(pipeline, interval=5)
        try:
            accepted = tracker.select(
                [
                    pdf("a.pdf"),
                    SelectedFile(name="notes.txt", content=b"hello", content_type="text/plain"),
                    SelectedFile(name="scan.pdf", content=b"%PDF", content_type="application/pdf; charset=binary"),
                ]
            )
            pending_before = [f.name for f in tracker.uploads.pending]
            await tracker.upload()
            pending_after = tracker.uploads.pending
        finally:
            await tracker.aclose()
        return accepted, pending_before, pending_after

    accepted, pending_before, pending_after = asyncio.run(scenario())

    assert [f.name for f in accepted] == ["a.pdf", "scan.pdf"]
    assert pending_before == ["a.pdf", "scan.pdf"]
    assert pending_after == []


def test_second_batch_is_rejected_while_uploading(pipeline):
    async def scenario():
        tracker = make_tracker(pipeline, interval=5)
        try:
            first = asyncio.ensure_future(tracker.upload([pdf("a.pdf")]))
            await asyncio.sleep(0)
            with pytest.raises(UploadInProgress):
                await tracker.upload([pdf("b.pdf")])
            await first
        finally:
            await tracker.aclose()
        return tracker

    tracker = asyncio.run(scenario())

    assert [r.display_name for r in tracker.store.records()] == ["a.pdf"]
