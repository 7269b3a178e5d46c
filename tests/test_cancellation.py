from __future__ import annotations

import asyncio

import httpx
import pytest

from legal_tracker.services.tracking import (
    CancellationToken,
    JobTracker,
    LifecycleStatus,
    OperationCancelled,
    PipelineApiClient,
)

from conftest import API_URL, pdf


def test_token_returns_result_when_not_cancelled():
    async def scenario():
        token = CancellationToken()

        async def work():
            await asyncio.sleep(0)
            return 7

        return await token.run(work())

    assert asyncio.run(scenario()) == 7


def test_cancel_aborts_in_flight_call():
    async def scenario():
        token = CancellationToken()
        started = asyncio.Event()

        async def slow():
            started.set()
            await asyncio.sleep(10)

        pending = asyncio.ensure_future(token.run(slow()))
        await started.wait()
        token.cancel()
        with pytest.raises(OperationCancelled):
            await asyncio.wait_for(pending, 1.0)
        with pytest.raises(OperationCancelled):
            await token.run(slow())

    asyncio.run(scenario())


def test_closing_tracker_drops_late_upload_response():
    async def scenario():
        release = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/upload":
                await release.wait()
                return httpx.Response(200, json={"file_id": "srv-late", "filename": "a.pdf"})
            return httpx.Response(200, json={"files": []})

        client = PipelineApiClient(API_URL, transport=httpx.MockTransport(handler))
        tracker = JobTracker(client, poll_interval=0.01)
        upload = asyncio.ensure_future(tracker.upload([pdf("a.pdf")]))
        while not len(tracker.store):
            await asyncio.sleep(0.01)
        await tracker.aclose()
        release.set()
        with pytest.raises(OperationCancelled):
            await asyncio.wait_for(upload, 1.0)
        return tracker

    tracker = asyncio.run(scenario())

    records = tracker.store.records()
    assert len(records) == 1
    assert records[0].is_provisional
    assert records[0].lifecycle_status is LifecycleStatus.SUBMITTING
    assert tracker.store.get("srv-late") is None
    assert tracker.reconciler.running is False
