import asyncio
import json
import pathlib
import re
import sys
from typing import Any, Dict, List, Tuple

import httpx
import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from legal_tracker.config import PDF_CONTENT_TYPE, AppSettings
from legal_tracker.services.tracking import JobTracker, PipelineApiClient, SelectedFile

API_URL = "http://pipeline.test"
CONNECT_ERROR = "connect-error"

_FILENAME = re.compile(rb'filename="([^"]+)"')


class FakePipeline:
    """Stand-in for the remote pipeline API, served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.files: List[Dict[str, Any]] = []
        self.upload_responses: Dict[str, Any] = {}
        self.reprocess_response: Any = None
        self.status_failures = 0
        self.clear_status = 200
        self.calls: List[Tuple[str, str]] = []
        self._next_id = 0

    def calls_to(self, path: str) -> int:
        return sum(1 for _, called in self.calls if called == path)

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append((request.method, path))
        if path == "/upload":
            return self._upload(request)
        if path == "/status":
            if self.status_failures:
                self.status_failures -= 1
                return httpx.Response(503, text="status unavailable")
            return httpx.Response(200, json={"files": self.files})
        if path == "/reprocess":
            return self._reprocess(request)
        if path == "/clear-completed":
            return httpx.Response(self.clear_status, json={"cleared": self.clear_status == 200})
        return httpx.Response(404, text="not found")

    def _upload(self, request: httpx.Request) -> httpx.Response:
        match = _FILENAME.search(request.content)
        name = match.group(1).decode("utf-8") if match else "unknown.pdf"
        response = self.upload_responses.get(name)
        if response == CONNECT_ERROR:
            raise httpx.ConnectError("connection refused", request=request)
        if isinstance(response, int):
            return httpx.Response(response, text="upload rejected")
        if response is None:
            self._next_id += 1
            response = {"file_id": f"srv-{self._next_id}", "already_processed": False, "filename": name}
        return httpx.Response(200, json=response)

    def _reprocess(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content or b"{}")
        response = self.reprocess_response
        if isinstance(response, int):
            return httpx.Response(response, text="reprocess rejected")
        if response is None:
            self._next_id += 1
            response = {"file_id": f"re-{self._next_id}", "filename": body.get("filename")}
        return httpx.Response(200, json=response)


def pdf(name: str, content: bytes = b"%PDF-1.4 test") -> SelectedFile:
    return SelectedFile(name=name, content=content, content_type=PDF_CONTENT_TYPE)


def make_tracker(pipeline: FakePipeline, *, interval: float = 0.01) -> JobTracker:
    client = PipelineApiClient(API_URL, transport=httpx.MockTransport(pipeline.handler))
    return JobTracker(client, poll_interval=interval)


async def wait_until_idle(tracker: JobTracker, timeout: float = 2.0) -> None:
    async def _settle() -> None:
        while tracker.reconciler.running or tracker.store.active_count():
            await tracker.reconciler.wait_stopped()
            await asyncio.sleep(0.01)

    await asyncio.wait_for(_settle(), timeout)


def build_settings(poll_interval: float = 0.05) -> AppSettings:
    return AppSettings(
        api_url=API_URL,
        api_timeout=5.0,
        api_connect_timeout=1.0,
        status_poll_interval=poll_interval,
        accepted_content_types=frozenset({PDF_CONTENT_TYPE}),
        notification_history=20,
        frontend_origin="http://localhost:5173",
        port=8080,
        log_level="DEBUG",
    )


@pytest.fixture
def pipeline() -> FakePipeline:
    return FakePipeline()
