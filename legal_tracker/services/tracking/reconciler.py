"""Polling scheduler that keeps the local job list in step with the pipeline.

The scheduler is driven by store transitions: it starts as soon as any record
becomes active (with an immediate fetch) and stops when no active record
remains. Status changes that leave the set of active jobs non-empty do not
restart the timer.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

from .cancellation import CancellationToken, OperationCancelled
from .client import PipelineApiClient, PipelineApiError
from .models import CompletedJobSummary, utc_now
from .store import JobRecordStore, StoreState, count_active

logger = logging.getLogger(__name__)


class StatusReconciler:
    def __init__(
        self,
        store: JobRecordStore,
        client: PipelineApiClient,
        token: CancellationToken,
        *,
        interval: float = 3.0,
    ) -> None:
        self._store = store
        self._client = client
        self._token = token
        self._interval = max(0.01, float(interval))
        self._task: Optional["asyncio.Task[None]"] = None
        self._stopping: Set["asyncio.Task[None]"] = set()
        self._completed: List[CompletedJobSummary] = []
        self._last_poll_at: Optional[str] = None
        self._last_error: Optional[str] = None
        self._poll_count = 0
        self._unsubscribe = store.subscribe(self._on_store_change)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def completed(self) -> List[CompletedJobSummary]:
        return list(self._completed)

    def clear_completed_projection(self) -> None:
        self._completed = []

    def snapshot(self) -> Dict[str, Any]:
        return {
            "running": self.running,
            "interval_sec": self._interval,
            "polls": self._poll_count,
            "last_poll_at": self._last_poll_at,
            "last_error": self._last_error,
        }

    def _on_store_change(self, previous: StoreState, current: StoreState) -> None:
        active = count_active(current) > 0
        if active and not self.running:
            if count_active(previous) == 0:
                logger.debug("Active jobs appeared; starting status polling")
            self.start()
        elif not active and self.running:
            self.stop()

    def start(self) -> None:
        if self.running or self._token.cancelled:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        task = self._task
        if task is None or task.done():
            return
        if task is asyncio.current_task():
            # The loop notices the empty active set right after its merge.
            return
        task.cancel()
        # A cancelled task may still be unwinding; it no longer counts as running.
        self._task = None
        self._stopping.add(task)
        task.add_done_callback(self._stopping.discard)

    async def wait_stopped(self) -> None:
        tasks = set(self._stopping)
        if self._task is not None:
            tasks.add(self._task)
        if tasks:
            await asyncio.wait(tasks)

    async def aclose(self) -> None:
        self._unsubscribe()
        self.stop()
        await self.wait_stopped()

    async def poll_once(self) -> bool:
        try:
            remote_jobs = await self._token.run(self._client.poll_status())
        except PipelineApiError as exc:
            self._last_error = str(exc)
            logger.warning("Status poll failed, retrying next tick: %s", exc)
            return False
        self._poll_count += 1
        self._last_poll_at = utc_now()
        self._last_error = None
        self._store.merge_snapshot(remote_jobs)
        self._completed = self._store.completed_summaries()
        return True

    async def _run(self) -> None:
        logger.info("Status polling started (interval=%.1fs)", self._interval)
        try:
            while True:
                await self.poll_once()
                if self._store.active_count() == 0:
                    break
                await self._token.run(asyncio.sleep(self._interval))
        except OperationCancelled:
            pass
        finally:
            logger.info("Status polling stopped")
