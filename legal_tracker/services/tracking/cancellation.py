from __future__ import annotations

import asyncio
import contextlib
from typing import Awaitable, TypeVar

T = TypeVar("T")


class OperationCancelled(Exception):
    """Raised when a suspending call is abandoned because its scope ended."""


class CancellationToken:
    """Cancels every in-flight call started through :meth:`run` once the scope ends."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise OperationCancelled("operation cancelled")

    async def run(self, awaitable: Awaitable[T]) -> T:
        if self.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise OperationCancelled("operation cancelled")
        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not work.done():
                work.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await work
        if work.cancelled():
            raise OperationCancelled("operation cancelled")
        if self.cancelled:
            # A result that lands together with cancellation is dropped so no stale update follows.
            work.exception()
            raise OperationCancelled("operation cancelled")
        return work.result()
