"""
Caller-supplied cancellation for pipeline suspension points.

Every await in the pipeline that can block on the network, a lock or a poll
interval goes through ``guard(awaitable, cancel)``. When the token fires, or
its deadline passes, the pending operation is cancelled and
OperationCancelledError is raised in the caller.
"""

import asyncio
import time
from typing import Awaitable, Optional, TypeVar

from ..engine.exceptions import OperationCancelledError


T = TypeVar("T")


class CancelToken:
    """
    Cancellation signal with an optional deadline.

    Args:
        timeout: Seconds from now after which the token counts as cancelled.
        deadline: Absolute ``time.monotonic()`` deadline; overrides timeout.

    Example:
        token = CancelToken(timeout=30)
        response = await client.confirm(tx_hash, cancel=token)
        # elsewhere: token.cancel("shutting down")
    """

    def __init__(self, timeout: Optional[float] = None, deadline: Optional[float] = None) -> None:
        if deadline is None and timeout is not None:
            deadline = time.monotonic() + timeout
        self.deadline = deadline
        self._event = asyncio.Event()
        self._reason = ""

    def cancel(self, reason: str = "operation cancelled") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self.expired

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def remaining(self) -> Optional[float]:
        """Seconds until the deadline, or None when there is none."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError(self._reason)
        if self.expired:
            raise OperationCancelledError("deadline exceeded")

    async def run(self, awaitable: Awaitable[T]) -> T:
        """
        Await ``awaitable`` unless the token fires first.

        Raises:
            OperationCancelledError: If cancelled or past the deadline. The
                pending operation is cancelled and awaited before raising.
        """
        if self.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            self.raise_if_cancelled()
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter},
                timeout=self.remaining(),
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)

        if task.done() and not task.cancelled():
            return task.result()
        self.raise_if_cancelled()
        raise OperationCancelledError("deadline exceeded")

    async def sleep(self, seconds: float) -> None:
        await self.run(asyncio.sleep(seconds))


async def guard(awaitable: Awaitable[T], cancel: Optional[CancelToken] = None) -> T:
    """Await ``awaitable`` under ``cancel`` when one is given."""
    if cancel is None:
        return await awaitable
    return await cancel.run(awaitable)


async def sleep(seconds: float, cancel: Optional[CancelToken] = None) -> None:
    await guard(asyncio.sleep(seconds), cancel)
