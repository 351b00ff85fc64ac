import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class BoundedTaskPool:
    """Runs submitted coroutines with at most ``limit`` in flight.

    Waiters on the semaphore are woken in FIFO order, so work starts in
    submission order as slots free up. With ``cancel_on_error`` the first
    failure cancels every task that has not finished yet.
    """

    def __init__(self, limit: int, cancel_on_error: bool = False):
        if limit < 1:
            raise ValueError("limit must be >= 1")
        self.limit = limit
        self.cancel_on_error = cancel_on_error
        self._semaphore = asyncio.Semaphore(limit)
        self._tasks: list[asyncio.Task] = []
        self.active = 0
        self.peak = 0

    async def _run(self, fn: Callable[..., Awaitable[Any]], *args: Any) -> Any:
        async with self._semaphore:
            self.active += 1
            self.peak = max(self.peak, self.active)
            try:
                return await fn(*args)
            except Exception:
                if self.cancel_on_error:
                    self.cancel_pending()
                raise
            finally:
                self.active -= 1

    def submit(self, fn: Callable[..., Awaitable[Any]], *args: Any) -> asyncio.Task:
        task = asyncio.ensure_future(self._run(fn, *args))
        self._tasks.append(task)
        return task

    def cancel_pending(self) -> int:
        current = asyncio.current_task()
        cancelled = 0
        for task in self._tasks:
            if task is not current and not task.done():
                task.cancel()
                cancelled += 1
        if cancelled:
            logger.debug(f"Cancelled {cancelled} pending tasks")
        return cancelled

    async def join(self, return_exceptions: bool = False) -> list[Any]:
        """Wait for every submitted task, results in submission order.

        If a task raises and exceptions are not returned, the remaining tasks
        are cancelled and settled before the error propagates.
        """
        try:
            return await asyncio.gather(*self._tasks, return_exceptions=return_exceptions)
        except Exception:
            self.cancel_pending()
            await asyncio.gather(*self._tasks, return_exceptions=True)
            raise

    def __len__(self) -> int:
        return len(self._tasks)
