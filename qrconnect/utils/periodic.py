"""
Cancellable periodic tasks.

A PeriodicTask owns one asyncio task that calls an async callback on a fixed
interval. The handle returned by start() exposes a single cancel operation
that is safe to call more than once. Each tick awaits its callback before
waiting for the next one, so a task never overlaps itself.
"""
import asyncio
import contextlib
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTask:
    """
    Run an async callback every `interval` seconds until cancelled.

    Args:
        callback: Coroutine function invoked on each tick
        interval: Seconds between ticks
        name: Task name used in logs
        run_immediately: Invoke the callback once before the first wait
        skip: Optional predicate; when it returns True the tick is skipped
        sleep: Sleep function (injectable for tests)

    Usage:
        task = PeriodicTask(poll, 1.0, name="status-poll").start()
        ...
        task.cancel()
    """

    def __init__(
        self,
        callback: Callable[[], Awaitable[None]],
        interval: float,
        *,
        name: str = "periodic",
        run_immediately: bool = True,
        skip: Optional[Callable[[], bool]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.interval = interval
        self.name = name
        self.run_immediately = run_immediately
        self._callback = callback
        self._skip = skip
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> "PeriodicTask":
        """Schedule the loop on the running event loop. Returns self."""
        if self._task is None and not self._cancelled:
            self._task = asyncio.create_task(self._run(), name=self.name)
        return self

    async def _run(self) -> None:
        if self.run_immediately:
            await self._tick()
        while not self._cancelled:
            await self._sleep(self.interval)
            if self._cancelled:
                break
            if self._skip is not None and self._skip():
                continue
            await self._tick()

    async def _tick(self) -> None:
        try:
            await self._callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # A failed tick never stops the loop
            logger.warning(f"[{self.name}] tick failed: {e}")

    def cancel(self) -> None:
        """Stop the loop. Idempotent."""
        if self._cancelled:
            return
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logger.debug(f"[{self.name}] cancelled")

    async def aclose(self) -> None:
        """Cancel and wait for the loop to finish."""
        self.cancel()
        task = self._task
        if task is None or task is asyncio.current_task():
            return
        with contextlib.suppress(asyncio.CancelledError):
            await task
