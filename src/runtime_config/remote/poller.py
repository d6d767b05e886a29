"""Poll Scheduler: a single re-armable timer for remote fetches."""

import asyncio
from typing import Awaitable, Callable, Optional

from ..observability.factory import get_runtime_logger
from ..observability.logging import ConfigLogger


class PollScheduler:
    """
    Runs ``callback`` once, ``interval`` seconds after ``schedule()``.

    At most one timer is pending. The pending slot is cleared before the
    callback runs so the callback can arm the next tick itself.
    """

    def __init__(
        self,
        interval: float,
        callback: Callable[[], Awaitable[None]],
        logger: Optional[ConfigLogger] = None,
    ):
        self.interval = interval
        self.callback = callback
        self.logger = logger or get_runtime_logger("remote.poller")
        self._timer: Optional[asyncio.Task] = None
        self._running: Optional[asyncio.Task] = None
        self._closed = False
        self.ticks = 0

    @property
    def pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def closed(self) -> bool:
        return self._closed

    def schedule(self, delay: Optional[float] = None) -> bool:
        """Arm the timer unless one is pending or the scheduler is closed."""
        if self._closed or self.pending:
            return False
        self._timer = asyncio.create_task(self._tick(self.interval if delay is None else delay))
        return True

    async def _tick(self, delay: float) -> None:
        await asyncio.sleep(delay)
        if self._closed:
            return

        self._timer = None
        self._running = asyncio.current_task()
        self.ticks += 1
        try:
            await self.callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error("Scheduled remote configuration poll failed", extra={
                "error": str(e),
                "error_type": type(e).__name__,
            }, exc_info=e)
        finally:
            if self._running is asyncio.current_task():
                self._running = None

    def close(self) -> None:
        """Cancel the pending timer and refuse new ones."""
        self._closed = True
        for task in (self._timer, self._running):
            if task is not None and not task.done() and task is not asyncio.current_task():
                task.cancel()
        self._timer = None
        self._running = None
