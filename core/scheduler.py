"""
Periodic timer capability.

``schedule_periodic(interval, callback)`` / ``cancel()`` is all the token
manager needs; ``AsyncioTimer`` runs the callback on the application's event
loop, pushing the (blocking) callback to the threadpool.
"""

import asyncio
from collections.abc import Callable
from datetime import timedelta

import structlog
from starlette.concurrency import run_in_threadpool

log = structlog.get_logger(__name__)


class AsyncioTimer:
    def __init__(self):
        self._task: asyncio.Task | None = None

    def schedule_periodic(self, interval: timedelta, callback: Callable[[], None]) -> None:
        if self._task is not None:
            raise RuntimeError("timer already scheduled")
        self._task = asyncio.get_running_loop().create_task(
            self._run(interval.total_seconds(), callback)
        )

    async def _run(self, seconds: float, callback: Callable[[], None]) -> None:
        while True:
            await asyncio.sleep(seconds)
            try:
                await run_in_threadpool(callback)
            except Exception as e:
                # Keep the timer alive across callback failures
                log.error("timer.callback_failed", error=str(e))

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
