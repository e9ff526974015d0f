import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

log = logging.getLogger(__name__)

Callback = Callable[[], Awaitable[None]]


class _ScheduledTask(ABC):
    def __init__(self, callback: Callback, name: Optional[str] = None):
        self._callback = callback
        self._name = name
        self._task: Optional[asyncio.Task] = None
        self._cancelled = False

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done() and not self._cancelled

    def start(self):
        if self._task is not None or self._cancelled:
            return
        self._task = asyncio.create_task(self._run(), name=self._name)

    def cancel(self):
        """Stop the task. Safe to call repeatedly and from inside the callback."""
        self._cancelled = True
        if self._task is None or self._task.done():
            return
        # A callback cancelling its own task just lets the loop exit after it returns
        if self._task is not asyncio.current_task():
            self._task.cancel()

    async def _invoke(self):
        try:
            await self._callback()
        except asyncio.CancelledError:
            raise
        except Exception:
            log.exception(f"Scheduled task {self._name or self._callback!r} failed")

    @abstractmethod
    async def _run(self):
        ...


class PeriodicTask(_ScheduledTask):
    """Runs a coroutine function every `interval` seconds until cancelled."""

    def __init__(
        self,
        interval: float,
        callback: Callback,
        name: Optional[str] = None,
        run_immediately: bool = False,
    ):
        super().__init__(callback, name)
        self.interval = interval
        self._run_immediately = run_immediately

    async def _run(self):
        if not self._run_immediately:
            await asyncio.sleep(self.interval)
        while not self._cancelled:
            await self._invoke()
            if self._cancelled:
                break
            await asyncio.sleep(self.interval)


class DelayedTask(_ScheduledTask):
    """Runs a coroutine function once after `delay` seconds unless cancelled first."""

    def __init__(self, delay: float, callback: Callback, name: Optional[str] = None):
        super().__init__(callback, name)
        self.delay = delay

    async def _run(self):
        await asyncio.sleep(self.delay)
        if not self._cancelled:
            await self._invoke()
