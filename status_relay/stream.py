"""
Polling-to-push bridge for analysis status streams.

A StatusStreamDriver owns one subscription: it re-reads the session store on
a fixed cadence, pushes the resulting snapshot to its sink, sends keepalive
comments, and stops on the first delivered "complete" event or on client
disconnect. Disconnected sessions are handed to the SessionReaper, which
drops their state once the grace period runs out.
"""

import asyncio
import logging
from enum import Enum
from functools import partial
from typing import AsyncIterator, Dict, List, Optional, Protocol

from pydantic import BaseModel

from status_relay import config
from status_relay.models import CompleteEvent, ConnectedEvent
from status_relay.scheduling import DelayedTask, PeriodicTask
from status_relay.services import build_snapshot
from status_relay.state import SessionStore
from status_relay.utils import KEEPALIVE_FRAME, encode_event

log = logging.getLogger(__name__)


class EventSink(Protocol):
    @property
    def closed(self) -> bool: ...

    async def send_event(self, event: BaseModel) -> bool: ...

    async def send_keepalive(self) -> bool: ...

    async def close(self) -> None: ...


class QueueEventSink:
    """Buffers encoded event-stream frames for a StreamingResponse body."""

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send_event(self, event: BaseModel) -> bool:
        return self._put(encode_event(event))

    async def send_keepalive(self) -> bool:
        return self._put(KEEPALIVE_FRAME)

    def _put(self, frame: str) -> bool:
        if self._closed:
            return False
        self._queue.put_nowait(frame)
        return True

    async def close(self):
        """End the response body once already queued frames are drained."""
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(None)

    def mark_disconnected(self):
        self._closed = True

    async def frames(self) -> AsyncIterator[str]:
        while True:
            frame = await self._queue.get()
            if frame is None:
                return
            yield frame


class SessionReaper:
    """Deletes a session's state a fixed time after its subscriber goes away."""

    def __init__(self, store: SessionStore, grace_period: float = config.SESSION_GRACE_SECONDS):
        self.store = store
        self.grace_period = grace_period
        self._pending: Dict[str, DelayedTask] = {}

    def schedule(self, session_id: str):
        self.cancel(session_id)
        task = DelayedTask(
            self.grace_period, partial(self._reap, session_id), name=f"reap:{session_id}"
        )
        self._pending[session_id] = task
        task.start()
        log.info(f"Session {session_id} scheduled for cleanup in {self.grace_period}s")

    def cancel(self, session_id: str) -> bool:
        task = self._pending.pop(session_id, None)
        if task is None:
            return False
        task.cancel()
        log.info(f"Pending cleanup for session {session_id} cancelled")
        return True

    def pending(self) -> List[str]:
        return sorted(self._pending)

    def shutdown(self):
        for session_id in list(self._pending):
            self._pending.pop(session_id).cancel()

    async def _reap(self, session_id: str):
        self._pending.pop(session_id, None)
        self.store.delete_session(session_id)


class DriverState(str, Enum):
    CONNECTED = "connected"
    STREAMING = "streaming"
    TERMINATED = "terminated"


class StatusStreamDriver:
    def __init__(
        self,
        store: SessionStore,
        session_id: str,
        sink: EventSink,
        reaper: Optional[SessionReaper] = None,
        poll_interval: float = config.POLL_INTERVAL_SECONDS,
        keepalive_interval: float = config.KEEPALIVE_INTERVAL_SECONDS,
        accept_variants: bool = config.ACCEPT_COMPLETE_VARIANTS,
    ):
        self.store = store
        self.session_id = session_id
        self.sink = sink
        self.reaper = reaper
        self.accept_variants = accept_variants
        self.state = DriverState.CONNECTED
        self._handed_off = False
        self._poll_task = PeriodicTask(
            poll_interval, self.tick, name=f"poll:{session_id}", run_immediately=True
        )
        self._keepalive_task = PeriodicTask(
            keepalive_interval, self.keepalive, name=f"keepalive:{session_id}"
        )

    @property
    def handed_off(self) -> bool:
        return self._handed_off

    async def open(self):
        """Announce the subscription and start polling."""
        if self.reaper is not None:
            self.reaper.cancel(self.session_id)
        log.info(f"Status stream opened for session {self.session_id}")
        if not await self._send(ConnectedEvent(session_id=self.session_id)):
            return
        self.state = DriverState.STREAMING
        self._poll_task.start()
        self._keepalive_task.start()

    async def tick(self):
        if self.state is not DriverState.STREAMING:
            return
        if self.sink.closed:
            self.disconnect()
            return

        event = build_snapshot(self.store, self.session_id, self.accept_variants)
        if event is None:
            return
        if not await self._send(event):
            return

        if isinstance(event, CompleteEvent):
            self.store.delete_results(self.session_id)
            self._stop()
            log.info(f"Session {self.session_id} complete, {len(event.domains)} results delivered")
            await self.sink.close()

    async def keepalive(self):
        if self.state is not DriverState.STREAMING:
            return
        if self.sink.closed or not await self.sink.send_keepalive():
            self.disconnect()

    def disconnect(self):
        """Stop both timers and hand the session to the reaper, once."""
        self._stop()
        if self._handed_off:
            return
        self._handed_off = True
        log.info(f"Status stream closed for session {self.session_id}")
        if self.reaper is not None:
            self.reaper.schedule(self.session_id)

    async def _send(self, event: BaseModel) -> bool:
        if self.sink.closed or not await self.sink.send_event(event):
            self.disconnect()
            return False
        return True

    def _stop(self):
        self._poll_task.cancel()
        self._keepalive_task.cancel()
        self.state = DriverState.TERMINATED


async def relay_frames(driver: StatusStreamDriver, sink: QueueEventSink) -> AsyncIterator[str]:
    """Response body for an event-stream subscription."""
    try:
        await driver.open()
        async for frame in sink.frames():
            yield frame
    finally:
        sink.mark_disconnected()
        driver.disconnect()
