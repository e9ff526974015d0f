import logging

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from status_relay.stream import SessionReaper, StatusStreamDriver
from status_relay.state import SessionStore

log = logging.getLogger(__name__)


class WebSocketEventSink:
    """Sends stream events as JSON text messages over an accepted WebSocket."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send_event(self, event: BaseModel) -> bool:
        if self._closed:
            return False
        try:
            await self.websocket.send_json(event.model_dump(by_alias=True, exclude_none=True))
            return True
        except (WebSocketDisconnect, ConnectionError, RuntimeError) as e:
            log.info(f"WebSocket send failed, treating as disconnect: {e!r}")
            self._closed = True
            return False

    async def send_keepalive(self) -> bool:
        # WebSocket pings are handled by the server; nothing to write
        return not self._closed

    async def close(self):
        if self._closed:
            return
        self._closed = True
        try:
            await self.websocket.close()
        except RuntimeError as e:
            log.info(f"WebSocket already closed: {e!r}")

    def mark_disconnected(self):
        self._closed = True


async def analysis_status_ws(
    websocket: WebSocket,
    session_id: str,
    store: SessionStore,
    reaper: SessionReaper,
    **driver_options,
):
    await websocket.accept()

    sink = WebSocketEventSink(websocket)
    driver = StatusStreamDriver(store, session_id, sink, reaper, **driver_options)
    await driver.open()

    try:
        # Client messages carry no meaning; receiving only surfaces the disconnect
        while not sink.closed:
            await websocket.receive_text()
    except WebSocketDisconnect:
        log.info(f"WebSocket client for session {session_id} disconnected")
    finally:
        sink.mark_disconnected()
        driver.disconnect()
