import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, FastAPI, HTTPException, Query, Request, WebSocket
from fastapi.responses import StreamingResponse

from status_relay import config
from status_relay.models import SessionSnapshotResponse
from status_relay.services import is_complete
from status_relay.state import SessionStore
from status_relay.stream import QueueEventSink, SessionReaper, StatusStreamDriver, relay_frames
from status_relay.ws import analysis_status_ws

logging.basicConfig(level=config.LOG_LEVEL)
log = logging.getLogger(__name__)

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

router = APIRouter()


@router.get("/")
def root(request: Request):
    return {
        "message": "Analysis status relay is running",
        "sessions": len(request.app.state.store.session_ids()),
    }


@router.get("/api/analysis/status/stream")
async def stream_analysis_status(
    request: Request, session_id: Optional[str] = Query(default=None, alias="sessionId")
):
    """
    Subscribe to live progress for an analysis session.
    Emits connected, then update snapshots, then a single complete event with results.
    """
    if not session_id:
        raise HTTPException(status_code=400, detail="sessionId query parameter is required")

    state = request.app.state
    sink = QueueEventSink()
    driver = StatusStreamDriver(state.store, session_id, sink, state.reaper, **state.driver_options)

    return StreamingResponse(
        relay_frames(driver, sink), media_type="text/event-stream", headers=STREAM_HEADERS
    )


@router.get("/api/analysis/sessions/{session_id}", response_model=SessionSnapshotResponse)
def session_snapshot(session_id: str, request: Request):
    """Current state of a session without opening a stream."""
    state = request.app.state
    statuses = state.store.get_status(session_id)
    results = state.store.get_results(session_id)
    if statuses is None and results is None:
        raise HTTPException(status_code=404, detail="Session not found")

    statuses = statuses or {}
    return SessionSnapshotResponse(
        session_id=session_id,
        domains=[s.model_dump(by_alias=True, exclude_none=True) for s in statuses.values()],
        results_ready=bool(results),
        complete=is_complete(
            statuses.values(), results, state.driver_options["accept_variants"]
        ),
    )


@router.websocket("/ws/analysis/{session_id}")
async def websocket_endpoint(websocket: WebSocket, session_id: str):
    state = websocket.app.state
    await analysis_status_ws(
        websocket, session_id, state.store, state.reaper, **state.driver_options
    )


def create_app(
    store: Optional[SessionStore] = None,
    poll_interval: float = config.POLL_INTERVAL_SECONDS,
    keepalive_interval: float = config.KEEPALIVE_INTERVAL_SECONDS,
    grace_period: float = config.SESSION_GRACE_SECONDS,
    accept_variants: bool = config.ACCEPT_COMPLETE_VARIANTS,
) -> FastAPI:
    """
    Build the relay app around a session store.
    The analysis producer writes to the same store instance via set_status / set_results.
    """
    store = store if store is not None else SessionStore()
    reaper = SessionReaper(store, grace_period)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info(
            f"Status relay starting (poll={poll_interval}s, keepalive={keepalive_interval}s, "
            f"grace={grace_period}s)"
        )
        yield
        reaper.shutdown()
        log.info("Status relay stopped")

    app = FastAPI(title="Analysis Status Relay API", lifespan=lifespan)
    app.state.store = store
    app.state.reaper = reaper
    app.state.driver_options = {
        "poll_interval": poll_interval,
        "keepalive_interval": keepalive_interval,
        "accept_variants": accept_variants,
    }
    app.include_router(router)
    return app


app = create_app()
