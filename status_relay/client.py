from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from status_relay.utils import parse_event_lines

STREAM_PATH = "/api/analysis/status/stream"


async def iter_status_events(
    base_url: str,
    session_id: str,
    client: Optional[httpx.AsyncClient] = None,
) -> AsyncIterator[Dict[str, Any]]:
    """
    Follow an analysis session's status stream, yielding decoded events.
    Stops after the "complete" event or when the server closes the stream.
    """
    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=httpx.Timeout(None, connect=10.0))

    url = base_url.rstrip("/") + STREAM_PATH
    try:
        async with client.stream("GET", url, params={"sessionId": session_id}) as res:
            res.raise_for_status()
            lines: List[str] = []
            async for line in res.aiter_lines():
                lines.append(line)
                if line:
                    continue
                # A blank line ends a frame
                for event in parse_event_lines(lines):
                    yield event
                    if event["type"] == "complete":
                        return
                lines = []
    finally:
        if owns_client:
            await client.aclose()


async def wait_for_results(base_url: str, session_id: str, **kwargs) -> Optional[List[Dict[str, Any]]]:
    """Block until the session completes and return its merged result records."""
    async for event in iter_status_events(base_url, session_id, **kwargs):
        if event["type"] == "complete":
            return event["domains"]
    return None
