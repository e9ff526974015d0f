import logging
from typing import Any, Dict, Iterable, List, Optional

from status_relay.models import (
    CompleteEvent,
    ErrorEvent,
    ResultRecord,
    StatusRecord,
    StreamEvent,
    UpdateEvent,
)
from status_relay.state import SessionStore

log = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({"COMPLETE", "UNAVAILABLE", "NO_SNAPSHOTS"})
DEFAULT_COMPLETE_MESSAGE = "Analysis complete"


def is_terminal_status(status: Optional[str], accept_variants: bool = True) -> bool:
    if not status:
        return False
    if status in TERMINAL_STATUSES:
        return True
    return accept_variants and "COMPLETE" in status


def is_complete(
    statuses: Iterable[StatusRecord],
    results: Optional[List[ResultRecord]],
    accept_variants: bool = True,
) -> bool:
    """A job is finished once results were published and every item is terminal."""
    if not results:
        return False
    return all(is_terminal_status(s.status, accept_variants) for s in statuses)


def merge_result(result: ResultRecord, status: Optional[StatusRecord]) -> Dict[str, Any]:
    merged = result.model_dump(by_alias=True, exclude_none=True)
    merged["currentStatus"] = (status.status if status else None) or result.status
    merged["lastMessage"] = (
        (status.last_message if status else None) or result.error or DEFAULT_COMPLETE_MESSAGE
    )
    return merged


def build_snapshot(
    store: SessionStore, session_id: str, accept_variants: bool = True
) -> Optional[StreamEvent]:
    """
    Turn the current store state for a session into the next stream event.

    Returns None while the producer has not seeded any status for the session.
    Any failure while reading or merging is reported as an ErrorEvent.
    """
    try:
        statuses = store.get_status(session_id)
        if statuses is None:
            return None

        results = store.get_results(session_id)
        if is_complete(statuses.values(), results, accept_variants):
            return CompleteEvent(
                domains=[merge_result(r, statuses.get(r.item_key)) for r in results]
            )

        return UpdateEvent(
            domains=[s.model_dump(by_alias=True, exclude_none=True) for s in statuses.values()]
        )
    except Exception as e:
        log.exception(f"Failed to build snapshot for session {session_id}")
        return ErrorEvent(message=str(e) or e.__class__.__name__)
