"""
In-memory session store shared by the analysis producer and the status streams.

  { session_id: { domain: StatusRecord } }   written by the producer as items progress
  { session_id: [ResultRecord, ...] }        written once when the whole job is done

The producer may run on a worker thread, so every access goes through the
store lock. Readers always get copies.
"""

import logging
import threading
from typing import Dict, Iterable, List, Optional

from status_relay.models import ResultRecord, StatusRecord

log = logging.getLogger(__name__)


class SessionStore:
    def __init__(self):
        self._statuses: Dict[str, Dict[str, StatusRecord]] = {}
        self._results: Dict[str, List[ResultRecord]] = {}
        self._lock = threading.Lock()

    # ── Producer side ─────────────────────────────────────────────────────────

    def set_status(self, session_id: str, item_key: str, record: StatusRecord):
        if not session_id:
            raise ValueError("session_id must be non-empty")
        with self._lock:
            self._statuses.setdefault(session_id, {})[item_key] = record

    def set_results(self, session_id: str, results: Iterable[ResultRecord]):
        """Replace the result list wholesale."""
        if not session_id:
            raise ValueError("session_id must be non-empty")
        results = list(results)
        with self._lock:
            self._results[session_id] = results

    # ── Reader side ───────────────────────────────────────────────────────────

    def get_status(self, session_id: str) -> Optional[Dict[str, StatusRecord]]:
        with self._lock:
            statuses = self._statuses.get(session_id)
            return dict(statuses) if statuses is not None else None

    def get_results(self, session_id: str) -> Optional[List[ResultRecord]]:
        with self._lock:
            results = self._results.get(session_id)
            return list(results) if results is not None else None

    def has_session(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._statuses or session_id in self._results

    def session_ids(self) -> List[str]:
        with self._lock:
            return sorted(set(self._statuses) | set(self._results))

    # ── Cleanup ───────────────────────────────────────────────────────────────

    def delete_results(self, session_id: str):
        with self._lock:
            self._results.pop(session_id, None)

    def delete_session(self, session_id: str):
        with self._lock:
            removed = self._statuses.pop(session_id, None) is not None
            removed = self._results.pop(session_id, None) is not None or removed
        if removed:
            log.info(f"Session {session_id} state removed")
