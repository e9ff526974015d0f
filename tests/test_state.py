import threading

import pytest

from status_relay.models import ResultRecord, StatusRecord
from status_relay.state import SessionStore


def _status(domain: str, status: str, message=None) -> StatusRecord:
    return StatusRecord(domain=domain, status=status, lastMessage=message)


def test_unknown_session_reads_as_absent() -> None:
    store = SessionStore()
    assert store.get_status("missing") is None
    assert store.get_results("missing") is None
    assert store.has_session("missing") is False


def test_set_status_creates_and_updates_items() -> None:
    store = SessionStore()
    store.set_status("abc", "x.com", _status("x.com", "RUNNING"))
    store.set_status("abc", "y.com", _status("y.com", "PENDING"))
    store.set_status("abc", "x.com", _status("x.com", "COMPLETE", "done"))

    statuses = store.get_status("abc")
    assert set(statuses) == {"x.com", "y.com"}
    assert statuses["x.com"].status == "COMPLETE"
    assert statuses["x.com"].last_message == "done"
    assert store.session_ids() == ["abc"]


def test_reads_return_copies() -> None:
    store = SessionStore()
    store.set_status("abc", "x.com", _status("x.com", "RUNNING"))
    store.set_results("abc", [ResultRecord(domain="x.com")])

    store.get_status("abc").pop("x.com")
    store.get_results("abc").clear()

    assert "x.com" in store.get_status("abc")
    assert len(store.get_results("abc")) == 1


def test_set_results_replaces_list_wholesale() -> None:
    store = SessionStore()
    store.set_results("abc", [ResultRecord(domain="x.com"), ResultRecord(domain="y.com")])
    store.set_results("abc", [ResultRecord(domain="z.com")])

    assert [r.item_key for r in store.get_results("abc")] == ["z.com"]


def test_delete_results_keeps_statuses() -> None:
    store = SessionStore()
    store.set_status("abc", "x.com", _status("x.com", "COMPLETE"))
    store.set_results("abc", [ResultRecord(domain="x.com")])

    store.delete_results("abc")

    assert store.get_results("abc") is None
    assert store.get_status("abc") is not None


def test_delete_session_removes_everything_and_is_idempotent() -> None:
    store = SessionStore()
    store.set_status("abc", "x.com", _status("x.com", "COMPLETE"))
    store.set_results("abc", [ResultRecord(domain="x.com")])

    store.delete_session("abc")
    store.delete_session("abc")

    assert store.get_status("abc") is None
    assert store.get_results("abc") is None
    assert store.session_ids() == []


def test_empty_session_id_is_rejected_for_writes() -> None:
    store = SessionStore()
    with pytest.raises(ValueError):
        store.set_status("", "x.com", _status("x.com", "RUNNING"))
    with pytest.raises(ValueError):
        store.set_results("", [])


def test_records_keep_extra_producer_fields() -> None:
    record = ResultRecord.model_validate(
        {"domain": "x.com", "spamScore": 12, "snapshots": ["2020"], "error": None}
    )
    dumped = record.model_dump(by_alias=True, exclude_none=True)
    assert dumped == {"domain": "x.com", "spamScore": 12, "snapshots": ["2020"]}


def test_reading_unknown_sessions_retains_nothing() -> None:
    store = SessionStore()
    for i in range(100):
        assert store.get_status(f"nope-{i}") is None
        assert store.get_results(f"nope-{i}") is None
        assert store.has_session(f"nope-{i}") is False
        store.delete_results(f"nope-{i}")

    assert store.session_ids() == []
    assert store._statuses == {}
    assert store._results == {}


def test_delete_session_keeps_the_same_lock() -> None:
    store = SessionStore()
    store.set_status("s", "x.com", _status("x.com", "RUNNING"))
    held = store._lock

    store.delete_session("s")
    store.set_status("s", "x.com", _status("x.com", "RUNNING"))

    assert store._lock is held


def test_concurrent_writes_and_deletes_stay_consistent() -> None:
    store = SessionStore()
    errors: list[BaseException] = []

    def produce() -> None:
        try:
            for i in range(200):
                store.set_status("s", f"d{i}.com", _status(f"d{i}.com", "RUNNING"))
                store.set_results("s", [ResultRecord(domain=f"d{i}.com")])
        except BaseException as exc:  # pragma: no cover - surfaced below
            errors.append(exc)

    def reap() -> None:
        try:
            for _ in range(200):
                store.delete_session("s")
                store.get_status("s")
        except BaseException as exc:  # pragma: no cover - surfaced below
            errors.append(exc)

    threads = [threading.Thread(target=produce), threading.Thread(target=reap)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    store.delete_session("s")
    assert store.session_ids() == []
