from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List

from live_chat.error_tracker import ErrorTracker


def _boom() -> ValueError:
    try:
        raise ValueError("bad value")
    except ValueError as exc:
        return exc


def test_capture_before_init_is_ignored():
    tracker = ErrorTracker()
    tracker.capture_warning("early")
    assert tracker.pending == []
    assert not tracker.active


def test_capture_exception_records_stack_and_context(tracker):
    tracker.capture_exception(_boom(), session_id="s1", action="send_message")
    report = tracker.pending[0]
    assert report.level == "error"
    assert report.message == "bad value"
    assert "ValueError" in report.stack
    assert report.context == {"exception_type": "ValueError", "session_id": "s1", "action": "send_message"}


def test_buffer_is_bounded_and_drops_oldest():
    tracker = ErrorTracker(max_errors=3).init()
    for i in range(5):
        tracker.capture_info(f"event {i}")
    assert [r.message for r in tracker.pending] == ["event 2", "event 3", "event 4"]


def test_flush_hands_batch_to_sink(tracker):
    batches: List[List[Dict[str, Any]]] = []
    tracker.sink = batches.append
    tracker.capture_warning("slow reply", session_id="s1")
    tracker.capture_info("opened")

    assert tracker.flush() == 2
    assert tracker.pending == []
    assert [r["level"] for r in batches[0]] == ["warning", "info"]
    assert batches[0][0]["context"] == {"session_id": "s1"}
    assert tracker.flush() == 0


def test_flush_without_sink_keeps_reports(tracker):
    tracker.capture_info("kept")
    assert tracker.flush() == 0
    assert len(tracker.pending) == 1


def test_failed_flush_requeues(tracker):
    def broken(batch):
        raise ConnectionError("sink down")

    tracker.sink = broken
    tracker.capture_warning("one")
    assert tracker.flush() == 0
    assert [r.message for r in tracker.pending] == ["one"]


def test_flush_on_error_sends_immediately():
    batches: List[List[Dict[str, Any]]] = []
    tracker = ErrorTracker(sink=batches.append, flush_on_error=True).init()
    tracker.capture_warning("not yet")
    assert batches == []
    tracker.capture_exception(_boom())
    assert len(batches) == 1
    assert [r["level"] for r in batches[0]] == ["warning", "error"]


def test_destroy_flushes_and_deactivates():
    batches: List[List[Dict[str, Any]]] = []
    tracker = ErrorTracker(sink=batches.append).init()
    tracker.capture_info("last words")
    tracker.destroy()

    assert len(batches) == 1
    assert not tracker.active
    tracker.capture_info("ignored")
    assert tracker.pending == []
    tracker.destroy()


def test_error_flush_runs_on_executor():
    batches: List[List[Dict[str, Any]]] = []
    flush_threads: List[str] = []

    def sink(batch):
        flush_threads.append(threading.current_thread().name)
        batches.append(batch)

    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tracker-io")
    tracker = ErrorTracker(sink=sink, flush_on_error=True).init()
    tracker.executor = executor
    tracker.capture_exception(_boom(), action="listener")
    executor.shutdown(wait=True)

    assert len(batches) == 1
    assert flush_threads[0].startswith("tracker-io")

    # after shutdown the flush happens inline
    tracker.capture_exception(_boom())
    assert len(batches) == 2
