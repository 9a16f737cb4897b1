"""
Error tracker
=============

Collects error/warning/info reports into a bounded buffer and hands them to a
sink in batches. Constructed once by the app factory and passed to whoever
needs it; nothing is created on import.

Lifecycle: init() -> capture_*() / flush() -> destroy().
"""
from __future__ import annotations

import logging
import threading
import traceback
from dataclasses import dataclass, field
from datetime import datetime
from concurrent.futures import Executor
from typing import Any, Callable, Dict, List, Optional

log = logging.getLogger(__name__)

Sink = Callable[[List[Dict[str, Any]]], Any]


@dataclass
class ErrorReport:
    message: str
    level: str                          # error | warning | info
    stack: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "level": self.level,
            "stack": self.stack,
            "context": self.context,
            "timestamp": self.timestamp,
        }


class ErrorTracker:
    def __init__(self, max_errors: int = 100, sink: Optional[Sink] = None, flush_on_error: bool = False):
        self.max_errors = max_errors
        self.sink = sink
        self.flush_on_error = flush_on_error
        # when set, error-triggered flushes run here instead of on the caller's thread
        self.executor: Optional[Executor] = None
        self._buffer: List[ErrorReport] = []
        self._lock = threading.Lock()
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    @property
    def pending(self) -> List[ErrorReport]:
        with self._lock:
            return list(self._buffer)

    def init(self) -> "ErrorTracker":
        self._active = True
        log.info(f"ERROR_TRACKER_INIT | max_errors={self.max_errors} | sink={'yes' if self.sink else 'no'}")
        return self

    def capture_exception(self, exc: BaseException, **context: Any) -> None:
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        self._add(ErrorReport(message=str(exc) or type(exc).__name__, level="error", stack=stack,
                              context={"exception_type": type(exc).__name__, **context}))

    def capture_warning(self, message: str, **context: Any) -> None:
        self._add(ErrorReport(message=message, level="warning", context=context))

    def capture_info(self, message: str, **context: Any) -> None:
        self._add(ErrorReport(message=message, level="info", context=context))

    def flush(self) -> int:
        """Send buffered reports to the sink. Returns how many were delivered."""
        with self._lock:
            if self.sink is None or not self._buffer:
                return 0
            batch = self._buffer
            self._buffer = []

        try:
            self.sink([r.to_dict() for r in batch])
        except Exception as exc:  # noqa: BLE001
            log.error(f"ERROR_TRACKER_FLUSH_FAILED | count={len(batch)} | error={exc}")
            with self._lock:
                self._buffer = (batch + self._buffer)[-self.max_errors:]
            return 0

        log.debug(f"ERROR_TRACKER_FLUSHED | count={len(batch)}")
        return len(batch)

    def destroy(self) -> None:
        if not self._active:
            return
        self.flush()
        self._active = False
        with self._lock:
            self._buffer.clear()
        log.info("ERROR_TRACKER_DESTROYED")

    def _add(self, report: ErrorReport) -> None:
        if not self._active:
            return
        with self._lock:
            self._buffer.append(report)
            if len(self._buffer) > self.max_errors:
                self._buffer.pop(0)
        if self.flush_on_error and report.level == "error":
            self._flush_soon()

    def _flush_soon(self) -> None:
        if self.executor is None:
            self.flush()
            return
        try:
            self.executor.submit(self.flush)
        except RuntimeError:
            # executor already shut down
            self.flush()
