"""
Chat runtime
============

Hosts one ChatStore per session on a single asyncio event loop running in a
daemon thread. Request threads never touch a store directly: they submit work
with run()/call(), which executes on the loop thread and waits for the result.
That keeps every store mutation (including timer callbacks) on one thread.

Redis writes (snapshot saves, session deletes) run on a single-worker I/O
executor via loop.run_in_executor, so a slow Redis never stalls the timers of
other sessions. One worker keeps writes in submission order and makes it the
only thread that goes through RedisChatManager's debounce map.

Stores idle for longer than the snapshot TTL are evicted by a periodic sweep
on the loop; a later request rehydrates them from Redis while the snapshot
still exists.
"""
from __future__ import annotations

import asyncio
import logging
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional, TypeVar

from .chat_store import ChatStore, default_agent_provider
from .config import ChatConfig
from .error_tracker import ErrorTracker
from .exceptions import SessionNotFoundError
from .models import ChatAgent
from .redis_manager import RedisChatManager
from .scheduler import AsyncioScheduler, Scheduler

log = logging.getLogger(__name__)

T = TypeVar("T")
SchedulerFactory = Callable[[asyncio.AbstractEventLoop], Scheduler]

DEFAULT_IDLE_TTL_SECONDS = 3600.0


class ChatRuntime:
    def __init__(
        self,
        chat_config: ChatConfig,
        manager: Optional[RedisChatManager] = None,
        error_tracker: Optional[ErrorTracker] = None,
        agent_provider: Callable[[], ChatAgent] = default_agent_provider,
        scheduler_factory: Optional[SchedulerFactory] = None,
        call_timeout: float = 5.0,
        idle_ttl: Optional[float] = None,
        sweep_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            idle_ttl: seconds without a request before a store is evicted;
                defaults to the manager's snapshot TTL.
            sweep_interval: seconds between eviction sweeps; 0 disables the
                periodic sweep (sweep() can still be called).
            clock: monotonic time source for idle tracking.
        """
        self.chat_config = chat_config
        self.manager = manager
        self.error_tracker = error_tracker
        self.agent_provider = agent_provider
        self.scheduler_factory = scheduler_factory or AsyncioScheduler
        self.call_timeout = call_timeout
        if idle_ttl is None:
            idle_ttl = manager.ttl.total_seconds() if manager is not None else DEFAULT_IDLE_TTL_SECONDS
        self.idle_ttl = idle_ttl
        self.sweep_interval = sweep_interval
        self.clock = clock

        self.loop = asyncio.new_event_loop()
        self.io = ThreadPoolExecutor(max_workers=1, thread_name_prefix="live-chat-io")
        self._thread: Optional[threading.Thread] = None
        self._sessions: Dict[str, ChatStore] = {}
        self._last_seen: Dict[str, float] = {}
        self._sweep_handle: Optional[asyncio.TimerHandle] = None

    # ────────────────────────────────────────────────────────
    # Loop thread
    # ────────────────────────────────────────────────────────
    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "ChatRuntime":
        if self.running:
            return self
        self._thread = threading.Thread(target=self._run_loop, name="live-chat-loop", daemon=True)
        self._thread.start()
        if self.sweep_interval > 0:
            self.loop.call_soon_threadsafe(self._schedule_sweep)
        log.info(f"CHAT_RUNTIME_STARTED | idle_ttl={self.idle_ttl}s | sweep_interval={self.sweep_interval}s")
        return self

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def stop(self) -> None:
        if not self.running:
            return
        self.call(self._dispose_all)
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout=self.call_timeout)
        self._thread = None
        self.io.shutdown(wait=True)
        log.info("CHAT_RUNTIME_STOPPED")

    def call(self, fn: Callable[..., T], *args: Any) -> T:
        """Run fn(*args) on the loop thread and return its result (exceptions propagate)."""
        if not self.running:
            raise RuntimeError("Chat runtime is not running")

        async def _invoke() -> T:
            return fn(*args)

        future = asyncio.run_coroutine_threadsafe(_invoke(), self.loop)
        return future.result(timeout=self.call_timeout)

    def drain_io(self) -> None:
        """Block until every Redis write queued so far has completed."""
        self.io.submit(lambda: None).result(timeout=self.call_timeout)

    # ────────────────────────────────────────────────────────
    # Sessions
    # ────────────────────────────────────────────────────────
    def create_session(self, session_id: Optional[str] = None, path: str = "") -> str:
        sid = session_id or uuid.uuid4().hex
        self.call(self._ensure_store, sid, path)
        return sid

    def run(self, session_id: str, op: Callable[[ChatStore], T]) -> T:
        """Apply op to the session's store on the loop thread."""
        return self.call(lambda: op(self._require(session_id)))

    def has_session(self, session_id: str) -> bool:
        """Whether the session is live in memory (does not count as activity)."""
        return self.call(lambda: session_id in self._sessions)

    def session_count(self) -> int:
        return self.call(lambda: len(self._sessions))

    def drop_session(self, session_id: str) -> bool:
        def _drop() -> bool:
            store = self._sessions.pop(session_id, None)
            self._last_seen.pop(session_id, None)
            if store is not None:
                store.dispose()
            return store is not None

        dropped = self.call(_drop)
        if self.manager is not None:
            # queued behind any pending save of this session
            self.io.submit(self.manager.delete_session, session_id).result(timeout=self.call_timeout)
        return dropped

    def sweep(self) -> int:
        """Evict idle stores now. Returns how many were evicted."""
        return self.call(self._evict_idle)

    # loop-thread helpers ---------------------------------------------------
    def _touch(self, session_id: str) -> None:
        self._last_seen[session_id] = self.clock()

    def _require(self, session_id: str) -> ChatStore:
        store = self._sessions.get(session_id)
        if store is not None:
            self._touch(session_id)
            return store
        snapshot = self.manager.load_snapshot(session_id) if self.manager else None
        if snapshot is None:
            raise SessionNotFoundError(session_id)
        store = self._build_store(session_id, snapshot.current_path)
        store.restore(snapshot)
        log.info(f"SESSION_REHYDRATED | session={session_id} | messages={len(snapshot.messages)}")
        return store

    def _ensure_store(self, session_id: str, path: str) -> ChatStore:
        try:
            return self._require(session_id)
        except SessionNotFoundError:
            store = self._build_store(session_id, path)
            log.info(f"SESSION_CREATED | session={session_id} | path={path or '-'}")
            return store

    def _build_store(self, session_id: str, path: str) -> ChatStore:
        manager = self.manager
        store = ChatStore(
            session_id,
            self.scheduler_factory(self.loop),
            self.chat_config,
            on_send_message=(lambda text: manager.push_outbound_message(session_id, text)) if manager else None,
            on_request_human_agent=(lambda: manager.enqueue_handoff(session_id)) if manager else None,
            on_chat_open=lambda: log.info(f"CHAT_OPENED | session={session_id}"),
            on_chat_close=lambda: log.info(f"CHAT_CLOSED | session={session_id}"),
            agent_provider=self.agent_provider,
            error_tracker=self.error_tracker,
            current_path=path,
        )
        if manager is not None:
            store.subscribe(lambda s: self._submit_io(manager.save_snapshot, s.snapshot()))
        self._sessions[session_id] = store
        self._touch(session_id)
        return store

    def _submit_io(self, fn: Callable[..., Any], *args: Any) -> None:
        future = self.loop.run_in_executor(self.io, fn, *args)
        future.add_done_callback(self._log_io_failure)

    @staticmethod
    def _log_io_failure(future: asyncio.Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            log.error(f"IO_TASK_FAILED | error={exc}")

    def _schedule_sweep(self) -> None:
        self._sweep_handle = self.loop.call_later(self.sweep_interval, self._sweep_tick)

    def _sweep_tick(self) -> None:
        try:
            self._evict_idle()
        except Exception as e:  # noqa: BLE001
            log.error(f"SESSION_SWEEP_ERROR | error={e}", exc_info=True)
        self._schedule_sweep()

    def _evict_idle(self) -> int:
        now = self.clock()
        expired = [sid for sid, seen in self._last_seen.items() if now - seen >= self.idle_ttl]
        for sid in expired:
            self._last_seen.pop(sid, None)
            store = self._sessions.pop(sid, None)
            if store is not None:
                store.dispose()
        if expired:
            log.info(f"SESSIONS_EVICTED | count={len(expired)} | live={len(self._sessions)}")
        return len(expired)

    def _dispose_all(self) -> None:
        if self._sweep_handle is not None:
            self._sweep_handle.cancel()
            self._sweep_handle = None
        for store in self._sessions.values():
            store.dispose()
        self._sessions.clear()
        self._last_seen.clear()
