"""
Redis persistence for chat sessions
===================================

- Transcript snapshots (`chat:session:<id>`) with TTL, debounced so identical
  consecutive snapshots are written once.
- Outbound user messages (`chat:session:<id>:outbox`) for the backend/analytics
  consumer.
- Human-handoff requests (`support:queue`).
- Error-tracker batches (`errors:items`).

Snapshot reads/writes are best-effort: Redis failures are logged and the chat
keeps running from memory.
"""
from __future__ import annotations

import hashlib
import json
import logging
import time
from datetime import timedelta
from typing import Any, Dict, List, Optional

import redis
from redis.exceptions import RedisError

from .config import get_config
from .models import ChatSnapshot
from .utils import iso_now

log = logging.getLogger(__name__)
Cfg = get_config()

SUPPORT_QUEUE_KEY = "support:queue"
ERRORS_KEY = "errors:items"
MAX_ERROR_ITEMS = 1000


def session_key(session_id: str) -> str:
    return f"chat:session:{session_id}"


def outbox_key(session_id: str) -> str:
    return f"chat:session:{session_id}:outbox"


class RedisChatManager:
    def __init__(self, client: redis.Redis | None = None, ttl_seconds: int | None = None):
        self.redis: redis.Redis = client or redis.Redis(
            host=Cfg.REDIS_HOST,
            port=Cfg.REDIS_PORT,
            db=Cfg.REDIS_DB,
            decode_responses=Cfg.REDIS_DECODE_RESPONSES,
            socket_timeout=10,
            socket_connect_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        self.ttl = timedelta(seconds=ttl_seconds if ttl_seconds is not None else Cfg.REDIS_TTL_SECONDS)

        # session_id -> (hash, timestamp) of the last written snapshot
        self._last_save_hash: Dict[str, tuple[str, float]] = {}
        self._debounce_window = 1.0  # seconds

    # ────────────────────────────────────────────────────────
    # Health
    # ────────────────────────────────────────────────────────
    def health_check(self) -> Dict[str, Any]:
        health: Dict[str, Any] = {"ping_success": False, "timestamp": iso_now()}
        try:
            health["ping_success"] = bool(self.redis.ping())
            try:
                health["memory_info"] = {"used_memory_human": self.redis.info("memory").get("used_memory_human")}
            except RedisError:
                health["memory_info"] = {}
        except RedisError as e:
            log.error(f"REDIS_HEALTH_CHECK_FAILED | error={e}")
            health["error"] = str(e)
        return health

    # ────────────────────────────────────────────────────────
    # Snapshots
    # ────────────────────────────────────────────────────────
    def _snapshot_hash(self, data: Dict[str, Any]) -> str:
        content = {k: v for k, v in data.items() if k != "saved_at"}
        return hashlib.md5(json.dumps(content, sort_keys=True, default=str).encode()).hexdigest()

    def _should_skip_save(self, session_id: str, digest: str) -> bool:
        now = time.time()
        last = self._last_save_hash.get(session_id)
        if last and last[0] == digest and now - last[1] < self._debounce_window:
            log.debug(f"SAVE_DEBOUNCED | session={session_id}")
            return True
        self._last_save_hash[session_id] = (digest, now)

        # Cleanup old entries (keep newest 50 once we pass 100)
        if len(self._last_save_hash) > 100:
            newest = sorted(self._last_save_hash.items(), key=lambda x: x[1][1])[-50:]
            self._last_save_hash = dict(newest)
        return False

    def save_snapshot(self, snapshot: ChatSnapshot) -> bool:
        data = snapshot.to_dict()
        if self._should_skip_save(snapshot.session_id, self._snapshot_hash(data)):
            return True
        try:
            self.redis.setex(session_key(snapshot.session_id), self.ttl, json.dumps(data, default=str))
            log.debug(f"SNAPSHOT_SAVED | session={snapshot.session_id} | messages={len(snapshot.messages)}")
            return True
        except RedisError as e:
            log.error(f"SNAPSHOT_SAVE_ERROR | session={snapshot.session_id} | error={e}")
            return False

    def load_snapshot(self, session_id: str) -> Optional[ChatSnapshot]:
        try:
            raw = self.redis.get(session_key(session_id))
        except RedisError as e:
            log.error(f"SNAPSHOT_LOAD_ERROR | session={session_id} | error={e}")
            return None
        if not raw:
            return None
        try:
            return ChatSnapshot.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            log.warning(f"SNAPSHOT_CORRUPT | session={session_id} | error={e}")
            return None

    def delete_session(self, session_id: str) -> None:
        try:
            self.redis.delete(session_key(session_id), outbox_key(session_id))
            self._last_save_hash.pop(session_id, None)
            log.info(f"SESSION_DELETED | session={session_id}")
        except RedisError as e:
            log.error(f"SESSION_DELETE_ERROR | session={session_id} | error={e}")

    # ────────────────────────────────────────────────────────
    # Outbound transport (errors propagate to the caller)
    # ────────────────────────────────────────────────────────
    def push_outbound_message(self, session_id: str, text: str) -> None:
        item = json.dumps({"session_id": session_id, "message": text, "timestamp": iso_now()})
        key = outbox_key(session_id)
        self.redis.rpush(key, item)
        self.redis.expire(key, self.ttl)

    def outbound_messages(self, session_id: str) -> List[Dict[str, Any]]:
        return [json.loads(i) for i in self.redis.lrange(outbox_key(session_id), 0, -1)]

    def enqueue_handoff(self, session_id: str) -> None:
        item = json.dumps({"session_id": session_id, "requested_at": iso_now()})
        self.redis.lpush(SUPPORT_QUEUE_KEY, item)
        log.info(f"HANDOFF_ENQUEUED | session={session_id}")

    def push_errors(self, reports: List[Dict[str, Any]]) -> None:
        if not reports:
            return
        self.redis.lpush(ERRORS_KEY, *[json.dumps(r, default=str) for r in reports])
        self.redis.ltrim(ERRORS_KEY, 0, MAX_ERROR_ITEMS - 1)
