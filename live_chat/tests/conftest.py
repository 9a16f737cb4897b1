from __future__ import annotations

from typing import Any, Dict, List

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from live_chat.chat_store import ChatStore
from live_chat.config import ChatConfig
from live_chat.error_tracker import ErrorTracker
from live_chat.scheduler import ManualScheduler


class FakeRedis:
    """In-memory stand-in for the handful of redis commands the service uses."""

    def __init__(self):
        self.kv: Dict[str, Any] = {}
        self.lists: Dict[str, List[Any]] = {}
        self.ttls: Dict[str, Any] = {}
        self.down = False

    def _check(self):
        if self.down:
            raise RedisConnectionError("redis is down")

    def ping(self):
        self._check()
        return True

    def info(self, section=None):
        self._check()
        return {"used_memory_human": "1.00M"}

    def setex(self, key, ttl, value):
        self._check()
        self.kv[key] = value
        self.ttls[key] = ttl
        return True

    def get(self, key):
        self._check()
        return self.kv.get(key)

    def delete(self, *keys):
        self._check()
        removed = 0
        for key in keys:
            removed += int(self.kv.pop(key, None) is not None)
            removed += int(self.lists.pop(key, None) is not None)
        return removed

    def rpush(self, key, *values):
        self._check()
        self.lists.setdefault(key, []).extend(values)
        return len(self.lists[key])

    def lpush(self, key, *values):
        self._check()
        lst = self.lists.setdefault(key, [])
        for v in values:
            lst.insert(0, v)
        return len(lst)

    def expire(self, key, ttl):
        self._check()
        self.ttls[key] = ttl
        return True

    def lrange(self, key, start, end):
        self._check()
        lst = self.lists.get(key, [])
        stop = len(lst) if end == -1 else end + 1
        return lst[start:stop]

    def ltrim(self, key, start, end):
        self._check()
        self.lists[key] = self.lrange(key, start, end)
        return True


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def clock() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def tracker() -> ErrorTracker:
    return ErrorTracker(max_errors=10).init()


@pytest.fixture
def store(clock, tracker) -> ChatStore:
    s = ChatStore("s1", clock, ChatConfig(), error_tracker=tracker)
    yield s
    s.dispose()
