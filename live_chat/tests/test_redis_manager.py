from __future__ import annotations

import json

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from live_chat.chat_store import ChatStore
from live_chat.redis_manager import (
    ERRORS_KEY,
    SUPPORT_QUEUE_KEY,
    RedisChatManager,
    outbox_key,
    session_key,
)


@pytest.fixture
def manager(fake_redis) -> RedisChatManager:
    return RedisChatManager(client=fake_redis, ttl_seconds=60)


def test_health_check(manager, fake_redis):
    health = manager.health_check()
    assert health["ping_success"] is True
    assert health["memory_info"]["used_memory_human"] == "1.00M"

    fake_redis.down = True
    health = manager.health_check()
    assert health["ping_success"] is False
    assert "redis is down" in health["error"]


def test_snapshot_roundtrip(manager, fake_redis, clock):
    store = ChatStore("s1", clock)
    store.open_chat()
    store.send_message("where is my order")
    clock.advance(1.0)

    assert manager.save_snapshot(store.snapshot())
    assert fake_redis.ttls[session_key("s1")].total_seconds() == 60

    loaded = manager.load_snapshot("s1")
    assert loaded.is_open
    assert [m.content for m in loaded.messages] == [m.content for m in store.messages]
    assert loaded.messages[-1].actions == store.messages[-1].actions


def test_identical_snapshots_are_debounced(manager, fake_redis, clock):
    store = ChatStore("s1", clock)
    manager.save_snapshot(store.snapshot())
    fake_redis.kv.clear()

    assert manager.save_snapshot(store.snapshot())
    assert session_key("s1") not in fake_redis.kv

    store.open_chat()
    manager.save_snapshot(store.snapshot())
    assert session_key("s1") in fake_redis.kv


def test_redis_down_is_best_effort_for_snapshots(manager, fake_redis, clock):
    fake_redis.down = True
    assert manager.save_snapshot(ChatStore("s1", clock).snapshot()) is False
    assert manager.load_snapshot("s1") is None
    manager.delete_session("s1")


def test_missing_or_corrupt_snapshot_loads_as_none(manager, fake_redis):
    assert manager.load_snapshot("nope") is None
    fake_redis.kv[session_key("bad")] = "{not json"
    assert manager.load_snapshot("bad") is None


def test_outbox_and_delete(manager, fake_redis):
    manager.push_outbound_message("s1", "hello")
    manager.push_outbound_message("s1", "again")
    assert [m["message"] for m in manager.outbound_messages("s1")] == ["hello", "again"]
    assert fake_redis.ttls[outbox_key("s1")].total_seconds() == 60

    manager.delete_session("s1")
    assert manager.outbound_messages("s1") == []


def test_outbox_errors_propagate(manager, fake_redis):
    fake_redis.down = True
    with pytest.raises(RedisConnectionError):
        manager.push_outbound_message("s1", "hello")


def test_handoff_queue_and_error_batches(manager, fake_redis):
    manager.enqueue_handoff("s1")
    queued = json.loads(fake_redis.lists[SUPPORT_QUEUE_KEY][0])
    assert queued["session_id"] == "s1"

    manager.push_errors([])
    assert ERRORS_KEY not in fake_redis.lists
    manager.push_errors([{"message": "a"}, {"message": "b"}])
    assert len(fake_redis.lists[ERRORS_KEY]) == 2
