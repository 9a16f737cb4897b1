from __future__ import annotations

import asyncio
from typing import List

from live_chat.config import (
    CONFIGS,
    ChatConfig,
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    get_config,
)
from live_chat.enums import WidgetPosition
from live_chat.scheduler import AsyncioScheduler, ManualScheduler


def test_manual_clock_fires_in_deadline_order():
    clock = ManualScheduler()
    fired: List[str] = []
    clock.call_later(2.0, lambda: fired.append("b"))
    clock.call_later(1.0, lambda: fired.append("a"))
    clock.call_later(1.0, lambda: fired.append("a2"))

    assert clock.advance(1.0) == 2
    assert fired == ["a", "a2"]
    assert clock.time() == 1.0
    assert clock.advance(1.0) == 1
    assert clock.pending == 0


def test_manual_clock_runs_timers_scheduled_inside_window():
    clock = ManualScheduler()
    fired: List[float] = []
    clock.call_later(1.0, lambda: clock.call_later(1.0, lambda: fired.append(clock.time())))

    clock.advance(5.0)
    assert fired == [2.0]
    assert clock.time() == 5.0


def test_cancelled_timer_never_fires():
    clock = ManualScheduler()
    fired: List[int] = []
    handle = clock.call_later(1.0, lambda: fired.append(1))
    handle.cancel()
    assert clock.pending == 0
    assert clock.run_all() == 0
    assert fired == []


def test_run_all_reaches_far_timers():
    clock = ManualScheduler()
    fired: List[int] = []
    clock.call_later(3600.0, lambda: fired.append(1))
    assert clock.run_all() == 1
    assert clock.time() == 3600.0


def test_asyncio_scheduler_uses_loop():
    loop = asyncio.new_event_loop()
    try:
        scheduler = AsyncioScheduler(loop)
        fired: List[int] = []
        scheduler.call_later(0.0, lambda: fired.append(1))
        scheduler.call_later(0.0, loop.stop)
        loop.run_forever()
        assert fired == [1]
    finally:
        loop.close()


def test_chat_config_from_settings(monkeypatch):
    settings = TestingConfig()
    monkeypatch.setattr(settings, "CHAT_WIDGET_POSITION", "bottom-left", raising=False)
    monkeypatch.setattr(settings, "CHAT_PROACTIVE_PAGES", ["/basket"], raising=False)

    cfg = ChatConfig.from_settings(settings)
    assert cfg.position == WidgetPosition.BOTTOM_LEFT
    assert cfg.proactive_pages == ["/basket"]
    assert cfg.response_delay == 0.0
    assert cfg.agent_connect_delay == 0.0


def test_chat_config_bad_position_falls_back(monkeypatch):
    settings = TestingConfig()
    monkeypatch.setattr(settings, "CHAT_WIDGET_POSITION", "top-center", raising=False)
    assert ChatConfig.from_settings(settings).position == WidgetPosition.BOTTOM_RIGHT


def test_get_config_by_name(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    assert isinstance(get_config("testing"), TestingConfig)
    assert isinstance(get_config(), ProductionConfig)
    assert type(get_config("nonsense")) is DevelopmentConfig
    assert set(CONFIGS) >= {"development", "production", "testing"}
