"""
Environment-driven configuration for the live chat service.
Service settings live on the config classes; the widget settings a ChatStore
consumes are collected into ChatConfig.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .enums import WidgetPosition

BASE_DIR = Path(__file__).resolve().parent.parent

_TRUTHY = {"1", "true", "yes", "on"}

DEFAULT_OFFLINE_MESSAGE = (
    "Our team is currently offline. Please leave a message and we'll get back to you soon."
)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in _TRUTHY


def _env_list(name: str, default: str) -> List[str]:
    return [p.strip() for p in os.getenv(name, default).split(",") if p.strip()]


class BaseConfig:
    SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-secret-change-me")
    JSON_SORT_KEYS: bool = False

    # Redis
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", 6379))
    REDIS_DB: int = int(os.getenv("REDIS_DB", 0))
    REDIS_DECODE_RESPONSES: bool = True
    REDIS_TTL_SECONDS: int = int(os.getenv("REDIS_TTL_SECONDS", 3600))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Widget
    CHAT_BOT_NAME: str = os.getenv("CHAT_BOT_NAME", "ShopBot")
    CHAT_WELCOME_MESSAGE: str = os.getenv("CHAT_WELCOME_MESSAGE", "")
    CHAT_OFFLINE_MESSAGE: str = os.getenv("CHAT_OFFLINE_MESSAGE", DEFAULT_OFFLINE_MESSAGE)
    CHAT_PROACTIVE_ENABLED: bool = _env_flag("CHAT_PROACTIVE_ENABLED")
    CHAT_PROACTIVE_DELAY_SECONDS: float = float(os.getenv("CHAT_PROACTIVE_DELAY_SECONDS", "30"))
    CHAT_CHECKOUT_DELAY_SECONDS: float = float(os.getenv("CHAT_CHECKOUT_DELAY_SECONDS", "60"))
    CHAT_PROACTIVE_PAGES: List[str] = _env_list("CHAT_PROACTIVE_PAGES", "/checkout,/cart")
    CHAT_SHOW_TYPING_INDICATOR: bool = _env_flag("CHAT_SHOW_TYPING_INDICATOR", "true")
    CHAT_WIDGET_POSITION: str = os.getenv("CHAT_WIDGET_POSITION", WidgetPosition.BOTTOM_RIGHT.value)

    # Simulated latencies
    CHAT_RESPONSE_DELAY_SECONDS: float = float(os.getenv("CHAT_RESPONSE_DELAY_SECONDS", "1.0"))
    CHAT_AGENT_CONNECT_DELAY_SECONDS: float = float(os.getenv("CHAT_AGENT_CONNECT_DELAY_SECONDS", "2.0"))

    # Error tracking
    ERROR_TRACKER_MAX_ERRORS: int = int(os.getenv("ERROR_TRACKER_MAX_ERRORS", "100"))

    # In-memory sessions idle longer than REDIS_TTL_SECONDS are evicted by this sweep
    CHAT_SWEEP_INTERVAL_SECONDS: float = float(os.getenv("CHAT_SWEEP_INTERVAL_SECONDS", "60"))


class DevelopmentConfig(BaseConfig):
    DEBUG: bool = True


class ProductionConfig(BaseConfig):
    DEBUG: bool = False
    REDIS_TTL_SECONDS: int = int(os.getenv("REDIS_TTL_SECONDS", "900"))


class TestingConfig(BaseConfig):
    TESTING: bool = True
    REDIS_DB: int = 15
    CHAT_RESPONSE_DELAY_SECONDS: float = 0.0
    CHAT_AGENT_CONNECT_DELAY_SECONDS: float = 0.0


@dataclass
class ChatConfig:
    """Inbound configuration consumed by a ChatStore."""
    bot_name: str = "ShopBot"
    welcome_message: str = ""            # empty -> default greeting with menu
    offline_message: str = DEFAULT_OFFLINE_MESSAGE
    proactive_enabled: bool = False
    proactive_delay: float = 30.0
    checkout_abandonment_delay: float = 60.0
    proactive_pages: List[str] = field(default_factory=lambda: ["/checkout", "/cart"])
    show_typing_indicator: bool = True
    position: WidgetPosition = WidgetPosition.BOTTOM_RIGHT
    response_delay: float = 1.0
    agent_connect_delay: float = 2.0

    @classmethod
    def from_settings(cls, cfg: BaseConfig) -> "ChatConfig":
        try:
            position = WidgetPosition(cfg.CHAT_WIDGET_POSITION)
        except ValueError:
            logging.getLogger(__name__).warning(
                f"CONFIG_INVALID_POSITION | value={cfg.CHAT_WIDGET_POSITION} | using=bottom-right"
            )
            position = WidgetPosition.BOTTOM_RIGHT
        return cls(
            bot_name=cfg.CHAT_BOT_NAME,
            welcome_message=cfg.CHAT_WELCOME_MESSAGE,
            offline_message=cfg.CHAT_OFFLINE_MESSAGE,
            proactive_enabled=cfg.CHAT_PROACTIVE_ENABLED,
            proactive_delay=cfg.CHAT_PROACTIVE_DELAY_SECONDS,
            checkout_abandonment_delay=cfg.CHAT_CHECKOUT_DELAY_SECONDS,
            proactive_pages=list(cfg.CHAT_PROACTIVE_PAGES),
            show_typing_indicator=cfg.CHAT_SHOW_TYPING_INDICATOR,
            position=position,
            response_delay=cfg.CHAT_RESPONSE_DELAY_SECONDS,
            agent_connect_delay=cfg.CHAT_AGENT_CONNECT_DELAY_SECONDS,
        )


CONFIGS = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "test": TestingConfig,
}


def get_config(env: Optional[str] = None) -> BaseConfig:
    """Get configuration instance directly - no complex manager. `env` defaults to APP_ENV."""
    env = (env or os.getenv("APP_ENV", os.getenv("FLASK_ENV", "development"))).lower()
    config_class = CONFIGS.get(env, DevelopmentConfig)
    cfg = config_class()

    log = logging.getLogger(__name__)
    if not hasattr(get_config, "_logged_startup"):
        log.info(f"⚙️ CONFIG_STARTUP | env={env} | config_class={config_class.__name__}")
        log.info(
            f"💬 WIDGET_CONFIG | bot={cfg.CHAT_BOT_NAME} | proactive={cfg.CHAT_PROACTIVE_ENABLED} "
            f"| pages={cfg.CHAT_PROACTIVE_PAGES} | typing={cfg.CHAT_SHOW_TYPING_INDICATOR}"
        )
        log.info(f"💾 REDIS_CONFIG | host={cfg.REDIS_HOST} | port={cfg.REDIS_PORT} | db={cfg.REDIS_DB} | ttl={cfg.REDIS_TTL_SECONDS}s")
        get_config._logged_startup = True

    return cfg
