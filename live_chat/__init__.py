"""
Live Chat Application Factory
=============================

Wires together:
- error_tracker.py (explicit instance, flushed to Redis)
- redis_manager.py (snapshots, outbox, support queue)
- runtime.py (event-loop thread owning one ChatStore per session)
- routes (chat endpoints, health, reset, demo UI)
"""

from __future__ import annotations

import atexit
import logging
import os
from datetime import datetime
from typing import Callable, Optional

import redis
from flask import Flask, jsonify
from flask_cors import CORS

from .chat_store import default_agent_provider
from .config import ChatConfig, get_config
from .error_tracker import ErrorTracker
from .exceptions import LiveChatError
from .models import ChatAgent
from .redis_manager import RedisChatManager
from .runtime import ChatRuntime, SchedulerFactory

log = logging.getLogger(__name__)


def create_app(
    config_name: Optional[str] = None,
    *,
    redis_client: Optional[redis.Redis] = None,
    scheduler_factory: Optional[SchedulerFactory] = None,
    agent_provider: Callable[[], ChatAgent] = default_agent_provider,
    chat_config: Optional[ChatConfig] = None,
) -> Flask:
    """
    App factory.

    INITIALIZATION ORDER:
    1. Error tracker
    2. Redis connection & health check
    3. Chat runtime (event loop thread)
    4. Register routes
    5. Error handlers

    Args:
        config_name: 'development', 'production' or 'testing'; defaults to APP_ENV.
        redis_client: injected client (tests pass a fake).
        scheduler_factory: timer source for chat stores (tests pass a manual clock).
    """
    cfg = get_config(config_name)

    app = Flask(__name__)
    app.config["SECRET_KEY"] = os.getenv("FLASK_SECRET_KEY", "dev-secret-key")
    app.config["TESTING"] = bool(getattr(cfg, "TESTING", False))

    cors_origins_env = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if cors_origins_env:
        allowed_origins = [o.strip() for o in cors_origins_env.split(",") if o.strip()]
    else:
        allowed_origins = ["*"]

    CORS(
        app,
        resources={r"/rs/*": {
            "origins": allowed_origins,
            "methods": ["GET", "POST", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
        }},
        supports_credentials=False,
    )

    # ────────────────────────────────────────────────────────
    # STEP 1: Error tracker
    # ────────────────────────────────────────────────────────
    error_tracker = ErrorTracker(
        max_errors=cfg.ERROR_TRACKER_MAX_ERRORS,
        flush_on_error=not getattr(cfg, "DEBUG", False),
    ).init()
    app.extensions["error_tracker"] = error_tracker

    # ────────────────────────────────────────────────────────
    # STEP 2: Redis
    # ────────────────────────────────────────────────────────
    try:
        log.info("INIT_REDIS | starting Redis connection")
        redis_mgr = RedisChatManager(client=redis_client, ttl_seconds=cfg.REDIS_TTL_SECONDS)
        health = redis_mgr.health_check()
        if not health.get("ping_success"):
            log.error(f"INIT_REDIS_FAILED | health={health}")
            raise RuntimeError(f"Redis connection failed: {health.get('error')}")
        log.info(f"INIT_REDIS_SUCCESS | memory_usage={health.get('memory_info', {}).get('used_memory_human', 'unknown')}")
    except Exception as e:
        log.error(f"INIT_REDIS_ERROR | error={e}", exc_info=True)
        raise RuntimeError(f"Failed to initialize Redis: {e}")

    error_tracker.sink = redis_mgr.push_errors
    app.extensions["redis_mgr"] = redis_mgr

    # ────────────────────────────────────────────────────────
    # STEP 3: Chat runtime
    # ────────────────────────────────────────────────────────
    runtime = ChatRuntime(
        chat_config or ChatConfig.from_settings(cfg),
        manager=redis_mgr,
        error_tracker=error_tracker,
        agent_provider=agent_provider,
        scheduler_factory=scheduler_factory,
        sweep_interval=cfg.CHAT_SWEEP_INTERVAL_SECONDS,
    ).start()
    error_tracker.executor = runtime.io
    app.extensions["chat_runtime"] = runtime
    atexit.register(runtime.stop)
    atexit.register(error_tracker.destroy)
    log.info("INIT_RUNTIME_SUCCESS | chat loop thread running")

    # ────────────────────────────────────────────────────────
    # STEP 4: Register Routes
    # ────────────────────────────────────────────────────────
    from .routes.chat import bp as chat_bp
    from .routes.chat_ui import bp as chat_ui_bp
    from .routes.health import bp as health_bp
    from .routes.reset import bp as reset_bp

    app.register_blueprint(chat_bp, url_prefix="/rs")
    app.register_blueprint(health_bp, url_prefix="/rs")
    app.register_blueprint(reset_bp, url_prefix="/rs")
    app.register_blueprint(chat_ui_bp)
    log.info("REGISTER_ROUTES_SUCCESS | chat, health, reset, chat UI")

    # ────────────────────────────────────────────────────────
    # STEP 5: Error Handlers
    # ────────────────────────────────────────────────────────
    @app.errorhandler(LiveChatError)
    def handle_live_chat_error(error: LiveChatError):
        if error.http_status >= 500:
            error_tracker.capture_exception(error, component="routes")
            log.error(f"LIVE_CHAT_ERROR | code={error.code} | error={error.message}")
        else:
            log.warning(f"LIVE_CHAT_ERROR | code={error.code} | error={error.message} | details={error.details}")
        payload = error.to_json()
        payload["timestamp"] = datetime.now().isoformat()
        return jsonify(payload), error.http_status

    @app.errorhandler(500)
    def handle_internal_error(error):
        log.error(f"INTERNAL_ERROR | error={error}", exc_info=True)
        error_tracker.capture_exception(getattr(error, "original_exception", None) or error, component="flask")
        return {
            "error": "Internal server error",
            "timestamp": datetime.now().isoformat(),
            "details": str(error) if app.debug else "Contact support",
        }, 500

    @app.errorhandler(404)
    def handle_not_found(error):
        return {
            "error": "Endpoint not found",
            "timestamp": datetime.now().isoformat(),
        }, 404

    @app.teardown_request
    def _flush_errors(exc):
        error_tracker.flush()

    log.info(f"APP_INIT_COMPLETE | config={type(cfg).__name__}")
    return app
