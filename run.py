#!/usr/bin/env python3
"""
Live Chat Application Entry Point
- Works under both Gunicorn (WSGI import) and python CLI.
- Ensures logging is initialized exactly once per process.
- Aligns Flask app logger with root logger for consistent output.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Tuple

from dotenv import load_dotenv
from flask import request

# Load env before any other imports that might read it
load_dotenv()

# Local imports after env load
from live_chat import create_app  # noqa: E402
from live_chat.logging_setup import setup_logging  # noqa: E402
from live_chat.utils.smart_logger import LogLevel  # noqa: E402

_LOGGING_INITIALIZED = False  # process-level guard


def setup_once() -> LogLevel:
    """Idempotent logging bootstrap."""
    global _LOGGING_INITIALIZED
    if not _LOGGING_INITIALIZED:
        level = setup_logging()
        _LOGGING_INITIALIZED = True
        return level
    return getattr(LogLevel, os.getenv("BOT_LOG_LEVEL", "STANDARD").upper(), LogLevel.STANDARD)


def validate_environment(strict: bool) -> None:
    """
    Validate critical env vars.
    - If strict=True: exit on missing vars (CLI path).
    - If strict=False: log a warning (WSGI path) so the pod can come up and emit a health page.
    """
    required = {
        "REDIS_HOST": "Session storage",
    }
    missing = [f"{k} (required for {v})" for k, v in required.items() if not os.getenv(k)]

    if missing:
        msg = "Missing required environment variables: " + ", ".join(missing)
        if strict:
            print("Error:", msg)
            sys.exit(1)
        else:
            logging.getLogger(__name__).warning(msg)


def create_application(strict_env: bool = False):
    validate_environment(strict=strict_env)
    setup_once()

    app = create_app()

    # Propagate into root handlers configured by setup_logging()
    app.logger.handlers.clear()
    app.logger.propagate = True

    @app.before_request
    def _log_request():
        app.logger.info("→ %s %s", request.method, request.path)

    return app


def _resolve_server_config() -> Tuple[str, int, bool]:
    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "8080"))

    flask_debug = os.getenv("FLASK_DEBUG", "").lower()
    if flask_debug in ("1", "true", "yes", "on"):
        debug = True
    elif flask_debug in ("0", "false", "no", "off"):
        debug = False
    else:
        debug = os.getenv("APP_ENV", "development").lower() == "development"

    return host, port, debug


def main() -> None:
    app = create_application(strict_env=True)
    host, port, debug = _resolve_server_config()

    print("Live Chat Starting")
    print("=" * 60)
    print(f"Server:       http://{host}:{port}")
    print(f"Demo UI:      http://{host}:{port}/chat/ui")
    print(f"Health check: http://{host}:{port}/rs/health")
    print(f"Environment:  {os.getenv('APP_ENV', 'development')}")
    print("=" * 60)

    try:
        app.run(host=host, port=port, debug=debug, use_reloader=False, threaded=True)
    except KeyboardInterrupt:
        print("\nShutting down gracefully...")


if __name__ == "__main__":
    main()
else:
    # WSGI entrypoint for Gunicorn: `gunicorn run:app`
    app = create_application(strict_env=False)
