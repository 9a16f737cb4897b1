# live_chat/routes/health.py
"""
Simple readiness/liveness probe.

Returns HTTP 200 if:
• Flask is running
• the chat runtime loop is alive
• Redis is reachable

Otherwise 500 (so the orchestrator can restart the pod).
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify

log = logging.getLogger(__name__)
bp = Blueprint("health", __name__)


@bp.get("/health")
def health_check() -> tuple[Dict[str, Any], int]:
    runtime = current_app.extensions.get("chat_runtime")
    if runtime is None or not runtime.running:
        return jsonify({"status": "unhealthy", "runtime": "stopped", "service": "live-chat"}), 500
    try:
        current_app.extensions["redis_mgr"].redis.ping()
        return jsonify({"status": "healthy", "redis": "connected", "runtime": "running", "service": "live-chat"}), 200
    except Exception as exc:  # noqa: BLE001
        log.warning("Redis ping failed: %s", exc)
        return jsonify({"status": "unhealthy", "redis": "disconnected", "service": "live-chat"}), 500
