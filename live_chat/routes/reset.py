# live_chat/routes/reset.py
"""
/reset endpoint – drops a chat session (in-memory store and Redis snapshot)
so you can start fresh without restarting the backend.

POST body:
{
  "session_id": "abc123"
}
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request

log = logging.getLogger(__name__)
bp = Blueprint("reset", __name__)


@bp.post("/reset")
def reset_session() -> tuple[Dict[str, Any], int]:
    data: Dict[str, str] = request.get_json(silent=True) or {}
    session_id = data.get("session_id")
    if not session_id:
        return jsonify({"error": "Missing session_id"}), 400

    dropped = current_app.extensions["chat_runtime"].drop_session(session_id)
    log.info(f"RESET | session={session_id} | was_live={dropped}")
    return jsonify({"message": "Session reset successfully"}), 200
