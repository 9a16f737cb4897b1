# live_chat/routes/chat.py
"""
Chat widget endpoints
=====================

Every endpoint applies one ChatStore operation on the runtime's loop thread
and answers with the freshly rendered widget view:

{
  "session_id": "...",
  "status": "idle|waiting|connected|closed",
  "unread_count": 0,
  "view": {"kind": "launcher|minimized|window", ...}
}
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict

from flask import Blueprint, Response, current_app, jsonify, request

from ..chat_store import ChatStore
from ..presentation import render_store
from ..runtime import ChatRuntime
from ..utils import iso_now

log = logging.getLogger(__name__)
bp = Blueprint("chat", __name__)


def _runtime() -> ChatRuntime:
    return current_app.extensions["chat_runtime"]


def _state_payload(store: ChatStore, input_value: str = "") -> Dict[str, Any]:
    return {
        "session_id": store.session_id,
        "status": store.status.value,
        "unread_count": store.unread_count,
        "agent": store.agent.to_dict() if store.agent else None,
        "view": render_store(store, input_value=input_value).to_dict(),
        "timestamp": iso_now(),
    }


def _apply(session_id: str, op: Callable[[ChatStore], Any]) -> Dict[str, Any]:
    def _op_then_render(store: ChatStore) -> Dict[str, Any]:
        op(store)
        return _state_payload(store)

    return _runtime().run(session_id, _op_then_render)


def _json_body() -> Dict[str, Any]:
    return request.get_json(silent=True) or {}


# ─────────────────────────────────────────────────────────────
# Sessions
# ─────────────────────────────────────────────────────────────
@bp.post("/chat/session")
def create_session() -> tuple[Response, int]:
    data = _json_body()
    path = str(data.get("path") or "")
    session_id = _runtime().create_session(data.get("session_id"), path=path)
    log.info(f"CHAT_SESSION | session={session_id} | path={path or '-'}")
    return jsonify(_runtime().run(session_id, _state_payload)), 201


@bp.get("/chat/<session_id>")
def get_state(session_id: str) -> tuple[Response, int]:
    input_value = request.args.get("input", "")
    return jsonify(_runtime().run(session_id, lambda s: _state_payload(s, input_value))), 200


@bp.get("/chat/<session_id>/history")
def get_history(session_id: str) -> tuple[Response, int]:
    # live store first; an evicted session is rehydrated from its Redis snapshot
    snapshot = _runtime().run(session_id, lambda s: s.snapshot())
    history = [m.to_dict() for m in snapshot.messages if not m.is_typing]
    return jsonify({"session_id": session_id, "history": history}), 200


# ─────────────────────────────────────────────────────────────
# Window lifecycle
# ─────────────────────────────────────────────────────────────
@bp.post("/chat/<session_id>/open")
def open_chat(session_id: str) -> tuple[Response, int]:
    return jsonify(_apply(session_id, lambda s: s.open_chat())), 200


@bp.post("/chat/<session_id>/close")
def close_chat(session_id: str) -> tuple[Response, int]:
    return jsonify(_apply(session_id, lambda s: s.close_chat())), 200


@bp.post("/chat/<session_id>/minimize")
def minimize_chat(session_id: str) -> tuple[Response, int]:
    return jsonify(_apply(session_id, lambda s: s.minimize_chat())), 200


@bp.post("/chat/<session_id>/maximize")
def maximize_chat(session_id: str) -> tuple[Response, int]:
    return jsonify(_apply(session_id, lambda s: s.maximize_chat())), 200


@bp.post("/chat/<session_id>/clear")
def clear_chat(session_id: str) -> tuple[Response, int]:
    return jsonify(_apply(session_id, lambda s: s.clear_chat())), 200


@bp.post("/chat/<session_id>/end")
def end_chat(session_id: str) -> tuple[Response, int]:
    return jsonify(_apply(session_id, lambda s: s.end_chat())), 200


@bp.post("/chat/<session_id>/navigate")
def navigate(session_id: str) -> tuple[Response, int]:
    path = str(_json_body().get("path") or "")
    return jsonify(_apply(session_id, lambda s: s.navigate(path))), 200


# ─────────────────────────────────────────────────────────────
# Conversation
# ─────────────────────────────────────────────────────────────
@bp.post("/chat/<session_id>/message")
def send_message(session_id: str) -> tuple[Response, int]:
    message = str(_json_body().get("message") or "")
    if not message.strip():
        return jsonify({"error": "Message cannot be empty"}), 400
    return jsonify(_apply(session_id, lambda s: s.send_message(message))), 200


@bp.post("/chat/<session_id>/quick-action")
def quick_action(session_id: str) -> tuple[Response, int]:
    action = str(_json_body().get("action") or "")
    if not action:
        return jsonify({"error": "Missing action"}), 400
    return jsonify(_apply(session_id, lambda s: s.handle_quick_action(action))), 200


@bp.post("/chat/<session_id>/agent")
def request_agent(session_id: str) -> tuple[Response, int]:
    return jsonify(_apply(session_id, lambda s: s.request_human_agent())), 200
