"""
Dataclass models for the live chat widget.
Messages, quick actions and agents are immutable; snapshots round-trip through
to_dict()/from_dict() for Redis persistence.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from .enums import MessageRole


def generate_id(prefix: str = "msg") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class QuickAction:
    """Button attached to a bot message"""
    id: str
    label: str
    action: str             # tag dispatched back into handle_quick_action

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "label": self.label, "action": self.action}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuickAction":
        return cls(id=str(data["id"]), label=str(data["label"]), action=str(data["action"]))


@dataclass(frozen=True)
class ChatMessage:
    id: str
    content: str
    role: MessageRole
    timestamp: datetime = field(default_factory=datetime.now)
    is_typing: bool = False
    actions: Tuple[QuickAction, ...] = ()
    delivery_failed: bool = False

    @classmethod
    def create(
        cls,
        content: str,
        role: MessageRole,
        actions: Optional[List[QuickAction]] = None,
        **kwargs: Any,
    ) -> "ChatMessage":
        return cls(id=generate_id(), content=content, role=role, actions=tuple(actions or ()), **kwargs)

    @classmethod
    def typing_indicator(cls) -> "ChatMessage":
        return cls(id=generate_id("typing"), content="", role=MessageRole.BOT, is_typing=True)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "id": self.id,
            "content": self.content,
            "role": self.role.value,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.is_typing:
            result["is_typing"] = True
        if self.actions:
            result["actions"] = [a.to_dict() for a in self.actions]
        if self.delivery_failed:
            result["delivery_failed"] = True
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatMessage":
        return cls(
            id=str(data["id"]),
            content=str(data.get("content", "")),
            role=MessageRole(data["role"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            is_typing=bool(data.get("is_typing", False)),
            actions=tuple(QuickAction.from_dict(a) for a in data.get("actions") or ()),
            delivery_failed=bool(data.get("delivery_failed", False)),
        )


@dataclass(frozen=True)
class ChatAgent:
    id: str
    name: str
    avatar: Optional[str] = None
    is_online: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "avatar": self.avatar, "is_online": self.is_online}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatAgent":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            avatar=data.get("avatar"),
            is_online=bool(data.get("is_online", True)),
        )


@dataclass(frozen=True)
class FAQItem:
    """Knowledge base record: keywords, canned answer and follow-up buttons"""
    keywords: Tuple[str, ...]
    question: str
    answer: str
    follow_up: Tuple[QuickAction, ...] = ()


@dataclass
class ChatSnapshot:
    """Serializable view of a ChatStore at one point in time"""
    session_id: str
    is_open: bool = False
    is_minimized: bool = False
    messages: List[ChatMessage] = field(default_factory=list)
    status: str = "idle"
    agent: Optional[ChatAgent] = None
    unread_count: int = 0
    has_initialized: bool = False
    proactive_shown: bool = False
    current_path: str = ""
    saved_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "is_open": self.is_open,
            "is_minimized": self.is_minimized,
            "messages": [m.to_dict() for m in self.messages],
            "status": self.status,
            "agent": self.agent.to_dict() if self.agent else None,
            "unread_count": self.unread_count,
            "has_initialized": self.has_initialized,
            "proactive_shown": self.proactive_shown,
            "current_path": self.current_path,
            "saved_at": self.saved_at,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatSnapshot":
        agent = data.get("agent")
        return cls(
            session_id=str(data["session_id"]),
            is_open=bool(data.get("is_open", False)),
            is_minimized=bool(data.get("is_minimized", False)),
            messages=[ChatMessage.from_dict(m) for m in data.get("messages") or []],
            status=str(data.get("status", "idle")),
            agent=ChatAgent.from_dict(agent) if agent else None,
            unread_count=max(0, int(data.get("unread_count", 0))),
            has_initialized=bool(data.get("has_initialized", False)),
            proactive_shown=bool(data.get("proactive_shown", False)),
            current_path=str(data.get("current_path", "")),
            saved_at=str(data.get("saved_at", "")),
        )
