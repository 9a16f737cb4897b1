"""
Exception hierarchy for the live chat service.
Each error carries the HTTP status the Flask error handler answers with.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class LiveChatError(Exception):
    http_status: int = 500
    code: str = "LC-100"

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_json(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class SessionNotFoundError(LiveChatError):
    http_status = 404
    code = "LC-101"

    def __init__(self, session_id: str):
        super().__init__("Chat session not found", details=f"session_id={session_id}")
        self.session_id = session_id


class AgentUnavailableError(LiveChatError):
    """Raised by an agent provider when no human agent can take the chat."""
    http_status = 503
    code = "LC-102"


class ChatDisposedError(LiveChatError):
    """Operation attempted on a store that has been disposed."""
    http_status = 410
    code = "LC-103"
