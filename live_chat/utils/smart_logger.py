# live_chat/utils/smart_logger.py
"""
Smart, modular logging for the chat widget.
Provides clean, contextual logs with configurable verbosity levels.
"""

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

from .helpers import preview


class LogLevel(Enum):
    MINIMAL = 1      # Only critical flow events
    STANDARD = 2     # Key decisions and state changes
    DETAILED = 3     # Include context changes
    DEBUG = 4        # Everything


class SmartLogger:
    def __init__(self, name: str, level: LogLevel = LogLevel.STANDARD):
        self.logger = logging.getLogger(name)
        self.level = level

    def set_level(self, level: LogLevel):
        """Change logging verbosity at runtime"""
        self.level = level

    def _should_log(self, required_level: LogLevel) -> bool:
        return self.level.value >= required_level.value

    def _clean_log(self, level: str, emoji: str, category: str, message: str, **kwargs):
        details = " | ".join([f"{k}={v}" for k, v in kwargs.items() if v is not None])
        if details:
            full_message = f"{emoji} {category} | {message} | {details}"
        else:
            full_message = f"{emoji} {category} | {message}"

        getattr(self.logger, level.lower())(full_message)

    # ═══════════════════════════════════════════════════════════
    # HIGH-LEVEL FLOW EVENTS
    # ═══════════════════════════════════════════════════════════

    def message_received(self, session_id: str, text: str, routed: str):
        """Log an incoming user message and where it goes (bot or agent)"""
        if not self._should_log(LogLevel.MINIMAL):
            return
        self._clean_log("info", "💬", "MESSAGE", f"'{preview(text)}'", session=session_id, routed=routed)

    def status_change(self, session_id: str, old: str, new: str):
        if not self._should_log(LogLevel.MINIMAL):
            return
        self._clean_log("info", "🔀", "STATUS", f"{old}→{new}", session=session_id)

    def proactive_fired(self, session_id: str, path: str):
        if not self._should_log(LogLevel.MINIMAL):
            return
        self._clean_log("info", "📣", "PROACTIVE", "prompt shown", session=session_id, path=path)

    def faq_decision(self, session_id: str, question: Optional[str], suppressed: bool = False):
        """Log which knowledge base entry answered (None = fallback)"""
        if not self._should_log(LogLevel.STANDARD):
            return
        if suppressed:
            decision = "suppressed (agent connected)"
        else:
            decision = f"matched '{question}'" if question else "fallback"
        self._clean_log("info", "🧠", "FAQ", decision, session=session_id)

    def quick_action(self, session_id: str, tag: str, handled: bool):
        if not self._should_log(LogLevel.STANDARD):
            return
        self._clean_log("info", "🔘", "QUICK_ACTION", tag, session=session_id, handled=handled)

    def window_event(self, session_id: str, event: str, status: str = None):
        if not self._should_log(LogLevel.STANDARD):
            return
        self._clean_log("info", "🪟", "WINDOW", event, session=session_id, status=status)

    # ═══════════════════════════════════════════════════════════
    # DETAILED EVENTS
    # ═══════════════════════════════════════════════════════════

    def context_change(self, session_id: str, change_type: str, details: Dict[str, Any] = None):
        if not self._should_log(LogLevel.DETAILED):
            return
        self._clean_log("debug", "🔄", "CONTEXT", change_type, session=session_id, **(details or {}))

    def error_occurred(self, session_id: str, error_type: str, operation: str, error_msg: str = None):
        """Errors are always logged regardless of level"""
        self._clean_log("error", "❌", "ERROR", f"{error_type} in {operation}",
                        session=session_id, msg=error_msg)

    def warning(self, session_id: str, warning_type: str, details: str = None):
        if not self._should_log(LogLevel.STANDARD):
            return
        self._clean_log("warning", "⚠️", "WARNING", warning_type, session=session_id, details=details)

    # ═══════════════════════════════════════════════════════════
    # DEBUG EVENTS
    # ═══════════════════════════════════════════════════════════

    def debug_state(self, session_id: str, state_name: str, state_data: Dict[str, Any]):
        if not self._should_log(LogLevel.DEBUG):
            return
        # Only show keys and counts, not full data
        summary = {k: len(v) if isinstance(v, (list, dict, str, tuple)) else str(v)[:20]
                   for k, v in state_data.items()}
        self._clean_log("debug", "🔍", "STATE", state_name, session=session_id, **summary)


# ═══════════════════════════════════════════════════════════════════════════════
# LOGGER REGISTRY AND CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════

_loggers: Dict[str, SmartLogger] = {}


def _env_level() -> LogLevel:
    return getattr(LogLevel, os.getenv("BOT_LOG_LEVEL", "STANDARD").upper(), LogLevel.STANDARD)


def get_smart_logger(module_name: str, level: LogLevel = None) -> SmartLogger:
    """Get or create a smart logger for a module"""
    if module_name not in _loggers:
        _loggers[module_name] = SmartLogger(module_name, level or _env_level())

    if level:
        _loggers[module_name].set_level(level)

    return _loggers[module_name]
