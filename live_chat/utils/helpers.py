"""
Utility helpers
"""

from __future__ import annotations

from datetime import datetime

MAX_BADGE_COUNT = 9


def iso_now() -> str:
    return datetime.now().isoformat()


def badge_text(count: int) -> str:
    """Unread badge label: '' when nothing unread, '9+' above nine."""
    if count <= 0:
        return ""
    return f"{MAX_BADGE_COUNT}+" if count > MAX_BADGE_COUNT else str(count)


def preview(text: str, limit: int = 50) -> str:
    return text[:limit] + "..." if len(text) > limit else text

