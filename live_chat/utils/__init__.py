# live_chat/utils/__init__.py
"""
Expose helpers at package-level for convenience:

    from live_chat.utils import iso_now
"""

from .helpers import (  # noqa: F401
    badge_text,
    iso_now,
    preview,
)

__all__ = [
    "badge_text",
    "iso_now",
    "preview",
]
