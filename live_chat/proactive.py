"""
Proactive prompts: small toasts that invite a visitor into the chat after a
delay. They hide while the chat window is open and stay gone once dismissed.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from .chat_store import ChatStore
from .scheduler import TimerHandle

log = logging.getLogger(__name__)

DEFAULT_PROMPT_MESSAGE = "Hi! Need help finding something?"


class ProactivePrompt:
    test_id = "proactive-trigger"
    chat_label = "Chat now"
    dismiss_label: Optional[str] = "Maybe later"

    def __init__(
        self,
        store: ChatStore,
        message: str = DEFAULT_PROMPT_MESSAGE,
        delay: float = 30.0,
        show_on_pages: Optional[List[str]] = None,
    ):
        self.store = store
        self.message = message
        self.delay = delay
        self.show_on_pages = list(show_on_pages or [])
        self.title = store.config.bot_name
        self.visible = False
        self.dismissed = False
        self._timer: Optional[TimerHandle] = None
        self._unsubscribe = store.subscribe(lambda _store: self._sync())
        self._sync()

    @property
    def is_shown(self) -> bool:
        return self.visible and not self.store.is_open and not self.dismissed

    @property
    def armed(self) -> bool:
        return self._timer is not None

    def chat_now(self) -> None:
        self.store.open_chat()

    def dismiss(self) -> None:
        self.dismissed = True
        self._cancel()
        log.debug(f"PROMPT_DISMISSED | session={self.store.session_id} | prompt={self.test_id}")

    def dispose(self) -> None:
        self._cancel()
        self._unsubscribe()

    def _page_allowed(self) -> bool:
        if not self.show_on_pages:
            return True
        return any(page in self.store.current_path for page in self.show_on_pages)

    def _eligible(self) -> bool:
        return (
            not self.store.disposed
            and not self.store.is_open
            and not self.dismissed
            and self._page_allowed()
        )

    def _sync(self) -> None:
        if self.visible:
            return
        if self._eligible():
            if self._timer is None:
                self._timer = self.store.scheduler.call_later(self.delay, self._show)
        else:
            self._cancel()

    def _show(self) -> None:
        self._timer = None
        if self._eligible():
            self.visible = True
            log.info(f"PROMPT_SHOWN | session={self.store.session_id} | prompt={self.test_id}")

    def _cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


class CheckoutPrompt(ProactivePrompt):
    """Checkout-page variant: longer delay, no page filter, fixed copy."""
    test_id = "checkout-chat-prompt"
    chat_label = "Chat"
    dismiss_label = None

    def __init__(self, store: ChatStore, delay: float = 60.0):
        super().__init__(store, message="Our team is ready to assist with checkout", delay=delay)
        self.title = "Need help with your order?"
