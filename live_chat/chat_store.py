"""
Chat State Store
================

Owns the transcript, connection status, unread counter and proactive-trigger
latch for one chat widget. All mutations happen on the scheduler's thread;
every delayed callback re-checks its guard before touching state because
timers with different delays can complete out of call order.

Status flow:  idle -> waiting -> connected ; closed reachable via end_chat().
"""
from __future__ import annotations

import itertools
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from .config import ChatConfig
from .enums import ChatStatus, MessageRole, QuickActionTag
from .exceptions import AgentUnavailableError, ChatDisposedError
from .faq import (
    DEFAULT_MENU,
    FALLBACK_MESSAGE,
    FAQ_DATABASE,
    FAQ_MENU,
    HANDOFF_OFFER,
    find_faq_match,
    welcome_text,
)
from .models import ChatAgent, ChatMessage, ChatSnapshot, FAQItem, QuickAction
from .scheduler import Scheduler, TimerHandle
from .utils.smart_logger import get_smart_logger

log = logging.getLogger(__name__)
smart_log = get_smart_logger("live_chat.chat_store")

Listener = Callable[["ChatStore"], None]

CONNECTING_MESSAGE = "I'm connecting you with a customer support agent. Please wait a moment..."
ORDER_STATUS_MESSAGE = (
    "To check your order status, please visit your account page or enter your order number and email. "
    "Would you like me to connect you with an agent to help?"
)
FAQ_INTRO_MESSAGE = "Here are some frequently asked questions:"
DISMISS_MESSAGE = "No problem! Let me know if you need anything else."
PROACTIVE_CHECKOUT_MESSAGE = "Need help completing your order? I'm here to assist!"
PROACTIVE_GENERAL_MESSAGE = "Hi! Looking for something? I can help you find what you need."

CHECKOUT_PATH = "/checkout"


def default_agent_provider() -> ChatAgent:
    return ChatAgent(id="agent-1", name="Sarah", is_online=True)


class ChatStore:
    """
    State machine behind the live chat widget.

    Outbound callbacks (all optional) are invoked on the scheduler thread:
    on_send_message(text), on_request_human_agent(), on_chat_open(),
    on_chat_close(). A failing callback is captured and logged; it never
    breaks the store.
    """

    def __init__(
        self,
        session_id: str,
        scheduler: Scheduler,
        config: Optional[ChatConfig] = None,
        *,
        on_send_message: Optional[Callable[[str], Any]] = None,
        on_request_human_agent: Optional[Callable[[], Any]] = None,
        on_chat_open: Optional[Callable[[], Any]] = None,
        on_chat_close: Optional[Callable[[], Any]] = None,
        agent_provider: Callable[[], ChatAgent] = default_agent_provider,
        error_tracker: Any = None,
        faq_database: Sequence[FAQItem] = FAQ_DATABASE,
        current_path: str = "",
    ):
        self.session_id = session_id
        self.scheduler = scheduler
        self.config = config or ChatConfig()
        self.on_send_message = on_send_message
        self.on_request_human_agent = on_request_human_agent
        self.on_chat_open = on_chat_open
        self.on_chat_close = on_chat_close
        self.agent_provider = agent_provider
        self.error_tracker = error_tracker
        self.faq_database = faq_database

        self.is_open = False
        self.is_minimized = False
        self.status = ChatStatus.IDLE
        self.agent: Optional[ChatAgent] = None
        self.unread_count = 0
        self.current_path = current_path
        self._messages: List[ChatMessage] = []

        self._has_initialized = False
        self._proactive_shown = False
        self._proactive_disarmed = False
        self._proactive_timer: Optional[TimerHandle] = None

        self._epoch = 0
        self._disposed = False
        self._timer_ids = itertools.count()
        self._pending: Dict[int, TimerHandle] = {}
        self._listeners: List[Listener] = []

        self._sync_proactive_timer()

    # ────────────────────────────────────────────────────────
    # Read-only state
    # ────────────────────────────────────────────────────────
    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    @property
    def has_initialized(self) -> bool:
        return self._has_initialized

    @property
    def proactive_shown(self) -> bool:
        return self._proactive_shown

    @property
    def proactive_armed(self) -> bool:
        return self._proactive_timer is not None

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def pending_timers(self) -> int:
        return len(self._pending)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ────────────────────────────────────────────────────────
    # Window lifecycle
    # ────────────────────────────────────────────────────────
    def open_chat(self) -> None:
        self._ensure_alive()
        self.is_open = True
        self.is_minimized = False
        self.unread_count = 0
        self._proactive_disarmed = True
        self._sync_proactive_timer()
        self._inject_welcome()
        smart_log.window_event(self.session_id, "open", status=self.status.value)
        self._invoke(self.on_chat_open, "on_chat_open")
        self._notify()

    def close_chat(self) -> None:
        self._ensure_alive()
        self.is_open = False
        self.is_minimized = False
        smart_log.window_event(self.session_id, "close", status=self.status.value)
        self._invoke(self.on_chat_close, "on_chat_close")
        self._notify()

    def minimize_chat(self) -> None:
        self._ensure_alive()
        self.is_minimized = True
        smart_log.window_event(self.session_id, "minimize")
        self._notify()

    def maximize_chat(self) -> None:
        self._ensure_alive()
        self.is_minimized = False
        self.unread_count = 0
        smart_log.window_event(self.session_id, "maximize")
        self._notify()

    def navigate(self, path: str) -> None:
        """Record the host page path and re-evaluate the proactive trigger."""
        self._ensure_alive()
        self.current_path = path or ""
        self._sync_proactive_timer()
        self._notify()

    # ────────────────────────────────────────────────────────
    # Conversation
    # ────────────────────────────────────────────────────────
    def send_message(self, text: str) -> Optional[ChatMessage]:
        self._ensure_alive()
        if not text or not text.strip():
            log.debug(f"SEND_IGNORED_BLANK | session={self.session_id}")
            return None

        delivery_failed = not self._invoke(self.on_send_message, "on_send_message", text)
        user_message = ChatMessage.create(text.strip(), MessageRole.USER, delivery_failed=delivery_failed)
        self._messages.append(user_message)

        if self.status == ChatStatus.CONNECTED:
            smart_log.message_received(self.session_id, text, routed="agent")
            self._notify()
            return user_message

        smart_log.message_received(self.session_id, text, routed="bot")
        typing_id: Optional[str] = None
        if self.config.show_typing_indicator:
            typing = ChatMessage.typing_indicator()
            typing_id = typing.id
            self._messages.append(typing)

        self._schedule(self.config.response_delay, lambda: self._deliver_bot_reply(text, typing_id))
        self._notify()
        return user_message

    def request_human_agent(self) -> None:
        self._ensure_alive()
        if self.status in (ChatStatus.WAITING, ChatStatus.CONNECTED):
            log.debug(f"HANDOFF_ALREADY_ACTIVE | session={self.session_id} | status={self.status.value}")
            return

        self._set_status(ChatStatus.WAITING)
        self._invoke(self.on_request_human_agent, "on_request_human_agent")
        self._add_bot_message(CONNECTING_MESSAGE)
        self._schedule(self.config.agent_connect_delay, self._complete_handoff)
        self._notify()

    def handle_quick_action(self, action: Any) -> bool:
        """Dispatch a quick-action tag. Returns False for unknown tags (ignored)."""
        self._ensure_alive()
        tag = getattr(action, "value", action)
        handler = self._quick_action_handlers().get(tag)
        if handler is None:
            smart_log.quick_action(self.session_id, str(tag), handled=False)
            return False
        smart_log.quick_action(self.session_id, tag, handled=True)
        handler()
        return True

    def clear_chat(self) -> None:
        self._ensure_alive()
        self._epoch += 1
        self._cancel_pending()
        self._messages = []
        self._has_initialized = False
        self._set_status(ChatStatus.IDLE)
        self.agent = None
        smart_log.context_change(self.session_id, "clear", {"epoch": self._epoch})
        # An open window greets again right away, as it does on first open.
        if self.is_open:
            self._inject_welcome()
        self._notify()

    def end_chat(self) -> None:
        """Explicitly close the conversation (status -> closed)."""
        self._ensure_alive()
        self._cancel_pending()
        self.agent = None
        self._messages = [m for m in self._messages if not m.is_typing]
        self._set_status(ChatStatus.CLOSED)
        self._notify()

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._cancel_pending()
        self._cancel_proactive()
        self._listeners.clear()
        log.info(f"CHAT_DISPOSED | session={self.session_id}")

    # ────────────────────────────────────────────────────────
    # Persistence
    # ────────────────────────────────────────────────────────
    def snapshot(self) -> ChatSnapshot:
        return ChatSnapshot(
            session_id=self.session_id,
            is_open=self.is_open,
            is_minimized=self.is_minimized,
            messages=list(self._messages),
            status=self.status.value,
            agent=self.agent,
            unread_count=self.unread_count,
            has_initialized=self._has_initialized,
            proactive_shown=self._proactive_shown,
            current_path=self.current_path,
        )

    def restore(self, snapshot: ChatSnapshot) -> None:
        """
        Load a persisted snapshot. Typing indicators belong to timers that
        died with the previous process and are dropped; an interrupted
        handoff is resumed.
        """
        self._ensure_alive()
        self._epoch += 1
        self._cancel_pending()
        self.is_open = snapshot.is_open
        self.is_minimized = snapshot.is_minimized
        self._messages = [m for m in snapshot.messages if not m.is_typing]
        self.status = ChatStatus(snapshot.status)
        self.agent = snapshot.agent if self.status == ChatStatus.CONNECTED else None
        if self.status == ChatStatus.CONNECTED and self.agent is None:
            self.status = ChatStatus.IDLE
        self.unread_count = max(0, snapshot.unread_count)
        self._has_initialized = snapshot.has_initialized
        self._proactive_shown = snapshot.proactive_shown
        self._proactive_disarmed = snapshot.is_open or snapshot.has_initialized
        self.current_path = snapshot.current_path
        if self.status == ChatStatus.WAITING:
            self._schedule(self.config.agent_connect_delay, self._complete_handoff)
        self._sync_proactive_timer()
        smart_log.debug_state(self.session_id, "restored", {"messages": self._messages, "status": self.status.value})
        self._notify()

    # ────────────────────────────────────────────────────────
    # Internals
    # ────────────────────────────────────────────────────────
    def _quick_action_handlers(self) -> Dict[str, Callable[[], Any]]:
        return {
            QuickActionTag.SHIPPING.value: lambda: self.send_message("Tell me about shipping"),
            QuickActionTag.RETURNS.value: lambda: self.send_message("What is your return policy?"),
            QuickActionTag.PAYMENT.value: lambda: self.send_message("What payment methods do you accept?"),
            QuickActionTag.ORDER_STATUS.value: lambda: self._reply(ORDER_STATUS_MESSAGE, HANDOFF_OFFER),
            QuickActionTag.FAQ.value: lambda: self._reply(FAQ_INTRO_MESSAGE, FAQ_MENU),
            QuickActionTag.DISMISS.value: lambda: self._reply(DISMISS_MESSAGE),
            QuickActionTag.HUMAN.value: self.request_human_agent,
        }

    def _reply(self, content: str, actions: Sequence[QuickAction] = ()) -> None:
        self._add_bot_message(content, actions)
        self._notify()

    def _inject_welcome(self) -> None:
        if self._has_initialized:
            return
        if self.config.welcome_message:
            welcome = ChatMessage.create(self.config.welcome_message, MessageRole.BOT)
        else:
            welcome = ChatMessage.create(welcome_text(self.config.bot_name), MessageRole.BOT, list(DEFAULT_MENU))
        self._messages = [welcome]
        self._has_initialized = True

    def _append(self, message: ChatMessage) -> None:
        self._messages.append(message)
        if message.role != MessageRole.USER and self.is_minimized:
            self.unread_count += 1

    def _add_bot_message(self, content: str, actions: Sequence[QuickAction] = ()) -> ChatMessage:
        message = ChatMessage.create(content, MessageRole.BOT, list(actions))
        self._append(message)
        return message

    def _deliver_bot_reply(self, text: str, typing_id: Optional[str]) -> None:
        if typing_id is not None:
            self._messages = [m for m in self._messages if m.id != typing_id]

        if self.status == ChatStatus.CONNECTED:
            # A human took over while the reply was pending.
            smart_log.faq_decision(self.session_id, None, suppressed=True)
            self._notify()
            return

        match = find_faq_match(text, self.faq_database)
        if match is not None:
            smart_log.faq_decision(self.session_id, match.question)
            self._add_bot_message(match.answer, match.follow_up)
        else:
            smart_log.faq_decision(self.session_id, None)
            self._add_bot_message(FALLBACK_MESSAGE, DEFAULT_MENU)
        self._notify()

    def _complete_handoff(self) -> None:
        if self.status != ChatStatus.WAITING:
            return
        try:
            agent = self.agent_provider()
        except AgentUnavailableError as exc:
            smart_log.warning(self.session_id, "AGENT_UNAVAILABLE", details=str(exc))
            self._capture(exc, action="agent_connect")
            self._set_status(ChatStatus.IDLE)
            self._add_bot_message(self.config.offline_message)
            self._notify()
            return

        self.agent = agent
        self._set_status(ChatStatus.CONNECTED)
        self._append(ChatMessage.create(
            f"Hi! I'm {agent.name} from customer support. How can I help you today?",
            MessageRole.AGENT,
        ))
        self._notify()

    def _path_matches(self) -> bool:
        return any(page in self.current_path for page in self.config.proactive_pages)

    def _sync_proactive_timer(self) -> None:
        should_arm = (
            self.config.proactive_enabled
            and not self._disposed
            and not self._proactive_shown
            and not self._proactive_disarmed
            and not self.is_open
            and self._path_matches()
        )
        if should_arm and self._proactive_timer is None:
            on_checkout = CHECKOUT_PATH in self.current_path
            delay = self.config.checkout_abandonment_delay if on_checkout else self.config.proactive_delay
            self._proactive_timer = self.scheduler.call_later(delay, self._fire_proactive)
            log.debug(f"PROACTIVE_ARMED | session={self.session_id} | path={self.current_path} | delay={delay}")
        elif not should_arm:
            self._cancel_proactive()

    def _fire_proactive(self) -> None:
        self._proactive_timer = None
        if self._disposed or self._proactive_shown or self._proactive_disarmed or self.is_open:
            return
        self._proactive_shown = True
        self.unread_count += 1
        content = (
            PROACTIVE_CHECKOUT_MESSAGE if CHECKOUT_PATH in self.current_path else PROACTIVE_GENERAL_MESSAGE
        )
        self._messages.append(ChatMessage.create(content, MessageRole.BOT))
        smart_log.proactive_fired(self.session_id, self.current_path)
        self._notify()

    def _cancel_proactive(self) -> None:
        if self._proactive_timer is not None:
            self._proactive_timer.cancel()
            self._proactive_timer = None

    def _schedule(self, delay: float, fn: Callable[[], None]) -> TimerHandle:
        token = next(self._timer_ids)
        epoch = self._epoch

        def _run() -> None:
            self._pending.pop(token, None)
            if self._disposed or epoch != self._epoch:
                log.debug(f"TIMER_DROPPED | session={self.session_id} | stale_epoch={epoch}")
                return
            try:
                fn()
            except Exception as exc:  # noqa: BLE001
                log.error(f"TIMER_CALLBACK_ERROR | session={self.session_id} | error={exc}", exc_info=True)
                self._capture(exc, action="timer_callback")

        handle = self.scheduler.call_later(delay, _run)
        self._pending[token] = handle
        return handle

    def _cancel_pending(self) -> None:
        for handle in self._pending.values():
            handle.cancel()
        self._pending.clear()

    def _set_status(self, status: ChatStatus) -> None:
        if status != self.status:
            smart_log.status_change(self.session_id, self.status.value, status.value)
            self.status = status

    def _invoke(self, callback: Optional[Callable[..., Any]], name: str, *args: Any) -> bool:
        """Run an outbound callback; returns False if it raised."""
        if callback is None:
            return True
        try:
            callback(*args)
            return True
        except Exception as exc:  # noqa: BLE001
            log.error(f"CALLBACK_FAILED | session={self.session_id} | callback={name} | error={exc}", exc_info=True)
            self._capture(exc, action=name)
            return False

    def _capture(self, exc: BaseException, **context: Any) -> None:
        smart_log.error_occurred(self.session_id, type(exc).__name__, str(context.get("action", "-")), str(exc))
        if self.error_tracker is not None:
            self.error_tracker.capture_exception(exc, component="chat_store", session_id=self.session_id, **context)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as exc:  # noqa: BLE001
                log.error(f"LISTENER_FAILED | session={self.session_id} | error={exc}", exc_info=True)
                self._capture(exc, action="listener")

    def _ensure_alive(self) -> None:
        if self._disposed:
            raise ChatDisposedError(f"Chat session {self.session_id} has been disposed")
