"""
Presentation shell: pure functions from chat state to view models.

The widget has three mutually exclusive forms: a floating launcher button
(closed), a minimized pill, or the full window. Views carry everything a
frontend needs to draw them, including test ids and aria labels, and
serialize with to_dict() for the JSON endpoints.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .enums import ChatStatus, MessageRole, ViewKind, WidgetPosition
from .models import ChatAgent, ChatMessage, QuickAction
from .utils.helpers import badge_text

AGENT_SUBTITLE = "Customer Support"
AGENT_AUTHOR = "Agent"
INPUT_PLACEHOLDER = "Type a message..."


@dataclass
class QuickActionButtonView:
    id: str
    label: str
    action: str

    @property
    def test_id(self) -> str:
        return f"quick-action-{self.id}"

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "label": self.label, "action": self.action, "test_id": self.test_id}


@dataclass
class BubbleView:
    message_id: str
    role: MessageRole
    content: str = ""
    author: Optional[str] = None        # None for user bubbles
    time_label: str = ""
    is_typing: bool = False
    delivery_failed: bool = False
    actions: List[QuickActionButtonView] = field(default_factory=list)

    @property
    def align(self) -> str:
        return "end" if self.role == MessageRole.USER else "start"

    @property
    def test_id(self) -> str:
        return "typing-indicator" if self.is_typing else f"message-{self.role.value}"

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "message_id": self.message_id,
            "role": self.role.value,
            "align": self.align,
            "test_id": self.test_id,
        }
        if self.is_typing:
            result["is_typing"] = True
            return result
        result.update({
            "content": self.content,
            "author": self.author,
            "time_label": self.time_label,
            "actions": [a.to_dict() for a in self.actions],
        })
        if self.delivery_failed:
            result["delivery_failed"] = True
            result["notice"] = "Not delivered. Tap to retry."
        return result


@dataclass
class HeaderView:
    title: str
    subtitle: str
    is_agent: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"title": self.title, "subtitle": self.subtitle, "is_agent": self.is_agent}


@dataclass
class LauncherButtonView:
    position: WidgetPosition
    unread_count: int = 0

    @property
    def badge(self) -> str:
        return badge_text(self.unread_count)

    @property
    def aria_label(self) -> str:
        if self.unread_count > 0:
            return f"Open chat ({self.unread_count} unread messages)"
        return "Open chat"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "position": self.position.value,
            "unread_count": self.unread_count,
            "badge": self.badge,
            "aria_label": self.aria_label,
            "test_id": "chat-widget",
        }


@dataclass
class MinimizedPillView:
    position: WidgetPosition
    label: str = "Chat"

    def to_dict(self) -> Dict[str, Any]:
        return {"position": self.position.value, "label": self.label, "test_id": "chat-minimized"}


@dataclass
class ChatWindowView:
    position: WidgetPosition
    header: HeaderView
    bubbles: List[BubbleView]
    input_value: str = ""

    @property
    def send_disabled(self) -> bool:
        return not self.input_value.strip()

    @property
    def scroll_to(self) -> Optional[str]:
        """Id of the latest transcript item; the client scrolls it into view on every change."""
        return self.bubbles[-1].message_id if self.bubbles else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "position": self.position.value,
            "header": self.header.to_dict(),
            "bubbles": [b.to_dict() for b in self.bubbles],
            "input_value": self.input_value,
            "input_placeholder": INPUT_PLACEHOLDER,
            "send_disabled": self.send_disabled,
            "scroll_to": self.scroll_to,
            "aria_label": "Live chat",
            "role": "dialog",
        }


@dataclass
class WidgetView:
    kind: ViewKind
    launcher: Optional[LauncherButtonView] = None
    minimized: Optional[MinimizedPillView] = None
    window: Optional[ChatWindowView] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "launcher": self.launcher.to_dict() if self.launcher else None,
            "minimized": self.minimized.to_dict() if self.minimized else None,
            "window": self.window.to_dict() if self.window else None,
        }


@dataclass
class PromptView:
    test_id: str
    title: str
    message: str
    chat_label: str
    dismiss_label: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "test_id": self.test_id,
            "title": self.title,
            "message": self.message,
            "chat_label": self.chat_label,
            "dismiss_label": self.dismiss_label,
        }


# ─────────────────────────────────────────────────────────────
# Rendering
# ─────────────────────────────────────────────────────────────
def render_header(status: ChatStatus, agent: Optional[ChatAgent], bot_name: str) -> HeaderView:
    if status == ChatStatus.CONNECTED and agent is not None:
        return HeaderView(title=agent.name, subtitle=AGENT_SUBTITLE, is_agent=True)
    subtitle = "Connecting..." if status == ChatStatus.WAITING else "Online"
    return HeaderView(title=bot_name, subtitle=subtitle)


def render_actions(actions: Sequence[QuickAction]) -> List[QuickActionButtonView]:
    return [QuickActionButtonView(id=a.id, label=a.label, action=a.action) for a in actions]


def render_bubble(message: ChatMessage, bot_name: str) -> BubbleView:
    if message.is_typing:
        return BubbleView(message_id=message.id, role=message.role, is_typing=True)

    if message.role == MessageRole.AGENT:
        author: Optional[str] = AGENT_AUTHOR
    elif message.role == MessageRole.BOT:
        author = bot_name
    else:
        author = None

    return BubbleView(
        message_id=message.id,
        role=message.role,
        content=message.content,
        author=author,
        time_label=message.timestamp.strftime("%H:%M"),
        delivery_failed=message.delivery_failed,
        actions=render_actions(message.actions),
    )


def render(
    state: Any,
    *,
    bot_name: str = "ShopBot",
    position: WidgetPosition = WidgetPosition.BOTTOM_RIGHT,
    input_value: str = "",
    show_launcher: bool = True,
) -> WidgetView:
    """
    Render a ChatStore or ChatSnapshot (anything exposing is_open,
    is_minimized, messages, status, agent, unread_count).
    """
    status = ChatStatus(getattr(state.status, "value", state.status))

    if not state.is_open:
        launcher = LauncherButtonView(position=position, unread_count=state.unread_count) if show_launcher else None
        return WidgetView(kind=ViewKind.LAUNCHER, launcher=launcher)

    if state.is_minimized:
        return WidgetView(kind=ViewKind.MINIMIZED, minimized=MinimizedPillView(position=position))

    window = ChatWindowView(
        position=position,
        header=render_header(status, state.agent, bot_name),
        bubbles=[render_bubble(m, bot_name) for m in state.messages],
        input_value=input_value,
    )
    return WidgetView(kind=ViewKind.WINDOW, window=window)


def render_store(store: Any, input_value: str = "", show_launcher: bool = True) -> WidgetView:
    """Render a ChatStore using its own widget configuration."""
    return render(
        store,
        bot_name=store.config.bot_name,
        position=store.config.position,
        input_value=input_value,
        show_launcher=show_launcher,
    )


def render_prompt(prompt: Any) -> Optional[PromptView]:
    """Toast view for a proactive prompt, or None while it is hidden."""
    if not prompt.is_shown:
        return None
    return PromptView(
        test_id=prompt.test_id,
        title=prompt.title,
        message=prompt.message,
        chat_label=prompt.chat_label,
        dismiss_label=prompt.dismiss_label,
    )
