# live_chat/enums.py
from enum import Enum


class MessageRole(str, Enum):
    USER = "user"
    BOT = "bot"
    AGENT = "agent"


class ChatStatus(str, Enum):
    IDLE = "idle"
    WAITING = "waiting"
    CONNECTED = "connected"
    CLOSED = "closed"


class QuickActionTag(str, Enum):
    """Tags understood by ChatStore.handle_quick_action"""
    FAQ = "faq"
    ORDER_STATUS = "order-status"
    RETURNS = "returns"
    SHIPPING = "shipping"
    PAYMENT = "payment"
    HUMAN = "human"
    DISMISS = "dismiss"


class WidgetPosition(str, Enum):
    BOTTOM_RIGHT = "bottom-right"
    BOTTOM_LEFT = "bottom-left"


class ViewKind(str, Enum):
    """The three mutually exclusive forms of the widget"""
    LAUNCHER = "launcher"      # closed: floating button only
    MINIMIZED = "minimized"    # pill control
    WINDOW = "window"          # full chat window
