"""
FAQ knowledge base and keyword matcher.

The matcher is a first-match linear scan: entry order below decides which
answer wins when an input mentions several topics ("cancel my order" hits the
order-status entry before the cancellation entry).
"""

from __future__ import annotations

from typing import Optional, Sequence

from .enums import QuickActionTag
from .models import FAQItem, QuickAction

# ─────────────────────────────────────────────────────────────
# Canned buttons and texts
# ─────────────────────────────────────────────────────────────
TRACK_ORDER = QuickAction("track", "Track my order", QuickActionTag.ORDER_STATUS.value)
TALK_TO_AGENT = QuickAction("human", "Talk to agent", QuickActionTag.HUMAN.value)

DEFAULT_MENU = (
    QuickAction("shipping", "Shipping info", QuickActionTag.SHIPPING.value),
    QuickAction("returns", "Returns & refunds", QuickActionTag.RETURNS.value),
    QuickAction("order", "Order status", QuickActionTag.ORDER_STATUS.value),
    QuickAction("human", "Talk to human", QuickActionTag.HUMAN.value),
)

FAQ_MENU = (
    QuickAction("shipping", "Shipping info", QuickActionTag.SHIPPING.value),
    QuickAction("returns", "Returns & refunds", QuickActionTag.RETURNS.value),
    QuickAction("order", "Order status", QuickActionTag.ORDER_STATUS.value),
    QuickAction("payment", "Payment methods", QuickActionTag.PAYMENT.value),
)

HANDOFF_OFFER = (
    QuickAction("human", "Yes, connect me", QuickActionTag.HUMAN.value),
    QuickAction("no", "No thanks", QuickActionTag.DISMISS.value),
)

FALLBACK_MESSAGE = (
    "I'm not sure I understand. Could you please rephrase your question? "
    "Or you can select from the options below:"
)


def welcome_text(bot_name: str) -> str:
    return f"Hi there! I'm {bot_name}, your virtual assistant. How can I help you today?"


# ─────────────────────────────────────────────────────────────
# Knowledge base (order matters)
# ─────────────────────────────────────────────────────────────
FAQ_DATABASE: tuple[FAQItem, ...] = (
    FAQItem(
        keywords=("shipping", "delivery", "ship", "arrive", "when"),
        question="How long does shipping take?",
        answer=(
            "Standard shipping takes 5-7 business days. Express shipping takes 2-3 business days. "
            "Free shipping is available on orders over $50."
        ),
        follow_up=(TRACK_ORDER, TALK_TO_AGENT),
    ),
    FAQItem(
        keywords=("return", "refund", "exchange", "money back"),
        question="What is your return policy?",
        answer=(
            "We offer a 30-day hassle-free return policy. Items must be unused and in original packaging. "
            "Refunds are processed within 5-7 business days after we receive your return."
        ),
        follow_up=(QuickAction("start-return", "Start a return", QuickActionTag.RETURNS.value), TALK_TO_AGENT),
    ),
    FAQItem(
        keywords=("order", "status", "track", "where", "package"),
        question="Where is my order?",
        answer=(
            'You can track your order by clicking "Track my order" below or by logging into your account '
            "and viewing your order history. You'll need your order number and email address."
        ),
        follow_up=(TRACK_ORDER, TALK_TO_AGENT),
    ),
    FAQItem(
        keywords=("payment", "pay", "credit card", "paypal", "accepted"),
        question="What payment methods do you accept?",
        answer=(
            "We accept all major credit cards (Visa, Mastercard, American Express, Discover), PayPal, "
            "Apple Pay, and Google Pay. All transactions are secure and encrypted."
        ),
        follow_up=(TALK_TO_AGENT,),
    ),
    FAQItem(
        keywords=("size", "sizing", "fit", "measurement"),
        question="How do I find my size?",
        answer=(
            "Check our Size Guide on any product page for detailed measurements. If you're between sizes, "
            "we recommend sizing up for a more comfortable fit."
        ),
        follow_up=(TALK_TO_AGENT,),
    ),
    FAQItem(
        keywords=("discount", "coupon", "promo", "code", "sale"),
        question="Do you have any discounts?",
        answer=(
            "Sign up for our newsletter to get 10% off your first order! We also run seasonal sales and "
            "special promotions. Check our homepage for current offers."
        ),
        follow_up=(TALK_TO_AGENT,),
    ),
    FAQItem(
        keywords=("cancel", "order", "stop"),
        question="Can I cancel my order?",
        answer=(
            "Orders can be cancelled within 1 hour of placement. After that, the order enters our "
            "fulfillment process. Please contact our support team immediately if you need to cancel."
        ),
        follow_up=(QuickAction("human", "Cancel my order", QuickActionTag.HUMAN.value),),
    ),
    FAQItem(
        keywords=("contact", "phone", "email", "support", "help"),
        question="How can I contact support?",
        answer=(
            "You can reach us via this chat, email at support@store.com, or call 1-800-STORE "
            "(Mon-Fri 9am-6pm EST). We typically respond within 24 hours."
        ),
        follow_up=(QuickAction("human", "Talk to agent now", QuickActionTag.HUMAN.value),),
    ),
)


def keyword_hits(text: str, item: FAQItem) -> int:
    normalized = text.lower()
    return sum(1 for kw in item.keywords if kw.lower() in normalized)


def find_faq_match(text: str, database: Sequence[FAQItem] = FAQ_DATABASE) -> Optional[FAQItem]:
    """Return the first entry (in list order) with at least one keyword hit."""
    for item in database:
        if keyword_hits(text, item) >= 1:
            return item
    return None
