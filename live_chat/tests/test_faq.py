from __future__ import annotations

import pytest

from live_chat.faq import FAQ_DATABASE, find_faq_match, keyword_hits
from live_chat.models import FAQItem


@pytest.mark.parametrize(
    "text,question",
    [
        ("How long does shipping take?", "How long does shipping take?"),
        ("I want a REFUND", "What is your return policy?"),
        ("where is my package", "Where is my order?"),
        ("Do you take PayPal?", "What payment methods do you accept?"),
        ("what size should I get", "How do I find my size?"),
        ("any promo code?", "Do you have any discounts?"),
        ("please stop it", "Can I cancel my order?"),
        ("what's your phone number", "How can I contact support?"),
    ],
)
def test_match_by_keyword(text: str, question: str):
    match = find_faq_match(text)
    assert match is not None
    assert match.question == question


def test_first_match_wins_over_better_match():
    # "cancel my order" hits the cancel entry twice but the order entry comes first
    match = find_faq_match("cancel my order")
    assert match.question == "Where is my order?"
    cancel_entry = FAQ_DATABASE[6]
    assert keyword_hits("cancel my order", cancel_entry) == 2


def test_no_match_returns_none():
    assert find_faq_match("asdkjasd") is None
    assert find_faq_match("") is None


def test_custom_database_order_is_respected():
    a = FAQItem(keywords=("foo",), question="A", answer="a")
    b = FAQItem(keywords=("foo", "bar"), question="B", answer="b")
    assert find_faq_match("foo bar", [a, b]).question == "A"
    assert find_faq_match("foo bar", [b, a]).question == "B"


def test_database_order_is_fixed():
    assert [item.question for item in FAQ_DATABASE] == [
        "How long does shipping take?",
        "What is your return policy?",
        "Where is my order?",
        "What payment methods do you accept?",
        "How do I find my size?",
        "Do you have any discounts?",
        "Can I cancel my order?",
        "How can I contact support?",
    ]
