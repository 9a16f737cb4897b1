from __future__ import annotations

from live_chat.chat_store import (
    PROACTIVE_CHECKOUT_MESSAGE,
    PROACTIVE_GENERAL_MESSAGE,
    ChatStore,
)
from live_chat.config import ChatConfig
from live_chat.faq import welcome_text
from live_chat.presentation import render_prompt
from live_chat.proactive import CheckoutPrompt, ProactivePrompt


def _proactive_store(clock, path: str) -> ChatStore:
    config = ChatConfig(proactive_enabled=True, proactive_delay=30.0, checkout_abandonment_delay=60.0)
    return ChatStore("p1", clock, config, current_path=path)


# ─────────────────────────────────────────────────────────────
# Store-level trigger
# ─────────────────────────────────────────────────────────────
def test_trigger_fires_once_on_allowed_page(clock):
    s = _proactive_store(clock, "/cart")
    assert s.proactive_armed

    clock.advance(29.0)
    assert s.messages == ()

    clock.advance(1.0)
    assert [m.content for m in s.messages] == [PROACTIVE_GENERAL_MESSAGE]
    assert s.unread_count == 1
    assert s.proactive_shown

    s.navigate("/cart/step-2")
    clock.advance(120.0)
    assert len(s.messages) == 1
    assert s.unread_count == 1


def test_checkout_uses_longer_delay_and_message(clock):
    s = _proactive_store(clock, "/checkout/payment")
    clock.advance(30.0)
    assert s.messages == ()
    clock.advance(30.0)
    assert s.messages[0].content == PROACTIVE_CHECKOUT_MESSAGE


def test_opening_first_cancels_trigger_for_good(clock):
    s = _proactive_store(clock, "/cart")
    clock.advance(10.0)
    s.open_chat()
    assert not s.proactive_armed

    s.close_chat()
    s.navigate("/checkout")
    clock.advance(600.0)
    assert not s.proactive_shown
    assert s.unread_count == 0
    assert len(s.messages) == 1  # welcome only


def test_no_trigger_on_other_pages_or_when_disabled(clock):
    s = _proactive_store(clock, "/products/42")
    assert not s.proactive_armed
    clock.advance(600.0)
    assert s.messages == ()

    disabled = ChatStore("p2", clock, ChatConfig(proactive_enabled=False), current_path="/cart")
    assert not disabled.proactive_armed


def test_navigating_onto_allowed_page_arms_trigger(clock):
    s = _proactive_store(clock, "/")
    s.navigate("/cart")
    assert s.proactive_armed
    s.navigate("/about")
    assert not s.proactive_armed


def test_first_open_after_trigger_starts_from_welcome(clock):
    s = _proactive_store(clock, "/cart")
    clock.advance(31.0)
    assert s.messages[0].content == PROACTIVE_GENERAL_MESSAGE

    s.open_chat()
    assert s.unread_count == 0
    assert len(s.messages) == 1
    assert s.messages[0].content == welcome_text("ShopBot")
    assert s.proactive_shown


def test_dispose_cancels_trigger(clock):
    s = _proactive_store(clock, "/cart")
    s.dispose()
    assert clock.pending == 0


# ─────────────────────────────────────────────────────────────
# Toast prompts
# ─────────────────────────────────────────────────────────────
def test_prompt_appears_after_delay(store, clock):
    prompt = ProactivePrompt(store, message="Need a hand?", delay=5.0)
    assert render_prompt(prompt) is None

    clock.advance(5.0)
    view = render_prompt(prompt)
    assert view.message == "Need a hand?"
    assert view.title == "ShopBot"
    assert view.chat_label == "Chat now"
    assert view.dismiss_label == "Maybe later"


def test_prompt_chat_now_opens_chat_and_hides(store, clock):
    prompt = ProactivePrompt(store, delay=5.0)
    clock.advance(5.0)
    prompt.chat_now()
    assert store.is_open
    assert not prompt.is_shown


def test_prompt_dismiss_is_permanent(store, clock):
    prompt = ProactivePrompt(store, delay=5.0)
    clock.advance(5.0)
    prompt.dismiss()
    store.navigate("/elsewhere")
    clock.advance(60.0)
    assert not prompt.is_shown


def test_prompt_not_armed_while_chat_open(store, clock):
    store.open_chat()
    prompt = ProactivePrompt(store, delay=5.0)
    assert not prompt.armed
    clock.advance(10.0)
    assert not prompt.is_shown

    store.close_chat()
    assert prompt.armed
    clock.advance(5.0)
    assert prompt.is_shown


def test_prompt_respects_page_filter(store, clock):
    prompt = ProactivePrompt(store, delay=5.0, show_on_pages=["/sale"])
    clock.advance(10.0)
    assert not prompt.is_shown

    store.navigate("/sale/summer")
    clock.advance(5.0)
    assert prompt.is_shown


def test_checkout_prompt(store, clock):
    prompt = CheckoutPrompt(store)
    clock.advance(59.0)
    assert not prompt.is_shown
    clock.advance(1.0)
    view = render_prompt(prompt)
    assert view.test_id == "checkout-chat-prompt"
    assert view.title == "Need help with your order?"
    assert view.dismiss_label is None
