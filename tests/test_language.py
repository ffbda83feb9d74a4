from __future__ import annotations

import pytest

from tenant_bot.services.language import (
    FallbackIntent,
    classify_intent,
    detect_language,
    is_entry_keyword,
    is_restart_keyword,
    should_use_ai,
)
from tenant_bot.utils.phone import is_group_chat, normalize_customer_id


def test_detects_swahili_from_keywords():
    assert detect_language("Habari, bei ya ziara ni kiasi gani?") == "sw"
    assert detect_language("Hello, how much is the tour?") == "en"


def test_inputs_without_markers_keep_current_language():
    assert detect_language("4", default="sw") == "sw"
    assert detect_language("25/12/2026", default="en") == "en"


@pytest.mark.parametrize("text", ["menu", "MENU", "Start", "0", " menu ", "menyu", "Anza"])
def test_restart_keywords(text):
    assert is_restart_keyword(text)


@pytest.mark.parametrize(
    "text",
    ["10", "menus", "2", "25/12/2026", "", "back to menu please", "What time does the tour start?", "what about 0?"],
)
def test_non_restart_inputs(text):
    assert not is_restart_keyword(text)


def test_entry_keywords_match_whole_words():
    assert is_entry_keyword("Hi there")
    assert is_entry_keyword("jambo")
    assert not is_entry_keyword("this is nothing")


def test_should_use_ai_for_questions():
    assert should_use_ai("Which tour do you recommend?")
    assert should_use_ai("Je, mnafungua saa ngapi")
    assert not should_use_ai("ok")


@pytest.mark.parametrize(
    "text, expected",
    [
        ("hello there, how much?", FallbackIntent.GREETING),
        ("How much does it cost", FallbackIntent.PRICE),
        ("I want to book for Friday", FallbackIntent.BOOKING),
        ("Which services do you offer", FallbackIntent.SERVICES),
        ("Where is your office", FallbackIntent.LOCATION),
        ("What time do you close", FallbackIntent.HOURS),
        ("I have a question", FallbackIntent.HELP),
        ("thank you so much", FallbackIntent.THANKS),
        ("ok bye", FallbackIntent.FAREWELL),
        ("blue whale", FallbackIntent.GENERAL),
    ],
)
def test_intent_buckets_follow_priority(text, expected):
    assert classify_intent(text) == expected


def test_customer_ids_are_normalized():
    assert normalize_customer_id("255700111222@s.whatsapp.net") == "255700111222"
    assert normalize_customer_id("+255 700-111-222") == "255700111222"
    assert normalize_customer_id("whatsapp:+255700111222") == "255700111222"
    assert is_group_chat("12036302@g.us")
    assert not is_group_chat("255700111222@s.whatsapp.net")
