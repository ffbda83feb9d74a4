from __future__ import annotations

import re
from enum import Enum
from typing import Iterable, List, Set

_TOKEN_PATTERN = re.compile(r"[^\W_]+", re.UNICODE)

SWAHILI = "sw"
ENGLISH = "en"
SUPPORTED_LANGUAGES = (ENGLISH, SWAHILI)

SWAHILI_MARKERS = [
    "habari",
    "jambo",
    "karibu",
    "bei",
    "ziara",
    "sawa",
    "ndio",
    "ndiyo",
    "hapana",
    "asante",
    "tafadhali",
    "nzuri",
    "vipi",
    "watu",
    "tarehe",
    "mambo",
    "shikamoo",
    "nataka",
    "naomba",
    "nini",
    "wapi",
    "lini",
    "kwa nini",
    "gharama",
    "kiasi gani",
    "kwaheri",
    "msaada",
    "huduma",
]

ENGLISH_MARKERS = [
    "hi",
    "hello",
    "hey",
    "the",
    "please",
    "thanks",
    "thank",
    "what",
    "how",
    "when",
    "where",
    "want",
    "need",
    "book",
    "price",
    "tour",
    "tours",
    "help",
    "menu",
    "is",
    "are",
    "do",
    "can",
    "i",
    "you",
]

ENTRY_KEYWORDS = [
    "hi",
    "hello",
    "hey",
    "tour",
    "tours",
    "booking",
    "book",
    "help",
    "start",
    "menu",
    "habari",
    "jambo",
    "karibu",
    "ziara",
    "safari",
    "bei",
]

RESTART_KEYWORDS = ["menu", "start", "0", "menyu", "anza"]

QUESTION_INDICATORS = [
    "?",
    "what",
    "how",
    "when",
    "where",
    "why",
    "which",
    "can",
    "could",
    "tell me",
    "explain",
    "describe",
    "nini",
    "vipi",
    "lini",
    "wapi",
    "kwa nini",
    "je",
    "naweza",
    "best",
    "recommend",
    "suggest",
    "difference",
    "include",
    "included",
    "price",
    "cost",
    "bei",
    "available",
    "open",
    "book",
    "reserve",
]


class FallbackIntent(str, Enum):
    GREETING = "greeting"
    PRICE = "price"
    BOOKING = "booking"
    SERVICES = "services"
    LOCATION = "location"
    HOURS = "hours"
    HELP = "help"
    THANKS = "thanks"
    FAREWELL = "farewell"
    GENERAL = "general"


GREETING_KEYWORDS = [
    "habari",
    "mambo",
    "jambo",
    "salama",
    "shikamoo",
    "vipi",
    "niaje",
    "za leo",
    "hujambo",
    "hello",
    "hi",
    "hey",
    "good morning",
    "good afternoon",
    "good evening",
    "howdy",
    "greetings",
]

# Checked in this order after greetings; first match wins.
INTENT_KEYWORDS = [
    (FallbackIntent.PRICE, ["bei", "price", "prices", "cost", "how much", "kiasi gani", "gharama", "rate", "rates", "fee"]),
    (FallbackIntent.BOOKING, ["book", "booking", "reserve", "order", "agiza", "buku", "nataka", "ninahitaji", "need", "want"]),
    (FallbackIntent.SERVICES, ["services", "service", "huduma", "products", "bidhaa", "offer", "available"]),
    (FallbackIntent.LOCATION, ["where", "wapi", "location", "mahali", "address", "anwani", "find"]),
    (FallbackIntent.HOURS, ["hours", "open", "close", "saa", "wakati", "time", "when", "lini"]),
    (FallbackIntent.HELP, ["help", "msaada", "assist", "support", "question"]),
    (FallbackIntent.THANKS, ["thanks", "thank you", "asante", "shukrani"]),
    (FallbackIntent.FAREWELL, ["bye", "goodbye", "kwaheri", "tutaonana", "later"]),
]


def tokenize(text: str) -> List[str]:
    return _TOKEN_PATTERN.findall(text.lower())


def _matches_any(text: str, keywords: Iterable[str], tokens: Set[str] | None = None) -> bool:
    lowered = text.lower()
    token_set = tokens if tokens is not None else set(tokenize(lowered))
    for keyword in keywords:
        if keyword.isalnum():
            if keyword in token_set:
                return True
        elif keyword in lowered:
            return True
    return False


def detect_language(text: str, default: str = ENGLISH) -> str:
    """Guess the message language; inputs without any marker keep ``default``."""
    if not text or not text.strip():
        return default
    tokens = set(tokenize(text))
    if _matches_any(text, SWAHILI_MARKERS, tokens):
        return SWAHILI
    if _matches_any(text, ENGLISH_MARKERS, tokens):
        return ENGLISH
    return default


def normalize_language(language: str | None, default: str = ENGLISH) -> str:
    if language and language.lower() in SUPPORTED_LANGUAGES:
        return language.lower()
    return default


def is_entry_keyword(text: str) -> bool:
    return _matches_any(text, ENTRY_KEYWORDS)


def is_restart_keyword(text: str) -> bool:
    """True only when the whole message is a restart word; "when does the tour start?" is a question."""
    return text.strip().lower() in RESTART_KEYWORDS


def should_use_ai(text: str) -> bool:
    return _matches_any(text, QUESTION_INDICATORS)


def classify_intent(text: str) -> FallbackIntent:
    tokens = set(tokenize(text))
    if _matches_any(text, GREETING_KEYWORDS, tokens):
        return FallbackIntent.GREETING
    for intent, keywords in INTENT_KEYWORDS:
        if _matches_any(text, keywords, tokens):
            return intent
    return FallbackIntent.GENERAL

