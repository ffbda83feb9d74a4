from __future__ import annotations

from enum import Enum


class BookingState(str, Enum):
    IDLE = "idle"
    MAIN_MENU = "main_menu"
    SELECTING_PICKUP = "selecting_pickup"
    SELECTING_OFFERING = "selecting_offering"
    SELECTING_PACKAGE = "selecting_package"
    ENTERING_PARTY_SIZE = "entering_party_size"
    ENTERING_DATE = "entering_date"
    AI_CHAT = "ai_chat"


class Route(str, Enum):
    RESTART = "restart"
    BOOKING = "booking"
    ASSISTANT = "assistant"
    FINALIZE = "finalize"
    IGNORE = "ignore"
    DONE = "done"
