from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from tenant_bot.orchestrator.states import BookingState
from tenant_bot.schemas.order import OrderStatus
from tenant_bot.services.booking import BookingStateMachine, parse_selection, validate_date
from tenant_bot.services.ledger import LedgerError, OrderLedger
from tenant_bot.services.sessions import SessionStore

from conftest import FIXED_NOW, BrokenCollection


@pytest.fixture()
def booking(tour_tenant, knowledge_store, state_machine):
    store = SessionStore()
    knowledge = knowledge_store.get(tour_tenant.id)
    session = store.get(tour_tenant.id, "255700111222")

    def send(text: str):
        return state_machine.advance(session, text, tour_tenant, knowledge)

    state_machine.start(session, tour_tenant, knowledge)
    return session, send, knowledge


def _drive(send, *inputs):
    result = None
    for text in inputs:
        result = send(text)
    return result


def test_scenario_stone_town_pickup_booking(booking, ledger, collections):
    session, send, _ = booking

    result = send("1")
    assert result.state is BookingState.SELECTING_PICKUP
    assert "Stone Town / Town Area" in result.reply

    result = send("1")
    assert result.state is BookingState.SELECTING_OFFERING
    assert "Safari Blue" in result.reply
    assert "from $55" in result.reply

    result = send("1")
    assert result.state is BookingState.ENTERING_PARTY_SIZE
    assert "How many people?" in result.reply

    result = send("4")
    assert result.state is BookingState.ENTERING_DATE
    assert session.draft.unit_price == Decimal("60")
    assert session.draft.total_price == Decimal("240")
    assert "$240" in result.reply

    result = send("25/12/2026")
    assert result.state is BookingState.IDLE
    order = result.order
    assert order is not None
    assert order.status is OrderStatus.PENDING
    assert order.total_price == Decimal("240")
    assert order.unit_price * order.party_size == order.total_price
    assert order.date == "25/12/2026"
    assert order.pickup == "Stone Town / Town Area"
    assert order.customer_id == "255700111222"
    assert order.id in result.reply
    assert session.draft.is_empty
    stored = ledger.require(order.id)
    assert stored.total_price == Decimal("240")
    assert stored.status is OrderStatus.PENDING
    assert len(collections.orders.documents) == 1


def test_north_pickup_uses_variant_pricing(booking):
    session, send, _ = booking

    result = _drive(send, "1", "2", "1", "4")

    assert session.pickup_area == "north_south"
    assert session.draft.unit_price == Decimal("70")
    assert "$280" in result.reply


def test_package_fixed_price_wins_over_table(booking):
    session, send, _ = booking

    result = _drive(send, "2", "2", "3")

    assert result.state is BookingState.ENTERING_DATE
    assert session.draft.unit_price == Decimal("150")
    assert session.draft.total_price == Decimal("450")


def test_multi_day_offering_uses_range_buckets(booking):
    session, send, _ = booking

    result = _drive(send, "3", "1", "3")

    assert result.state is BookingState.ENTERING_DATE
    assert session.pickup_area is None
    assert session.draft.unit_price == Decimal("480")
    assert session.draft.total_price == Decimal("1440")


def test_chat_option_switches_to_ai_chat(booking):
    session, send, _ = booking

    result = send("4")
    assert result.state is BookingState.AI_CHAT
    follow_up = send("Is lunch included?")
    assert follow_up.use_assistant
    assert follow_up.state is BookingState.AI_CHAT


INVALID_INPUTS = ["", "abc", "-1", "0.", "999", "  "]


@pytest.mark.parametrize(
    "path, expected_state",
    [
        ((), BookingState.MAIN_MENU),
        (("1",), BookingState.SELECTING_PICKUP),
        (("1", "1"), BookingState.SELECTING_OFFERING),
        (("2",), BookingState.SELECTING_PACKAGE),
        (("1", "1", "1"), BookingState.ENTERING_PARTY_SIZE),
    ],
)
def test_invalid_inputs_never_advance(booking, path, expected_state):
    session, send, _ = booking
    _drive(send, *path)
    assert session.state is expected_state
    draft_before = (session.draft.offering_name, session.draft.party_size, session.draft.total_price)

    for text in INVALID_INPUTS:
        result = send(text)
        assert result.state is expected_state
        assert result.reply.startswith("❌")
        assert result.order is None

    assert (session.draft.offering_name, session.draft.party_size, session.draft.total_price) == draft_before


def test_invalid_dates_keep_date_state(booking, collections):
    session, send, _ = booking
    _drive(send, "1", "1", "1", "2")

    for text in ["", "abc", "31/02/2026", "13/13/2026", "2026-12-25", "01/01/2020", "999"]:
        result = send(text)
        assert result.state is BookingState.ENTERING_DATE
        assert result.order is None
    assert collections.orders.documents == []
    assert session.draft.total_price == Decimal("160")


def test_party_size_bounds_error_names_the_range(booking):
    _, send, _ = booking
    _drive(send, "1", "1", "1")

    assert "(1-50)" in send("51").reply
    assert "(1-50)" in send("0").reply


def test_idle_ignores_unrelated_text(tour_tenant, knowledge_store, state_machine):
    session = SessionStore().get(tour_tenant.id, "1")
    knowledge = knowledge_store.get(tour_tenant.id)

    result = state_machine.advance(session, "ok", tour_tenant, knowledge)
    assert result.state is BookingState.IDLE
    assert result.reply is None

    greeting = state_machine.advance(session, "hello", tour_tenant, knowledge)
    assert greeting.state is BookingState.MAIN_MENU
    assert "Zanzibar Island Tours" in greeting.reply


def test_swahili_session_gets_swahili_prompts(booking):
    session, send, _ = booking
    session.language = "sw"

    assert send("9").reply == "❌ Tafadhali chagua 1-4."


def test_ledger_failure_keeps_draft_and_state(tour_tenant, knowledge_store):
    machine = BookingStateMachine(OrderLedger(BrokenCollection(), clock=lambda: FIXED_NOW), clock=lambda: FIXED_NOW)
    session = SessionStore().get(tour_tenant.id, "1")
    knowledge = knowledge_store.get(tour_tenant.id)
    machine.start(session, tour_tenant, knowledge)
    for text in ("1", "1", "1", "4"):
        machine.advance(session, text, tour_tenant, knowledge)

    with pytest.raises(LedgerError):
        machine.advance(session, "25/12/2026", tour_tenant, knowledge)

    assert session.state is BookingState.ENTERING_DATE
    assert session.draft.total_price == Decimal("240")


def test_missing_pricing_uses_default_unit_price(tour_tenant, knowledge_store, state_machine):
    knowledge = knowledge_store.get(tour_tenant.id)
    knowledge.sections["packages"][0].price = None
    session = SessionStore().get(tour_tenant.id, "1")
    state_machine.start(session, tour_tenant, knowledge)
    for text in ("2", "1"):
        state_machine.advance(session, text, tour_tenant, knowledge)

    state_machine.advance(session, "2", tour_tenant, knowledge)

    assert session.draft.unit_price == Decimal("50")
    assert session.draft.total_price == Decimal("100")


def test_validate_date_rules():
    today = date(2026, 10, 19)
    assert validate_date("31/02/2026", today).reason == "format"
    assert validate_date("18/10/2026", today).reason == "past"
    assert validate_date("19/10/2026", today).value == "19/10/2026"
    assert validate_date("5/1/2027", today).value == "05/01/2027"
    assert validate_date("2027/01/05", today).reason == "format"


def test_parse_selection_reads_leading_integer():
    assert parse_selection("2 people") == 2
    assert parse_selection(" 3") == 3
    assert parse_selection("two") is None
