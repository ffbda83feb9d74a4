from __future__ import annotations

import re
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from decimal import Decimal

import pytest

from tenant_bot.schemas.order import NewOrder, OrderStatus
from tenant_bot.services.ledger import (
    InvalidStatusTransition,
    OrderLedger,
    OrderNotFoundError,
    can_transition,
)

from conftest import FIXED_NOW, InMemoryCollection


class SteppingClock:
    def __init__(self, start=FIXED_NOW) -> None:
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **delta) -> None:
        self.now = self.now + timedelta(**delta)


def _new_order(tenant_id="T-AAAA1111", customer_id="255700111222", party_size=4, unit_price="60"):
    unit = Decimal(unit_price)
    return NewOrder(
        tenant_id=tenant_id,
        customer_id=customer_id,
        offering_id="safari-blue",
        offering_name="Safari Blue",
        party_size=party_size,
        unit_price=unit,
        total_price=unit * party_size,
        date="25/12/2026",
        pickup="Stone Town / Town Area",
    )


@pytest.fixture()
def clock():
    return SteppingClock()


@pytest.fixture()
def order_ledger(clock):
    return OrderLedger(InMemoryCollection(), clock=clock)


def test_created_orders_get_unique_prefixed_ids(order_ledger):
    ids = {order_ledger.create(_new_order()).id for _ in range(25)}

    assert len(ids) == 25
    assert all(re.fullmatch(r"ORD-[0-9A-Z]+-[0-9A-Z]{4}", order_id) for order_id in ids)


def test_new_orders_start_pending(order_ledger):
    order = order_ledger.create(_new_order())

    assert order.status is OrderStatus.PENDING
    assert order.status_timestamps[OrderStatus.PENDING] == FIXED_NOW
    assert order.completed_at is None


def test_total_must_match_unit_price():
    with pytest.raises(ValueError):
        NewOrder(
            tenant_id="T-1",
            customer_id="1",
            offering_name="Safari Blue",
            party_size=2,
            unit_price=Decimal("60"),
            total_price=Decimal("100"),
            date="25/12/2026",
        )


def test_status_moves_forward_and_stamps_terminal_time(order_ledger, clock):
    order = order_ledger.create(_new_order())

    clock.advance(hours=1)
    confirmed = order_ledger.update_status(order.id, OrderStatus.CONFIRMED)
    clock.advance(days=1)
    completed = order_ledger.update_status(order.id, OrderStatus.COMPLETED)

    assert confirmed.status is OrderStatus.CONFIRMED
    assert completed.completed_at == FIXED_NOW + timedelta(hours=1, days=1)
    stored = order_ledger.require(order.id)
    assert stored.status is OrderStatus.COMPLETED
    assert stored.completed_at == completed.completed_at
    assert stored.updated_at == completed.completed_at


def test_terminal_orders_cannot_change(order_ledger):
    order = order_ledger.create(_new_order())
    order_ledger.update_status(order.id, OrderStatus.CANCELLED, reason="weather")

    with pytest.raises(InvalidStatusTransition):
        order_ledger.update_status(order.id, OrderStatus.CONFIRMED)
    stored = order_ledger.require(order.id)
    assert stored.cancel_reason == "weather"
    assert stored.cancelled_at == FIXED_NOW


def test_backward_moves_are_rejected(order_ledger):
    order = order_ledger.create(_new_order())
    order_ledger.update_status(order.id, OrderStatus.IN_PROGRESS)

    with pytest.raises(InvalidStatusTransition):
        order_ledger.update_status(order.id, OrderStatus.CONFIRMED)
    with pytest.raises(InvalidStatusTransition):
        order_ledger.update_status(order.id, OrderStatus.IN_PROGRESS)


@pytest.mark.parametrize(
    "current, target, allowed",
    [
        (OrderStatus.PENDING, OrderStatus.CONFIRMED, True),
        (OrderStatus.PENDING, OrderStatus.COMPLETED, True),
        (OrderStatus.CONFIRMED, OrderStatus.CANCELLED, True),
        (OrderStatus.IN_PROGRESS, OrderStatus.PENDING, False),
        (OrderStatus.COMPLETED, OrderStatus.CANCELLED, False),
        (OrderStatus.CANCELLED, OrderStatus.PENDING, False),
    ],
)
def test_can_transition(current, target, allowed):
    assert can_transition(current, target) is allowed


def test_unknown_order(order_ledger):
    assert order_ledger.get("ORD-NOPE-0000") is None
    with pytest.raises(OrderNotFoundError):
        order_ledger.update_status("ORD-NOPE-0000", OrderStatus.CONFIRMED)


def test_list_filters_and_orders_newest_first(order_ledger, clock):
    first = order_ledger.create(_new_order(customer_id="A"))
    clock.advance(minutes=5)
    second = order_ledger.create(_new_order(customer_id="B"))
    clock.advance(minutes=5)
    other = order_ledger.create(_new_order(tenant_id="T-OTHER001", customer_id="A"))
    order_ledger.update_status(first.id, OrderStatus.CONFIRMED)

    tenant_orders = order_ledger.list(tenant_id="T-AAAA1111")
    assert [order.id for order in tenant_orders] == [second.id, first.id]
    assert [order.id for order in order_ledger.list(tenant_id="T-AAAA1111", customer_id="A")] == [first.id]
    assert [order.id for order in order_ledger.list(status=OrderStatus.PENDING, limit=1)] == [other.id]
    assert order_ledger.list(tenant_id="T-AAAA1111", status=OrderStatus.CONFIRMED)[0].id == first.id


def test_stats_buckets_and_revenue(order_ledger, clock):
    clock.now = FIXED_NOW - timedelta(days=40)
    old = order_ledger.create(_new_order(party_size=2))
    clock.now = FIXED_NOW - timedelta(days=3)
    recent = order_ledger.create(_new_order(party_size=4))
    clock.now = FIXED_NOW
    today = order_ledger.create(_new_order(party_size=1, unit_price="100"))
    order_ledger.create(_new_order(tenant_id="T-OTHER001"))

    order_ledger.update_status(old.id, OrderStatus.COMPLETED)
    order_ledger.update_status(recent.id, OrderStatus.COMPLETED)
    order_ledger.update_status(today.id, OrderStatus.CANCELLED)

    stats = order_ledger.stats("T-AAAA1111", now=FIXED_NOW)

    assert stats.total == 3
    assert stats.today == 1
    assert stats.this_week == 2
    assert stats.this_month == 2
    assert stats.by_status[OrderStatus.COMPLETED] == 2
    assert stats.by_status[OrderStatus.CANCELLED] == 1
    assert stats.by_status[OrderStatus.PENDING] == 0
    assert stats.revenue_total == Decimal("360")
    assert stats.revenue_this_month == Decimal("240")


def test_concurrent_creates_are_never_lost(order_ledger):
    def book(index):
        return order_ledger.create(_new_order(customer_id=f"2557001{index:05d}", party_size=1 + index % 5)).id

    with ThreadPoolExecutor(max_workers=8) as pool:
        ids = list(pool.map(book, range(200)))

    assert len(set(ids)) == 200
    stored = order_ledger.list(tenant_id="T-AAAA1111")
    assert {order.id for order in stored} == set(ids)
