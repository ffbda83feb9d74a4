from __future__ import annotations

from decimal import Decimal

import pytest

from tenant_bot.services.pricing import PricingError, format_price, price_range, quote, resolve_unit_price

SHORT_EXCURSION = {1: 100, 2: 80, 3: 70, 4: 60, "5+": 55}
MULTI_DAY = {1: 530, "2-3": 480, "4-5": 475, "6+": 470}


@pytest.mark.parametrize(
    "party_size, expected",
    [(1, 100), (2, 80), (4, 60), (5, 55), (6, 55), (100, 55)],
)
def test_short_excursion_table(party_size, expected):
    assert resolve_unit_price(SHORT_EXCURSION, party_size) == Decimal(expected)


@pytest.mark.parametrize(
    "party_size, expected",
    [(1, 530), (2, 480), (3, 480), (4, 475), (5, 475), (6, 470), (40, 470)],
)
def test_multi_day_range_table(party_size, expected):
    assert resolve_unit_price(MULTI_DAY, party_size) == Decimal(expected)


def test_resolution_is_repeatable_and_accepts_string_keys():
    table = {"1": "100", "2": "80", "5+": "55"}
    first = resolve_unit_price(table, 7)
    assert first == resolve_unit_price(table, 7) == Decimal("55")


def test_open_bucket_checked_before_range_bucket():
    mixed = {1: 90, "4-5": 70, "5+": 60}
    assert resolve_unit_price(mixed, 5) == Decimal("60")
    assert resolve_unit_price(mixed, 4) == Decimal("70")


def test_falls_back_to_single_person_then_first_bucket():
    assert resolve_unit_price({1: 45, 3: 30}, 2) == Decimal("45")
    assert resolve_unit_price({"2": 40, "3": 35}, 9) == Decimal("40")


def test_empty_table_is_an_integrity_error():
    with pytest.raises(PricingError):
        resolve_unit_price({}, 2)


def test_non_positive_party_size_rejected():
    with pytest.raises(ValueError):
        resolve_unit_price(SHORT_EXCURSION, 0)


def test_fixed_price_wins_over_table():
    assert quote(Decimal("150"), {1: 999}, 2) == Decimal("150")
    assert quote(None, SHORT_EXCURSION, 3) == Decimal("70")
    with pytest.raises(PricingError):
        quote(None, None, 3)


def test_price_range_and_formatting():
    assert price_range(SHORT_EXCURSION) == (Decimal("55"), Decimal("100"))
    assert price_range({}) is None
    assert format_price(Decimal("240"), "USD") == "$240"
    assert format_price(Decimal("12.5"), "USD") == "$12.50"
    assert format_price(25000, "TZS") == "TZS 25,000"
