from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Tuple

PricingTable = Mapping[Any, Any]

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£"}


class PricingError(LookupError):
    """Raised when a pricing table cannot produce a unit price."""


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise PricingError(f"Unreadable price value: {value!r}") from exc


def _normalize(table: PricingTable) -> dict[str, Any]:
    return {str(key).strip(): value for key, value in table.items() if value is not None}


def resolve_unit_price(table: Optional[PricingTable], party_size: int) -> Decimal:
    """Resolve the per-person price for ``party_size``.

    Lookup order: exact bucket, open "5+"/"6+" buckets, the "2-3"/"4-5"/"6+"
    ranges of multi-day tables, then the single-person bucket, then the first
    bucket in insertion order.
    """
    if party_size < 1:
        raise ValueError(f"Party size must be positive, got {party_size}")
    buckets = _normalize(table or {})
    if not buckets:
        raise PricingError("Pricing table has no buckets")

    exact = buckets.get(str(party_size))
    if exact is not None:
        return _to_decimal(exact)

    if party_size >= 5 and "5+" in buckets:
        return _to_decimal(buckets["5+"])
    if party_size >= 6 and "6+" in buckets:
        return _to_decimal(buckets["6+"])

    if 2 <= party_size <= 3 and "2-3" in buckets:
        return _to_decimal(buckets["2-3"])
    if 4 <= party_size <= 5 and "4-5" in buckets:
        return _to_decimal(buckets["4-5"])

    if "1" in buckets:
        return _to_decimal(buckets["1"])
    return _to_decimal(next(iter(buckets.values())))


def quote(fixed_price: Any, table: Optional[PricingTable], party_size: int) -> Decimal:
    """Unit price for an offering; a fixed price wins over the tier table."""
    if fixed_price is not None:
        return _to_decimal(fixed_price)
    if not table:
        raise PricingError("Offering has neither a fixed price nor a pricing table")
    return resolve_unit_price(table, party_size)


def price_range(table: Optional[PricingTable]) -> Optional[Tuple[Decimal, Decimal]]:
    buckets = _normalize(table or {})
    if not buckets:
        return None
    values = [_to_decimal(value) for value in buckets.values()]
    return min(values), max(values)


def format_price(amount: Any, currency: str = "USD") -> str:
    value = _to_decimal(amount)
    if value == value.to_integral_value():
        text = f"{int(value):,}"
    else:
        text = f"{value:,.2f}"
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol:
        return f"{symbol}{text}"
    return f"{currency.upper()} {text}"
