from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Union

from kraken_adapter.core.errors import ValidationError
from kraken_adapter.registry.currencies import precision

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """Exact Decimal for exchange strings and ints; floats go through str() to drop binary noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValidationError(f"Not a numeric amount: {value!r}")
    try:
        if isinstance(value, float):
            return Decimal(repr(value))
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"Not a numeric amount: {value!r}", cause=e) from e


def round_half_away(value: Number, places: int) -> Decimal:
    # ROUND_HALF_UP on Decimal rounds .5 away from zero for both signs
    return to_decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def to_subunit(amount: Number, currency: str) -> int:
    """Main unit -> integer count of the currency's smallest subunit (0.01 BTC -> 1000000)."""
    scaled = to_decimal(amount).scaleb(precision(currency))
    return int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def from_subunit(amount: int, currency: str) -> Decimal:
    """Subunits -> main unit, rounded to the currency's precision (12345 USD cents -> 123.45)."""
    places = precision(currency)
    return round_half_away(to_decimal(amount).scaleb(-places), places)


def to_wire(value: Number) -> str:
    """Plain decimal string for form bodies: no exponent, no trailing zeros."""
    d = to_decimal(value)
    if d == d.to_integral_value():
        return str(d.quantize(Decimal(1)))
    return format(d.normalize(), "f")
