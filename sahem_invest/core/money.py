"""
Money and percentage helpers.

All amounts handled by the distribution engine are ``Decimal`` values in
USD, held to the cent. Single amounts (a commission, a loss) are rounded
half-up; proportional shares are truncated so that the remainder of a pool
can be handed out explicitly (see
:func:`sahem_invest.distribution.allocation.calculate_investor_distributions`).
"""

from datetime import date, datetime
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import Any, Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Any) -> Decimal:
    """
    Coerce ``value`` to ``Decimal``.

    Floats go through ``str()`` so ``0.1`` becomes ``Decimal("0.1")`` rather
    than its binary expansion. ``None`` counts as zero.
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def money(value: Any) -> Decimal:
    """Round to the cent, half-up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def truncate_cents(value: Any) -> Decimal:
    """Drop anything below the cent (towards zero)."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_DOWN)


def percent_of(amount: Any, percent: Any) -> Decimal:
    """``amount × percent / 100`` rounded to the cent."""
    return money(to_decimal(amount) * to_decimal(percent) / HUNDRED)


def ratio_as_percent(part: Any, whole: Any) -> Decimal:
    """``part / whole × 100`` to two decimals; 0 when ``whole`` is 0."""
    whole = to_decimal(whole)
    if whole == 0:
        return ZERO
    return (to_decimal(part) / whole * HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(amount: Any) -> str:
    """USD without fractional digits, as on dashboard summaries: ``$6,480``."""
    value = to_decimal(amount).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.0f}"


def format_amount(amount: Any) -> str:
    """USD with cents, as on editable amounts: ``$6,480.00``."""
    value = money(amount)
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_date(value: Union[date, datetime, str]) -> str:
    """``Jan 5, 2025``. Accepts dates, datetimes or ISO strings."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return f"{value.strftime('%b')} {value.day}, {value.year}"
