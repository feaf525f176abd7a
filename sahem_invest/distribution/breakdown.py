"""
Distribution breakdown: how much of a payout goes to the platform
commission ("Sahem Invest"), to the reserve and to the investors.

==============  =================  =================  ========================  =================
Case            sahem_amount       reserve_amount     investors_profit          investors_capital
==============  =================  =================  ========================  =================
PARTIAL         admin-set USD      admin-set USD      total - sahem - reserve   0
FINAL + loss    0                  0                  0                         total amount
FINAL + profit  profit x sahem%    profit x reserve%  profit - sahem - reserve  capital
==============  =================  =================  ========================  =================

Partial payouts deduct fixed amounts from the cash being disbursed because
the deal has not closed and its profit is not known yet. Final payouts take
commission from realized profit only and never from principal; on a loss the
platform waives commission entirely.
"""

from decimal import Decimal
from typing import Any, Optional, Tuple

from sahem_invest.core.exceptions import (
    DistributionCalculationError,
    InvalidCommissionConfiguration,
)
from sahem_invest.core.money import (
    HUNDRED,
    ZERO,
    format_amount,
    money,
    percent_of,
    ratio_as_percent,
    to_decimal,
)
from sahem_invest.schemas.distribution import DistributionBreakdown


def _check_percentages(sahem_percent: Decimal, reserve_percent: Decimal) -> None:
    for label, value in (("Sahem Invest", sahem_percent), ("reserved gain", reserve_percent)):
        if value < 0 or value > HUNDRED:
            raise InvalidCommissionConfiguration(
                f"The {label} percentage must be between 0 and 100, got {value}"
            )
    if sahem_percent + reserve_percent > HUNDRED:
        raise InvalidCommissionConfiguration(
            f"Commission percentages add up to {sahem_percent + reserve_percent}%; "
            f"Sahem Invest and reserved gain together cannot exceed 100%"
        )


def _require_non_negative(label: str, value: Decimal) -> None:
    if value < 0:
        raise DistributionCalculationError(f"{label} cannot be negative, got {format_amount(value)}")


def split_commissions(
    profit: Any, sahem_percent: Any, reserve_percent: Any
) -> Tuple[Decimal, Decimal, Decimal]:
    """
    Split a realized profit into ``(sahem_amount, reserve_amount, investors_profit)``.

    The three parts always add up to ``profit`` exactly. Raises
    :class:`InvalidCommissionConfiguration` when a percentage is outside
    [0, 100] or both together exceed 100.
    """
    profit = money(profit)
    sahem_percent = to_decimal(sahem_percent)
    reserve_percent = to_decimal(reserve_percent)
    _check_percentages(sahem_percent, reserve_percent)

    sahem_amount = percent_of(profit, sahem_percent)
    # Two half-up roundings can overshoot by a cent when the percentages sum to 100.
    reserve_amount = min(percent_of(profit, reserve_percent), profit - sahem_amount)
    return sahem_amount, reserve_amount, profit - sahem_amount - reserve_amount


def calculate_partial_distribution(
    total_amount: Any, sahem_amount: Any, reserve_amount: Any
) -> DistributionBreakdown:
    """
    Breakdown of a PARTIAL payout where the admin fixed the deductions in USD.

    No capital is returned; everything left after the two deductions is paid
    to investors. The deductions are also reported as a percentage of the
    disbursed total.
    """
    total = money(total_amount)
    sahem = money(sahem_amount)
    reserve = money(reserve_amount)

    _require_non_negative("Distribution total", total)
    if sahem < 0 or reserve < 0:
        raise InvalidCommissionConfiguration("Commission and reserve amounts cannot be negative")
    if sahem + reserve > total:
        raise InvalidCommissionConfiguration(
            f"Deductions of {format_amount(sahem + reserve)} exceed the disbursed "
            f"amount of {format_amount(total)}"
        )

    investors_profit = total - sahem - reserve
    return DistributionBreakdown(
        sahem_amount=sahem,
        reserve_amount=reserve,
        investors_profit=investors_profit,
        investors_capital=ZERO,
        total_to_investors=investors_profit,
        is_loss=False,
        is_final=False,
        calculated_sahem_percent=ratio_as_percent(sahem, total),
        calculated_reserve_percent=ratio_as_percent(reserve, total),
    )


def calculate_distribution(
    profit: Any,
    capital: Any,
    sahem_percent: Any,
    reserve_percent: Any,
    is_loss: bool,
    is_final: bool,
    total_amount: Optional[Any] = None,
) -> DistributionBreakdown:
    """
    Breakdown of one distribution round.

    For FINAL rounds ``profit`` is the realized profit and ``capital`` the
    principal being returned. A loss (``is_loss`` or a negative profit) pays
    ``total_amount`` (or ``capital`` when no total is given) back as capital
    with no commission at all.

    For PARTIAL rounds the percentages are applied to the disbursed cash
    (``total_amount``, falling back to ``profit``) and the call is handed to
    :func:`calculate_partial_distribution`.
    """
    sahem_percent = to_decimal(sahem_percent)
    reserve_percent = to_decimal(reserve_percent)

    if not is_final:
        disbursed = money(total_amount if total_amount is not None else profit)
        _check_percentages(sahem_percent, reserve_percent)
        sahem_amount = percent_of(disbursed, sahem_percent)
        reserve_amount = min(percent_of(disbursed, reserve_percent), disbursed - sahem_amount)
        return calculate_partial_distribution(disbursed, sahem_amount, reserve_amount)

    profit = money(profit)
    capital = money(capital)

    if is_loss or profit < 0:
        recovered = money(total_amount) if total_amount is not None else capital
        _require_non_negative("Amount returned to investors", recovered)
        return DistributionBreakdown(
            sahem_amount=ZERO,
            reserve_amount=ZERO,
            investors_profit=ZERO,
            investors_capital=recovered,
            total_to_investors=recovered,
            is_loss=True,
            is_final=True,
            calculated_sahem_percent=ZERO,
            calculated_reserve_percent=ZERO,
        )

    _require_non_negative("Capital returned", capital)
    sahem_amount, reserve_amount, investors_profit = split_commissions(
        profit, sahem_percent, reserve_percent
    )
    return DistributionBreakdown(
        sahem_amount=sahem_amount,
        reserve_amount=reserve_amount,
        investors_profit=investors_profit,
        investors_capital=capital,
        total_to_investors=capital + investors_profit,
        is_loss=False,
        is_final=True,
        calculated_sahem_percent=ratio_as_percent(sahem_amount, profit),
        calculated_reserve_percent=ratio_as_percent(reserve_amount, profit),
    )
