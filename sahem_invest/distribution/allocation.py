"""
Per-investor allocation of a distribution round.

Each investor receives a share of the profit pool and of the capital pool
proportional to the capital they put into the deal. Shares are held to the
cent: every share is truncated and the cents left over in a pool go to the
last investor in presentation order (smallest stake, ties broken by
investor id), so the shares always add up to the pool exactly.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sahem_invest.core.exceptions import DistributionCalculationError
from sahem_invest.core.money import ZERO, format_amount, money, truncate_cents
from sahem_invest.schemas.distribution import (
    AmountValidationResult,
    CustomInvestorAmount,
    InvestmentRecord,
    InvestorDistributionDetail,
    InvestorHistoricalData,
)

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = Decimal("0.01")


def _prorate(pool: Decimal, weights: List[Decimal], whole: Decimal) -> List[Decimal]:
    """Split ``pool`` by ``weights / whole``; the last share absorbs the remainder."""
    if not weights:
        return []
    if whole == 0:
        return [ZERO for _ in weights]
    shares = [truncate_cents(pool * weight / whole) for weight in weights[:-1]]
    shares.append(pool - sum(shares, ZERO))
    return shares


def calculate_investor_distributions(
    investments: Iterable[InvestmentRecord],
    total_investment_amount: Optional[Any],
    investor_profit_pool: Any,
    capital_return_pool: Any,
    historical_data: Iterable[InvestorHistoricalData] = (),
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> List[InvestorDistributionDetail]:
    """
    Prorate the round's profit and capital pools across the deal's investors.

    Parameters
    ----------
    investments : iterable of InvestmentRecord
        Every investment row of the deal; several rows per investor are summed.
    total_investment_amount : Decimal or None
        Capital raised by the deal. ``None`` means "the sum of
        ``investments``"; a supplied figure must agree with that sum within
        ``tolerance``.
    investor_profit_pool, capital_return_pool :
        ``investors_profit`` and ``investors_capital`` of the breakdown.
    historical_data : iterable of InvestorHistoricalData
        Prior partial payouts; investors without history are reported with
        zeros.

    Returns the allocations sorted by total investment, largest first.
    """
    groups: Dict[UUID, List[InvestmentRecord]] = {}
    for investment in investments:
        groups.setdefault(investment.investor_id, []).append(investment)
    if not groups:
        return []

    invested = {
        investor_id: sum((money(row.amount) for row in rows), ZERO)
        for investor_id, rows in groups.items()
    }
    capital_raised = sum(invested.values(), ZERO)

    if total_investment_amount is not None:
        declared = money(total_investment_amount)
        if abs(declared - capital_raised) > tolerance:
            raise DistributionCalculationError(
                f"Deal total of {format_amount(declared)} does not match the "
                f"{format_amount(capital_raised)} recorded across its investments"
            )

    profit_pool = money(investor_profit_pool)
    capital_pool = money(capital_return_pool)
    if profit_pool < 0 or capital_pool < 0:
        raise DistributionCalculationError("Distribution pools cannot be negative")
    if capital_raised == 0 and (profit_pool or capital_pool):
        raise DistributionCalculationError(
            "Cannot prorate a distribution over a deal with no invested capital"
        )

    order = sorted(invested, key=lambda investor_id: (-invested[investor_id], str(investor_id)))
    weights = [invested[investor_id] for investor_id in order]
    profit_shares = _prorate(profit_pool, weights, capital_raised)
    capital_shares = _prorate(capital_pool, weights, capital_raised)

    history = {item.investor_id: item for item in historical_data}

    results: List[InvestorDistributionDetail] = []
    for investor_id, final_profit, final_capital in zip(order, profit_shares, capital_shares):
        first = groups[investor_id][0]
        past = history.get(investor_id)
        results.append(
            InvestorDistributionDetail(
                investor_id=investor_id,
                investor_name=first.investor_name or "Unknown",
                investor_email=first.investor_email or "",
                total_investment=invested[investor_id],
                investment_ratio=(
                    invested[investor_id] / capital_raised if capital_raised else Decimal(0)
                ),
                partial_capital_received=(
                    past.partial_distributions.total_capital if past else ZERO
                ),
                partial_profit_received=past.partial_distributions.total_profit if past else ZERO,
                partial_distribution_count=past.partial_distributions.count if past else 0,
                final_capital=final_capital,
                final_profit=final_profit,
                final_total=final_capital + final_profit,
            )
        )

    logger.debug(
        "Allocated profit %s and capital %s across %d investors",
        profit_pool,
        capital_pool,
        len(results),
    )
    return results


def validate_investor_amounts(
    custom_amounts: Iterable[CustomInvestorAmount],
    expected_total_profit: Any,
    expected_total_capital: Any,
    tolerance: Any = DEFAULT_TOLERANCE,
) -> AmountValidationResult:
    """
    Check admin-edited per-investor payouts against the round's pools.

    Totals may differ from the pools by at most ``tolerance``; every
    mismatch produces an error naming the expected and the received total.
    """
    custom_amounts = list(custom_amounts)
    tolerance = money(tolerance)
    expected_profit = money(expected_total_profit)
    expected_capital = money(expected_total_capital)

    total_profit = sum((money(item.final_profit) for item in custom_amounts), ZERO)
    total_capital = sum((money(item.final_capital) for item in custom_amounts), ZERO)

    errors: List[str] = []
    if abs(total_profit - expected_profit) > tolerance:
        errors.append(
            f"Total profit mismatch: expected {expected_profit}, got {total_profit}"
        )
    if abs(total_capital - expected_capital) > tolerance:
        errors.append(
            f"Total capital mismatch: expected {expected_capital}, got {total_capital}"
        )

    seen = set()
    for item in custom_amounts:
        if item.investor_id in seen:
            errors.append(f"Investor {item.investor_id} appears more than once")
        seen.add(item.investor_id)

    return AmountValidationResult(valid=not errors, errors=errors)
