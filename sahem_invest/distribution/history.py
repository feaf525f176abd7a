"""
Historical aggregation of a deal's past payouts.

``fetch_historical_partials`` rolls up every COMPLETED PARTIAL ledger row of
a deal, overall and per investor. It reads through the
:class:`PartialDistributionSource` protocol, implemented in production by
:class:`~sahem_invest.repositories.profit_distribution_repo.ProfitDistributionRepository`,
so the aggregation itself stays a pure function.

Partial payouts never return principal: every capital total produced here
is zero.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Protocol, Set, Tuple, Union
from uuid import UUID

from sahem_invest.core.money import ZERO, format_currency, format_date, money
from sahem_invest.schemas.distribution import (
    DistributionHistoryItem,
    HistoricalPartials,
    HistoricalPartialSummary,
    InvestorHistoricalData,
    LedgerEntryRecord,
    PartialDistributionRecord,
    PartialDistributionTotals,
)

logger = logging.getLogger(__name__)


class PartialDistributionSource(Protocol):
    """Anything that can list a deal's COMPLETED PARTIAL ledger rows."""

    async def get_completed_partials(self, deal_id: UUID) -> List[PartialDistributionRecord]:
        ...


def _day(moment: datetime) -> str:
    return moment.date().isoformat()


def aggregate_historical_partials(
    rows: Iterable[PartialDistributionRecord],
) -> HistoricalPartials:
    """Summarize partial payouts overall and per investor."""
    rows = sorted(rows, key=lambda row: row.distribution_date)

    distribution_dates: List[str] = []
    total_profit = ZERO
    per_investor: Dict[UUID, InvestorHistoricalData] = {}
    investments_seen: Dict[UUID, Set[UUID]] = {}

    for row in rows:
        day = _day(row.distribution_date)
        if day not in distribution_dates:
            distribution_dates.append(day)
        total_profit += money(row.amount)

        data = per_investor.get(row.investor_id)
        if data is None:
            data = InvestorHistoricalData(
                investor_id=row.investor_id,
                investor_name=row.investor_name or "Unknown",
                investor_email=row.investor_email,
                total_investment=ZERO,
                partial_distributions=PartialDistributionTotals(),
            )
            per_investor[row.investor_id] = data
            investments_seen[row.investor_id] = set()

        # An investor can be paid against several investments; count each once.
        if row.investment_id not in investments_seen[row.investor_id]:
            investments_seen[row.investor_id].add(row.investment_id)
            data.total_investment += money(row.investment_amount)

        totals = data.partial_distributions
        totals.count += 1
        totals.total_profit += money(row.amount)
        if day not in totals.dates:
            totals.dates.append(day)

    summary = HistoricalPartialSummary(
        total_partial_distributions=total_profit,
        total_partial_profit=total_profit,
        total_partial_capital=ZERO,
        distribution_dates=distribution_dates,
        distribution_count=len(distribution_dates),
    )
    return HistoricalPartials(summary=summary, investor_data=list(per_investor.values()))


async def fetch_historical_partials(
    deal_id: UUID, source: PartialDistributionSource
) -> HistoricalPartials:
    """
    Read and aggregate the deal's prior partial payouts.

    Persistence errors propagate to the caller unchanged.
    """
    rows = await source.get_completed_partials(deal_id)
    history = aggregate_historical_partials(rows)
    logger.debug(
        "Deal %s has %d partial payouts totalling %s",
        deal_id,
        history.summary.distribution_count,
        history.summary.total_partial_profit,
    )
    return history


def summarize_distribution_history(
    entries: Iterable[LedgerEntryRecord],
) -> List[DistributionHistoryItem]:
    """
    Group ledger rows into one item per distribution event, newest first.

    Rows written by an approval share their ``request_id``; rows without
    one (imported history) are grouped by period and day.
    """
    groups: Dict[Union[UUID, Tuple[str, str]], List[LedgerEntryRecord]] = {}
    for entry in entries:
        key = entry.request_id or (entry.profit_period.value, _day(entry.distribution_date))
        groups.setdefault(key, []).append(entry)

    items: List[Tuple[datetime, DistributionHistoryItem]] = []
    for rows in groups.values():
        first = min(rows, key=lambda row: row.distribution_date)
        profit = sum((money(row.amount) for row in rows), ZERO)
        capital = sum((money(row.capital_amount) for row in rows), ZERO)
        label = (
            f"{first.profit_period.value.title()} distribution of "
            f"{format_currency(profit + capital)} on {format_date(first.distribution_date)}"
        )
        items.append(
            (
                first.distribution_date,
                DistributionHistoryItem(
                    id=first.request_id,
                    date=_day(first.distribution_date),
                    amount=profit + capital,
                    type=first.profit_period,
                    profit_amount=profit,
                    capital_amount=capital,
                    investor_count=len({row.investor_id for row in rows}),
                    label=label,
                ),
            )
        )

    items.sort(key=lambda pair: pair[0], reverse=True)
    return [item for _, item in items]
