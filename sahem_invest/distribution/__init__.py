"""
Profit/loss distribution engine.

Pure calculators (no I/O) plus the historical aggregator, which reads prior
partial payouts through any :class:`~.history.PartialDistributionSource`.
"""

from sahem_invest.distribution.allocation import (
    calculate_investor_distributions,
    validate_investor_amounts,
)
from sahem_invest.distribution.breakdown import (
    calculate_distribution,
    calculate_partial_distribution,
    split_commissions,
)
from sahem_invest.distribution.history import (
    PartialDistributionSource,
    aggregate_historical_partials,
    fetch_historical_partials,
    summarize_distribution_history,
)
from sahem_invest.distribution.profitability import analyze_profitability

__all__ = [
    "PartialDistributionSource",
    "aggregate_historical_partials",
    "analyze_profitability",
    "calculate_distribution",
    "calculate_investor_distributions",
    "calculate_partial_distribution",
    "fetch_historical_partials",
    "split_commissions",
    "summarize_distribution_history",
    "validate_investor_amounts",
]
