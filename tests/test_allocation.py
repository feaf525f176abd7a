"""
Unit tests for per-investor allocation and custom-amount validation.
"""

import uuid
from decimal import Decimal

import pytest

from sahem_invest.core.exceptions import DistributionCalculationError
from sahem_invest.distribution import calculate_investor_distributions, validate_investor_amounts
from sahem_invest.schemas.distribution import (
    CustomInvestorAmount,
    InvestorHistoricalData,
    PartialDistributionTotals,
)

from .conftest import INVESTOR_ID, INVESTOR_ID_2, make_record, scenario_records


class TestCalculateInvestorDistributions:
    def test_scenario_one_allocation(self):
        result = calculate_investor_distributions(
            scenario_records(), Decimal("10000"), Decimal("800"), Decimal("10000")
        )

        a, b = result
        assert a.investor_id == INVESTOR_ID
        assert a.investment_ratio == Decimal("0.6")
        assert a.final_profit == Decimal("480.00")
        assert a.final_capital == Decimal("6000.00")
        assert a.final_total == Decimal("6480.00")
        assert b.final_profit == Decimal("320.00")
        assert b.final_capital == Decimal("4000.00")
        assert b.final_total == Decimal("4320.00")

    def test_scenario_two_loss_allocation(self):
        a, b = calculate_investor_distributions(
            scenario_records(), None, Decimal("0"), Decimal("7000")
        )
        assert a.final_total == Decimal("4200.00")
        assert b.final_total == Decimal("2800.00")
        assert a.final_profit == b.final_profit == 0

    def test_remainder_cents_go_to_last_investor(self):
        ids = sorted((uuid.uuid4() for _ in range(3)), key=str)
        records = [make_record(investor_id, "1000") for investor_id in ids]

        result = calculate_investor_distributions(records, None, Decimal("100"), Decimal("0"))

        assert [item.investor_id for item in result] == ids
        assert [item.final_profit for item in result] == [
            Decimal("33.33"),
            Decimal("33.33"),
            Decimal("33.34"),
        ]

    def test_pools_are_conserved_exactly(self):
        records = [
            make_record(uuid.uuid4(), amount)
            for amount in ("1234.56", "789.01", "3333.33", "0.10", "999.99")
        ]
        result = calculate_investor_distributions(
            records, None, Decimal("1000.01"), Decimal("6356.99")
        )
        assert sum(item.final_profit for item in result) == Decimal("1000.01")
        assert sum(item.final_capital for item in result) == Decimal("6356.99")

    def test_sorted_by_total_investment_descending(self):
        small, large = uuid.uuid4(), uuid.uuid4()
        records = [make_record(small, "100"), make_record(large, "900")]

        result = calculate_investor_distributions(records, None, Decimal("10"), Decimal("0"))

        assert [item.investor_id for item in result] == [large, small]

    def test_multiple_investments_are_grouped(self):
        records = [
            make_record(INVESTOR_ID, "3000", name="A"),
            make_record(INVESTOR_ID, "3000", name="A"),
            make_record(INVESTOR_ID_2, "4000", name="B"),
        ]
        result = calculate_investor_distributions(records, None, Decimal("800"), Decimal("0"))

        assert len(result) == 2
        assert result[0].total_investment == Decimal("6000.00")
        assert result[0].final_profit == Decimal("480.00")

    def test_profit_is_proportional_to_investment(self):
        result = calculate_investor_distributions(
            scenario_records(), None, Decimal("800"), Decimal("0")
        )
        a, b = result
        assert a.final_profit / b.final_profit == Decimal("6000") / Decimal("4000")

    def test_history_defaults_to_zero(self):
        a, _ = calculate_investor_distributions(scenario_records(), None, 800, 0)
        assert a.partial_profit_received == 0
        assert a.partial_capital_received == 0
        assert a.partial_distribution_count == 0

    def test_history_is_attached(self):
        history = [
            InvestorHistoricalData(
                investor_id=INVESTOR_ID,
                investor_name="A",
                investor_email="a@example.com",
                total_investment=Decimal("6000"),
                partial_distributions=PartialDistributionTotals(
                    count=2, total_profit=Decimal("150"), dates=["2025-01-01", "2025-02-01"]
                ),
            )
        ]
        a, b = calculate_investor_distributions(scenario_records(), None, 800, 0, history)

        assert a.partial_profit_received == Decimal("150")
        assert a.partial_distribution_count == 2
        assert b.partial_distribution_count == 0

    def test_empty_investments_yield_empty_allocation(self):
        assert calculate_investor_distributions([], None, 100, 100) == []

    def test_declared_total_mismatch_raises(self):
        with pytest.raises(DistributionCalculationError):
            calculate_investor_distributions(scenario_records(), Decimal("12000"), 800, 0)

    def test_declared_total_within_tolerance_is_accepted(self):
        result = calculate_investor_distributions(
            scenario_records(), Decimal("10000.01"), 800, 0
        )
        assert len(result) == 2

    def test_negative_pool_raises(self):
        with pytest.raises(DistributionCalculationError):
            calculate_investor_distributions(scenario_records(), None, Decimal("-1"), 0)


class TestValidateInvestorAmounts:
    """Scenario 5: one cent of tolerance."""

    @staticmethod
    def _amounts(*profits: str) -> list[CustomInvestorAmount]:
        return [
            CustomInvestorAmount(
                investor_id=uuid.uuid4(), final_capital=Decimal("0"), final_profit=Decimal(p)
            )
            for p in profits
        ]

    def test_within_tolerance_is_valid(self):
        result = validate_investor_amounts(
            self._amounts("480.00", "319.99"), Decimal("800.00"), Decimal("0")
        )
        assert result.valid is True
        assert result.errors == []

    def test_beyond_tolerance_names_both_totals(self):
        result = validate_investor_amounts(
            self._amounts("480.00", "319.99"), Decimal("800.02"), Decimal("0")
        )
        assert result.valid is False
        assert len(result.errors) == 1
        assert "800.02" in result.errors[0]
        assert "799.99" in result.errors[0]

    def test_capital_mismatch_is_reported(self):
        amounts = [
            CustomInvestorAmount(
                investor_id=INVESTOR_ID, final_capital=Decimal("5000"), final_profit=Decimal("800")
            )
        ]
        result = validate_investor_amounts(amounts, Decimal("800"), Decimal("10000"))
        assert result.valid is False
        assert "capital" in result.errors[0]

    def test_duplicate_investor_is_reported(self):
        amounts = [
            CustomInvestorAmount(investor_id=INVESTOR_ID, final_capital=0, final_profit=400),
            CustomInvestorAmount(investor_id=INVESTOR_ID, final_capital=0, final_profit=400),
        ]
        result = validate_investor_amounts(amounts, Decimal("800"), Decimal("0"))
        assert result.valid is False
        assert any("more than once" in error for error in result.errors)
