"""
Unit tests for the request/response schemas: field validation on input and
the JSON shape of money values on output.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError

from sahem_invest.models.deal import DealStatus
from sahem_invest.models.distribution_request import DistributionType
from sahem_invest.schemas.deal import DealCreate, DealResponse
from sahem_invest.schemas.distribution import CustomInvestorAmount
from sahem_invest.schemas.distribution_request import (
    ApprovalRequest,
    DistributionOverrides,
    DistributionRequestCreate,
    DistributionRequestResponse,
    RejectionRequest,
)
from sahem_invest.schemas.investment import InvestmentCreate
from sahem_invest.schemas.investor import InvestorCreate

from .conftest import DEAL_ID, INVESTOR_ID, PARTNER_ID, make_deal, make_request

# ────────────────────────────────────────────────────────────────────────────
# Deals, investors, investments
# ────────────────────────────────────────────────────────────────────────────


class TestDealSchemas:
    def test_title_is_stripped(self):
        deal = DealCreate(title="  Riyadh Hub  ", partner_id=PARTNER_ID, funding_goal=Decimal("1"))
        assert deal.title == "Riyadh Hub"
        assert deal.status == DealStatus.PUBLISHED

    def test_blank_title_rejected(self):
        with pytest.raises(ValidationError):
            DealCreate(title="   ", partner_id=PARTNER_ID, funding_goal=Decimal("1"))

    def test_funding_goal_must_be_positive(self):
        with pytest.raises(ValidationError):
            DealCreate(title="Hub", partner_id=PARTNER_ID, funding_goal=Decimal("0"))

    def test_response_emits_money_as_numbers(self):
        data = DealResponse.model_validate(make_deal()).model_dump(mode="json")

        assert data["funding_goal"] == 10000.0
        assert data["current_funding"] == 10000.0


class TestInvestorSchemas:
    def test_valid(self):
        investor = InvestorCreate(name=" Omar ", email="omar@example.com")
        assert investor.name == "Omar"

    def test_invalid_email(self):
        with pytest.raises(ValidationError):
            InvestorCreate(name="Omar", email="not-an-email")


class TestInvestmentSchemas:
    def test_valid(self):
        investment = InvestmentCreate(
            investor_id=INVESTOR_ID, amount=Decimal("6000"), investment_date=date(2025, 1, 5)
        )
        assert investment.amount == Decimal("6000")

    def test_amount_must_be_positive(self):
        with pytest.raises(ValidationError):
            InvestmentCreate(
                investor_id=INVESTOR_ID, amount=Decimal("0"), investment_date=date(2025, 1, 5)
            )

    def test_tomorrow_is_allowed(self):
        tomorrow = date.today() + timedelta(days=1)
        investment = InvestmentCreate(
            investor_id=INVESTOR_ID, amount=Decimal("1"), investment_date=tomorrow
        )
        assert investment.investment_date == tomorrow

    def test_far_future_rejected(self):
        with pytest.raises(ValidationError, match="future"):
            InvestmentCreate(
                investor_id=INVESTOR_ID,
                amount=Decimal("1"),
                investment_date=date.today() + timedelta(days=30),
            )


# ────────────────────────────────────────────────────────────────────────────
# Distribution requests
# ────────────────────────────────────────────────────────────────────────────


class TestDistributionRequestCreate:
    def _create(self, **overrides) -> DistributionRequestCreate:
        data = dict(
            deal_id=DEAL_ID,
            partner_id=PARTNER_ID,
            distribution_type=DistributionType.FINAL,
            total_amount=Decimal("11000"),
            estimated_gain_percent=Decimal("10"),
            description="Warehouse sold",
        )
        data.update(overrides)
        return DistributionRequestCreate(**data)

    def test_defaults(self):
        request = self._create()
        assert request.estimated_closing_percent == Decimal("0")
        assert request.sahem_invest_percent is None

    def test_negative_gain_allowed_for_loss(self):
        assert self._create(estimated_gain_percent=Decimal("-30")).estimated_gain_percent == -30

    @pytest.mark.parametrize("gain", [Decimal("-100.01"), Decimal("100.01")])
    def test_gain_out_of_range(self, gain):
        with pytest.raises(ValidationError):
            self._create(estimated_gain_percent=gain)

    def test_total_must_be_positive(self):
        with pytest.raises(ValidationError):
            self._create(total_amount=Decimal("0"))

    def test_commission_percent_capped(self):
        with pytest.raises(ValidationError):
            self._create(sahem_invest_percent=Decimal("101"))

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            self._create(distribution_type="INTERIM")


class TestOverrides:
    def test_only_sent_fields_are_set(self):
        overrides = DistributionOverrides.model_validate({"estimated_gain_percent": 20})
        assert overrides.model_fields_set == {"estimated_gain_percent"}

    @pytest.mark.parametrize("gain", [Decimal("-100.5"), Decimal("101"), Decimal("9.09091")])
    def test_gain_percent_outside_column_range_rejected(self, gain):
        with pytest.raises(ValidationError):
            DistributionOverrides(estimated_gain_percent=gain)

    def test_loss_gain_percent_accepted(self):
        overrides = DistributionOverrides(estimated_gain_percent=Decimal("-35.5"))
        assert overrides.estimated_gain_percent == Decimal("-35.5")

    def test_custom_amount_carries_only_final_figures(self):
        amount = CustomInvestorAmount.model_validate(
            {"investor_id": str(INVESTOR_ID), "final_capital": "6000", "final_profit": "480"}
        )
        assert set(amount.model_dump()) == {"investor_id", "final_capital", "final_profit"}

    def test_negative_custom_amount_rejected(self):
        with pytest.raises(ValidationError):
            CustomInvestorAmount(
                investor_id=INVESTOR_ID, final_capital=Decimal("-1"), final_profit=Decimal("0")
            )

    def test_approval_carries_reviewer(self):
        approval = ApprovalRequest(reviewed_by="admin-1", is_loss=True)
        assert approval.reviewed_by == "admin-1"
        assert approval.is_loss is True

    def test_rejection_requires_reason(self):
        with pytest.raises(ValidationError):
            RejectionRequest(reason="")


class TestDistributionRequestResponse:
    def test_from_model(self):
        data = DistributionRequestResponse.model_validate(make_request()).model_dump(mode="json")

        assert data["status"] == "PENDING"
        assert data["distribution_type"] == "FINAL"
        assert data["estimated_profit"] == 1000.0
        assert data["sahem_invest_amount"] is None
