"""
Shared pytest fixtures for unit tests.

All tests run with ``USE_SQLITE=true``; services are tested against mocked
repositories and the repository tests use a throwaway in-memory SQLite
database, so no external database or network I/O is needed.
"""

import os

os.environ.setdefault("USE_SQLITE", "true")

import uuid  # noqa: E402
from datetime import date, datetime, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402

from sahem_invest.core.cache import TTLCache  # noqa: E402
from sahem_invest.models.deal import Deal, DealStatus  # noqa: E402
from sahem_invest.models.distribution_request import (  # noqa: E402
    DistributionRequestStatus,
    DistributionType,
    ProfitDistributionRequest,
)
from sahem_invest.models.investment import Investment  # noqa: E402
from sahem_invest.models.investor import Investor  # noqa: E402
from sahem_invest.models.transaction import Transaction, TransactionType  # noqa: E402
from sahem_invest.schemas.distribution import InvestmentRecord  # noqa: E402

# ────────────────────────────────────────────────────────────────────────────
# Factory helpers
# ────────────────────────────────────────────────────────────────────────────

DEAL_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")
INVESTOR_ID = uuid.UUID("22222222-2222-2222-2222-222222222222")
INVESTMENT_ID = uuid.UUID("33333333-3333-3333-3333-333333333333")
INVESTOR_ID_2 = uuid.UUID("55555555-5555-5555-5555-555555555555")
INVESTMENT_ID_2 = uuid.UUID("66666666-6666-6666-6666-666666666666")
REQUEST_ID = uuid.UUID("77777777-7777-7777-7777-777777777777")
PARTNER_ID = "partner-1"


def make_deal(
    *,
    id: uuid.UUID = DEAL_ID,
    title: str = "Test Deal",
    partner_id: str = PARTNER_ID,
    funding_goal: Decimal = Decimal("10000.00"),
    current_funding: Decimal = Decimal("10000.00"),
    status: DealStatus = DealStatus.ACTIVE,
    created_at: datetime | None = None,
) -> Deal:
    return Deal(
        id=id,
        title=title,
        partner_id=partner_id,
        funding_goal=funding_goal,
        current_funding=current_funding,
        status=status,
        created_at=created_at or datetime.now(timezone.utc),
    )


def make_investor(
    *,
    id: uuid.UUID = INVESTOR_ID,
    name: str = "Test Investor",
    email: str = "test@example.com",
    wallet_balance: Decimal = Decimal("0.00"),
    total_returns: Decimal = Decimal("0.00"),
    created_at: datetime | None = None,
) -> Investor:
    return Investor(
        id=id,
        name=name,
        email=email,
        wallet_balance=wallet_balance,
        total_returns=total_returns,
        created_at=created_at or datetime.now(timezone.utc),
    )


def make_investment(
    *,
    id: uuid.UUID = INVESTMENT_ID,
    deal_id: uuid.UUID = DEAL_ID,
    investor_id: uuid.UUID = INVESTOR_ID,
    amount: Decimal = Decimal("6000.00"),
    investment_date: date = date(2025, 1, 5),
) -> Investment:
    return Investment(
        id=id,
        deal_id=deal_id,
        investor_id=investor_id,
        amount=amount,
        investment_date=investment_date,
    )


def make_record(
    investor_id: uuid.UUID,
    amount: str,
    *,
    name: str = "Investor",
    investment_id: uuid.UUID | None = None,
) -> InvestmentRecord:
    """An engine-facing investment row."""
    return InvestmentRecord(
        investor_id=investor_id,
        investor_name=name,
        investor_email=f"{name.lower()}@example.com",
        amount=Decimal(amount),
        investment_id=investment_id or uuid.uuid4(),
    )


def scenario_records() -> list[InvestmentRecord]:
    """Two investors with $6,000 (A) and $4,000 (B) in the deal."""
    return [
        make_record(INVESTOR_ID, "6000", name="A", investment_id=INVESTMENT_ID),
        make_record(INVESTOR_ID_2, "4000", name="B", investment_id=INVESTMENT_ID_2),
    ]


def make_request(
    *,
    id: uuid.UUID = REQUEST_ID,
    deal_id: uuid.UUID = DEAL_ID,
    distribution_type: DistributionType = DistributionType.FINAL,
    total_amount: Decimal = Decimal("11000.00"),
    estimated_gain_percent: Decimal = Decimal("9.0909"),
    estimated_profit: Decimal = Decimal("1000.00"),
    estimated_return_capital: Decimal = Decimal("10000.00"),
    sahem_invest_percent: Decimal = Decimal("10"),
    reserved_gain_percent: Decimal = Decimal("10"),
    sahem_invest_amount: Decimal | None = None,
    reserved_amount: Decimal | None = None,
    is_loss: bool = False,
    status: DistributionRequestStatus = DistributionRequestStatus.PENDING,
) -> ProfitDistributionRequest:
    """A FINAL request for $1,000 profit on $10,000 capital unless told otherwise."""
    return ProfitDistributionRequest(
        id=id,
        deal_id=deal_id,
        partner_id=PARTNER_ID,
        distribution_type=distribution_type,
        description="Test distribution",
        total_amount=total_amount,
        estimated_gain_percent=estimated_gain_percent,
        estimated_closing_percent=Decimal("0"),
        estimated_profit=estimated_profit,
        estimated_return_capital=estimated_return_capital,
        sahem_invest_percent=sahem_invest_percent,
        reserved_gain_percent=reserved_gain_percent,
        sahem_invest_amount=sahem_invest_amount,
        reserved_amount=reserved_amount,
        is_loss=is_loss,
        status=status,
        requested_at=datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc),
    )


def make_transaction(
    *,
    investor_id: uuid.UUID = INVESTOR_ID,
    type: TransactionType = TransactionType.RETURN,
    amount: Decimal = Decimal("480.00"),
    created_at: datetime | None = None,
) -> Transaction:
    return Transaction(
        id=uuid.uuid4(),
        investor_id=investor_id,
        investment_id=INVESTMENT_ID,
        type=type,
        amount=amount,
        description="Final profit distribution from Test Deal",
        created_at=created_at or datetime(2025, 6, 2, 9, 0, tzinfo=timezone.utc),
    )


# ────────────────────────────────────────────────────────────────────────────
# Pytest fixtures
# ────────────────────────────────────────────────────────────────────────────


@pytest.fixture()
def mock_db():
    """A mocked AsyncSession that tracks add/commit/refresh/rollback calls."""
    session = AsyncMock()
    session.add = MagicMock()
    session.add_all = MagicMock()
    session.commit = AsyncMock()
    session.refresh = AsyncMock()
    session.rollback = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    return session


@pytest.fixture()
def test_cache():
    """A fresh TTL cache instance for test isolation."""
    return TTLCache(ttl=30.0, max_size=100, enabled=True)


@pytest.fixture()
def disabled_cache():
    """A disabled TTL cache; every operation is a no-op."""
    return TTLCache(ttl=30.0, max_size=100, enabled=False)


@pytest.fixture(autouse=True)
def _clear_global_cache():
    """Clear the global cache around each test."""
    from sahem_invest.core.cache import cache

    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def _reset_circuit_breaker():
    """Close the shared database breaker so failures never leak between tests."""
    from sahem_invest.core.resilience import db_circuit_breaker

    db_circuit_breaker.reset()
    yield
