"""
Repository tests against a throwaway in-memory SQLite database.

These cover the queries that matter for correctness of a payout: the
compare-and-set claim, status transitions, the joined reads the engine
consumes and the wallet credits staged by an approval.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlmodel import SQLModel

import sahem_invest.db.base  # noqa: F401
from sahem_invest.core.resilience import CircuitState, db_circuit_breaker
from sahem_invest.db.session import create_engine_for, create_session_factory
from sahem_invest.models.deal import Deal
from sahem_invest.models.distribution_request import (
    DistributionRequestStatus,
    DistributionType,
    ProfitDistributionRequest,
)
from sahem_invest.models.investment import Investment
from sahem_invest.models.investor import Investor
from sahem_invest.models.profit_distribution import ProfitDistribution
from sahem_invest.models.transaction import Transaction, TransactionType
from sahem_invest.repositories.deal_repo import DealRepository
from sahem_invest.repositories.distribution_request_repo import DistributionRequestRepository
from sahem_invest.repositories.investment_repo import InvestmentRepository
from sahem_invest.repositories.profit_distribution_repo import ProfitDistributionRepository
from sahem_invest.repositories.transaction_repo import TransactionRepository

from .conftest import (
    DEAL_ID,
    INVESTMENT_ID,
    INVESTMENT_ID_2,
    INVESTOR_ID,
    INVESTOR_ID_2,
    REQUEST_ID,
    make_deal,
    make_investment,
    make_investor,
    make_request,
    make_transaction,
)


@pytest_asyncio.fixture()
async def session():
    engine = create_engine_for("sqlite+aiosqlite://")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    factory = create_session_factory(engine)
    async with factory() as db:
        db.add(make_deal(current_funding=Decimal("0")))
        db.add(make_investor(id=INVESTOR_ID, name="A", email="a@example.com"))
        db.add(make_investor(id=INVESTOR_ID_2, name="B", email="b@example.com"))
        await db.flush()
        db.add(make_investment(id=INVESTMENT_ID, investor_id=INVESTOR_ID, amount=Decimal("6000")))
        db.add(
            make_investment(id=INVESTMENT_ID_2, investor_id=INVESTOR_ID_2, amount=Decimal("4000"))
        )
        db.add(make_request())
        await db.commit()
        yield db

    await engine.dispose()


def _second_request() -> ProfitDistributionRequest:
    return make_request(id=uuid.UUID("88888888-8888-8888-8888-888888888888"))


class TestClaimForProcessing:
    @pytest.mark.asyncio
    async def test_claims_pending_request(self, session):
        repo = DistributionRequestRepository(ProfitDistributionRequest, session)

        assert await repo.claim_for_processing(REQUEST_ID, DEAL_ID) is True

        stored = await session.get(ProfitDistributionRequest, REQUEST_ID, populate_existing=True)
        assert stored.status == DistributionRequestStatus.PROCESSING

    @pytest.mark.asyncio
    async def test_second_claim_loses(self, session):
        repo = DistributionRequestRepository(ProfitDistributionRequest, session)

        assert await repo.claim_for_processing(REQUEST_ID, DEAL_ID) is True
        assert await repo.claim_for_processing(REQUEST_ID, DEAL_ID) is False

    @pytest.mark.asyncio
    async def test_refuses_while_deal_has_processing_request(self, session):
        repo = DistributionRequestRepository(ProfitDistributionRequest, session)
        other = await repo.create(_second_request())

        assert await repo.claim_for_processing(REQUEST_ID, DEAL_ID) is True
        assert await repo.claim_for_processing(other.id, DEAL_ID) is False

        stored = await session.get(ProfitDistributionRequest, other.id, populate_existing=True)
        assert stored.status == DistributionRequestStatus.PENDING

    @pytest.mark.asyncio
    async def test_release_returns_to_pending(self, session):
        repo = DistributionRequestRepository(ProfitDistributionRequest, session)
        await repo.claim_for_processing(REQUEST_ID, DEAL_ID)

        assert await repo.release(REQUEST_ID) is True

        stored = await session.get(ProfitDistributionRequest, REQUEST_ID, populate_existing=True)
        assert stored.status == DistributionRequestStatus.PENDING

    @pytest.mark.asyncio
    async def test_release_goes_through_while_breaker_is_open(self, session, monkeypatch):
        repo = DistributionRequestRepository(ProfitDistributionRequest, session)
        await repo.claim_for_processing(REQUEST_ID, DEAL_ID)
        monkeypatch.setattr(db_circuit_breaker, "failure_threshold", 1)
        db_circuit_breaker._on_failure(ConnectionError("db down"))
        assert db_circuit_breaker.state == CircuitState.OPEN

        assert await repo.release(REQUEST_ID) is True

        stored = await session.get(ProfitDistributionRequest, REQUEST_ID, populate_existing=True)
        assert stored.status == DistributionRequestStatus.PENDING

    @pytest.mark.asyncio
    async def test_release_of_pending_request_reports_false(self, session):
        repo = DistributionRequestRepository(ProfitDistributionRequest, session)

        assert await repo.release(REQUEST_ID) is False


class TestTransitionStatus:
    @pytest.mark.asyncio
    async def test_applies_values(self, session):
        repo = DistributionRequestRepository(ProfitDistributionRequest, session)

        rejected = await repo.transition_status(
            REQUEST_ID,
            DistributionRequestStatus.PENDING,
            DistributionRequestStatus.REJECTED,
            {"rejection_reason": "Numbers are off", "reviewed_by": "admin-1"},
        )

        assert rejected.status == DistributionRequestStatus.REJECTED
        assert rejected.rejection_reason == "Numbers are off"

    @pytest.mark.asyncio
    async def test_wrong_expected_status_returns_none(self, session):
        repo = DistributionRequestRepository(ProfitDistributionRequest, session)

        result = await repo.transition_status(
            REQUEST_ID,
            DistributionRequestStatus.PROCESSING,
            DistributionRequestStatus.APPROVED,
        )

        assert result is None

    @pytest.mark.asyncio
    async def test_list_filters_by_status(self, session):
        repo = DistributionRequestRepository(ProfitDistributionRequest, session)

        pending = await repo.list_requests(status=DistributionRequestStatus.PENDING)
        approved = await repo.list_requests(status=DistributionRequestStatus.APPROVED)

        assert [request.id for request in pending] == [REQUEST_ID]
        assert approved == []

    @pytest.mark.asyncio
    async def test_count_by_status_reports_every_status(self, session):
        repo = DistributionRequestRepository(ProfitDistributionRequest, session)
        await repo.create(_second_request())
        await repo.claim_for_processing(REQUEST_ID, DEAL_ID)

        counts = await repo.count_by_status()

        assert counts == {"PENDING": 1, "PROCESSING": 1, "APPROVED": 0, "REJECTED": 0}


class TestInvestmentReads:
    @pytest.mark.asyncio
    async def test_records_join_investor(self, session):
        repo = InvestmentRepository(Investment, session)

        records = await repo.get_records_for_deal(DEAL_ID)

        by_investor = {record.investor_id: record for record in records}
        assert by_investor[INVESTOR_ID].investor_name == "A"
        assert by_investor[INVESTOR_ID].amount == Decimal("6000")
        assert by_investor[INVESTOR_ID_2].investment_id == INVESTMENT_ID_2

    @pytest.mark.asyncio
    async def test_create_for_deal_raises_funding(self, session):
        repo = InvestmentRepository(Investment, session)
        deal = await DealRepository(Deal, session).get(DEAL_ID)

        await repo.create_for_deal(
            make_investment(id=uuid.uuid4(), amount=Decimal("500")), deal
        )

        assert deal.current_funding == Decimal("500")
        assert len(await repo.get_by_deal(DEAL_ID)) == 3


class TestLedger:
    @pytest.mark.asyncio
    async def test_stage_payouts_credits_wallets(self, session):
        repo = ProfitDistributionRepository(ProfitDistribution, session)
        paid_at = datetime(2025, 3, 1, tzinfo=timezone.utc)

        await repo.stage_payouts(
            [
                ProfitDistribution(
                    deal_id=DEAL_ID,
                    investor_id=INVESTOR_ID,
                    investment_id=INVESTMENT_ID,
                    request_id=REQUEST_ID,
                    amount=Decimal("90"),
                    profit_period=DistributionType.PARTIAL,
                    distribution_date=paid_at,
                )
            ],
            [
                Transaction(
                    investor_id=INVESTOR_ID,
                    investment_id=INVESTMENT_ID,
                    type=TransactionType.RETURN,
                    amount=Decimal("90"),
                )
            ],
            {INVESTOR_ID: (Decimal("90"), Decimal("90"))},
        )
        await session.commit()

        investor = await session.get(Investor, INVESTOR_ID, populate_existing=True)
        assert investor.wallet_balance == Decimal("90")
        assert investor.total_returns == Decimal("90")

        partials = await repo.get_completed_partials(DEAL_ID)
        assert len(partials) == 1
        assert partials[0].investor_name == "A"
        assert partials[0].investment_amount == Decimal("6000")

    @pytest.mark.asyncio
    async def test_final_rows_are_not_partials(self, session):
        repo = ProfitDistributionRepository(ProfitDistribution, session)

        await repo.stage_payouts(
            [
                ProfitDistribution(
                    deal_id=DEAL_ID,
                    investor_id=INVESTOR_ID_2,
                    investment_id=INVESTMENT_ID_2,
                    amount=Decimal("320"),
                    capital_amount=Decimal("4000"),
                    profit_period=DistributionType.FINAL,
                )
            ],
            [],
            {INVESTOR_ID_2: (Decimal("4320"), Decimal("320"))},
        )
        await session.commit()

        assert await repo.get_completed_partials(DEAL_ID) == []
        entries = await repo.get_ledger_entries(DEAL_ID)
        assert len(entries) == 1
        assert entries[0].capital_amount == Decimal("4000")

    @pytest.mark.asyncio
    async def test_rollback_discards_staged_credits(self, session):
        repo = ProfitDistributionRepository(ProfitDistribution, session)

        await repo.stage_payouts([], [], {INVESTOR_ID: (Decimal("100"), Decimal("0"))})
        await repo.rollback()

        investor = await session.get(Investor, INVESTOR_ID, populate_existing=True)
        assert investor.wallet_balance == Decimal("0")


class TestTransactionReads:
    async def _book(self, session) -> None:
        session.add_all(
            [
                make_transaction(
                    amount=Decimal("90.00"),
                    created_at=datetime(2025, 3, 1, tzinfo=timezone.utc),
                ),
                make_transaction(amount=Decimal("480.00")),
                make_transaction(type=TransactionType.CAPITAL_RETURN, amount=Decimal("6000.00")),
                make_transaction(investor_id=INVESTOR_ID_2, amount=Decimal("320.00")),
            ]
        )
        await session.commit()

    @pytest.mark.asyncio
    async def test_totals_by_type(self, session):
        await self._book(session)
        repo = TransactionRepository(Transaction, session)

        totals = await repo.totals_by_type(INVESTOR_ID)

        assert totals == {
            TransactionType.RETURN: Decimal("570.00"),
            TransactionType.CAPITAL_RETURN: Decimal("6000.00"),
        }

    @pytest.mark.asyncio
    async def test_investor_without_payouts_has_no_totals(self, session):
        assert await TransactionRepository(Transaction, session).totals_by_type(INVESTOR_ID) == {}

    @pytest.mark.asyncio
    async def test_listing_is_newest_first_and_filterable(self, session):
        await self._book(session)
        repo = TransactionRepository(Transaction, session)

        everything = await repo.get_for_investor(INVESTOR_ID)
        capital = await repo.get_for_investor(INVESTOR_ID, type=TransactionType.CAPITAL_RETURN)

        assert len(everything) == 3
        assert everything[-1].amount == Decimal("90.00")
        assert [t.amount for t in capital] == [Decimal("6000.00")]
