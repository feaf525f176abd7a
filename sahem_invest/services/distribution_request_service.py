"""
Distribution request service: the partner-submission and admin-review
workflow around the distribution engine.

A partner files a request; the admin previews it (optionally editing the
figures or individual investor payouts) and then approves or rejects it.
Previews never write. An approval:

1. re-computes the plan with the admin's final edits and rejects invalid
   custom payouts,
2. claims the request (PENDING -> PROCESSING) with a compare-and-set that
   also refuses while another request of the same deal is PROCESSING,
3. stages one ledger row, a RETURN and a CAPITAL_RETURN transaction and a
   wallet credit per investor,
4. stores the final figures on the request and marks it APPROVED in the
   same commit.

If anything fails after the claim, the unit of work is rolled back and the
request is released back to PENDING.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from sahem_invest.core.cache import cache, cache_key
from sahem_invest.core.config import settings
from sahem_invest.core.exceptions import (
    BusinessRuleViolation,
    ConflictException,
    NotFoundException,
)
from sahem_invest.core.money import HUNDRED, ZERO, money, percent_of
from sahem_invest.distribution import (
    analyze_profitability,
    calculate_distribution,
    calculate_investor_distributions,
    calculate_partial_distribution,
    validate_investor_amounts,
)
from sahem_invest.models.distribution_request import (
    DistributionRequestStatus,
    DistributionType,
    ProfitDistributionRequest,
)
from sahem_invest.models.profit_distribution import LedgerStatus, ProfitDistribution
from sahem_invest.models.transaction import Transaction, TransactionType
from sahem_invest.repositories.deal_repo import DealRepository
from sahem_invest.repositories.distribution_request_repo import DistributionRequestRepository
from sahem_invest.repositories.investment_repo import InvestmentRepository
from sahem_invest.repositories.profit_distribution_repo import ProfitDistributionRepository
from sahem_invest.schemas.distribution import (
    AmountValidationResult,
    CustomInvestorAmount,
    DistributionBreakdown,
    InvestmentRecord,
    InvestorDistributionDetail,
)
from sahem_invest.schemas.distribution_request import (
    ApprovalRequest,
    ApprovalResponse,
    DistributionOverrides,
    DistributionPreview,
    DistributionRequestCreate,
    DistributionRequestResponse,
    DistributionTerms,
)
from sahem_invest.services.distribution_history_service import DistributionHistoryService

logger = logging.getLogger(__name__)

SHARE_PRECISION = Decimal("0.0001")

Payouts = Tuple[
    List[ProfitDistribution], List[Transaction], Dict[UUID, Tuple[Decimal, Decimal]]
]


def apply_overrides(
    terms: DistributionTerms, overrides: Optional[DistributionOverrides]
) -> DistributionTerms:
    """
    Layer admin edits over the stored figures.

    Only fields that were sent count. A new total or gain percentage without
    an explicit profit recomputes the profit (and, unless sent, the capital);
    a profit without an explicit loss flag sets ``is_loss`` from its sign.
    """
    if overrides is None:
        return terms

    data = {
        key: value
        for key, value in overrides.model_dump(
            exclude_unset=True, exclude={"custom_amounts", "reviewed_by"}
        ).items()
        if value is not None
    }
    if ("total_amount" in data or "estimated_gain_percent" in data) and (
        "estimated_profit" not in data
    ):
        total = money(data.get("total_amount", terms.total_amount))
        gain = data.get("estimated_gain_percent", terms.estimated_gain_percent)
        data["estimated_profit"] = percent_of(total, gain)
        data.setdefault("estimated_return_capital", total - data["estimated_profit"])
    if "estimated_profit" in data and "is_loss" not in data:
        data["is_loss"] = money(data["estimated_profit"]) < 0
    return terms.model_copy(update=data)


def compute_breakdown(terms: DistributionTerms) -> DistributionBreakdown:
    """
    Breakdown for a set of terms.

    FINAL rounds split the profit by percentage. PARTIAL rounds deduct the
    USD amounts, derived from the percentages of the total when unset.
    """
    if terms.distribution_type == DistributionType.FINAL:
        return calculate_distribution(
            terms.estimated_profit,
            terms.estimated_return_capital,
            terms.sahem_invest_percent,
            terms.reserved_gain_percent,
            is_loss=terms.is_loss,
            is_final=True,
            total_amount=terms.total_amount,
        )

    sahem_amount = terms.sahem_invest_amount
    if sahem_amount is None:
        sahem_amount = percent_of(terms.total_amount, terms.sahem_invest_percent)
    reserve_amount = terms.reserved_amount
    if reserve_amount is None:
        reserve_amount = percent_of(terms.total_amount, terms.reserved_gain_percent)
    return calculate_partial_distribution(terms.total_amount, sahem_amount, reserve_amount)


class DistributionRequestService:
    """Workflow of :class:`ProfitDistributionRequest` from submission to payout."""

    CACHE_PREFIX = "distribution-requests:"

    def __init__(
        self,
        request_repo: DistributionRequestRepository,
        deal_repo: DealRepository,
        investment_repo: InvestmentRepository,
        ledger_repo: ProfitDistributionRepository,
    ):
        self._request_repo = request_repo
        self._deal_repo = deal_repo
        self._investment_repo = investment_repo
        self._ledger_repo = ledger_repo
        self._history = DistributionHistoryService(ledger_repo, deal_repo)
        self._tolerance = settings.DISTRIBUTION_TOLERANCE
        self._locale = settings.MESSAGE_LOCALE

    # ── Queries ──

    async def list_requests(
        self,
        status: Optional[DistributionRequestStatus] = None,
        deal_id: Optional[UUID] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[ProfitDistributionRequest]:
        """Filtered listing (cache-backed; every status change invalidates it)."""
        key = cache_key(
            "distribution-requests", status.value if status else "all", deal_id or "all", skip, limit
        )
        return await cache.get_or_load(
            key,
            lambda: self._request_repo.list_requests(
                status=status, deal_id=deal_id, skip=skip, limit=limit
            ),
        )

    async def get_request(self, request_id: UUID) -> ProfitDistributionRequest:
        """Raises :class:`NotFoundException` if the request does not exist."""
        request = await self._request_repo.get(request_id)
        if not request:
            raise NotFoundException("Distribution request", request_id)
        return request

    async def preview(
        self, request_id: UUID, overrides: Optional[DistributionOverrides] = None
    ) -> DistributionPreview:
        """Recompute the whole distribution with the admin's edits; writes nothing."""
        request = await self.get_request(request_id)
        preview, _ = await self._plan(request, overrides)
        return preview

    # ── Commands ──

    async def create_request(self, request_in: DistributionRequestCreate) -> ProfitDistributionRequest:
        """
        File a partner's distribution request.

        The deal must exist (404), be run by the submitting partner and have
        investments (422). The profit is ``total * gain% / 100`` and the rest
        of the total is returned capital. Commission percentages default to
        the configured ones and are checked before anything is stored.
        """
        deal = await self._deal_repo.get(request_in.deal_id)
        if not deal:
            raise NotFoundException("Deal", request_in.deal_id)
        if deal.partner_id != request_in.partner_id:
            raise BusinessRuleViolation(
                f"Deal '{deal.title}' is not managed by partner '{request_in.partner_id}'"
            )
        if not await self._investment_repo.get_records_for_deal(deal.id):
            raise BusinessRuleViolation(f"Deal '{deal.title}' has no investments to distribute to")

        total = money(request_in.total_amount)
        profit = percent_of(total, request_in.estimated_gain_percent)
        request = ProfitDistributionRequest(
            deal_id=deal.id,
            partner_id=request_in.partner_id,
            distribution_type=request_in.distribution_type,
            description=request_in.description,
            total_amount=total,
            estimated_gain_percent=request_in.estimated_gain_percent,
            estimated_closing_percent=request_in.estimated_closing_percent,
            estimated_profit=profit,
            estimated_return_capital=total - profit,
            sahem_invest_percent=(
                request_in.sahem_invest_percent
                if request_in.sahem_invest_percent is not None
                else settings.DEFAULT_SAHEM_INVEST_PERCENT
            ),
            reserved_gain_percent=(
                request_in.reserved_gain_percent
                if request_in.reserved_gain_percent is not None
                else settings.DEFAULT_RESERVED_GAIN_PERCENT
            ),
            sahem_invest_amount=request_in.sahem_invest_amount,
            reserved_amount=request_in.reserved_amount,
            is_loss=profit < 0,
        )
        compute_breakdown(DistributionTerms.model_validate(request))

        try:
            created = await self._request_repo.create(request)
        except IntegrityError as exc:
            await self._request_repo.rollback()
            logger.warning("IntegrityError creating distribution request: %s", exc)
            raise BusinessRuleViolation(
                "Distribution request violates a database constraint. Check all fields."
            )
        cache.invalidate(self.CACHE_PREFIX)
        logger.info(
            "Partner %s filed %s distribution request %s for deal %s ($%s)",
            created.partner_id,
            created.distribution_type.value,
            created.id,
            created.deal_id,
            created.total_amount,
        )
        return created

    async def approve(
        self, request_id: UUID, approval: Optional[ApprovalRequest] = None
    ) -> ApprovalResponse:
        """
        Approve a PENDING request and pay it out.

        Raises :class:`ConflictException` when the request is not PENDING or
        another approval of the same deal is in flight, and
        :class:`BusinessRuleViolation` (errors in ``details``) when custom
        investor payouts do not add up.
        """
        request = await self.get_request(request_id)
        self._require_pending(request)
        deal = await self._deal_repo.get(request.deal_id)
        if not deal:
            raise NotFoundException("Deal", request.deal_id)

        preview, investments = await self._plan(request, approval)
        if preview.validation is not None and not preview.validation.valid:
            raise BusinessRuleViolation(
                "Custom investor amounts do not match the distribution totals",
                details=preview.validation.errors,
            )

        if not await self._request_repo.claim_for_processing(request.id, request.deal_id):
            raise ConflictException(
                f"Distribution request '{request.id}' was already processed or another "
                f"distribution of this deal is being approved"
            )

        now = datetime.now(timezone.utc)
        try:
            ledger_rows, transactions, credits = self._build_payouts(
                request, deal.title, preview, investments, now
            )
            await self._ledger_repo.stage_payouts(ledger_rows, transactions, credits)
            values = preview.terms.model_dump(exclude={"distribution_type"})
            values.update(
                sahem_invest_amount=preview.breakdown.sahem_amount,
                reserved_amount=preview.breakdown.reserve_amount,
                reviewed_at=now,
                reviewed_by=approval.reviewed_by if approval else None,
            )
            approved = await self._request_repo.transition_status(
                request.id,
                DistributionRequestStatus.PROCESSING,
                DistributionRequestStatus.APPROVED,
                values,
            )
            if approved is None:
                raise ConflictException(
                    f"Distribution request '{request.id}' left PROCESSING during approval"
                )
        except Exception:
            logger.error("Approval of distribution request %s failed; releasing it", request.id)
            await self._request_repo.rollback()
            await self._request_repo.release(request.id)
            raise

        DistributionHistoryService.invalidate(request.deal_id)
        cache.invalidate(self.CACHE_PREFIX, "investors:")
        logger.info(
            "Approved %s distribution %s for deal %s: %d investors, $%s paid out",
            approved.distribution_type.value,
            approved.id,
            approved.deal_id,
            len(credits),
            preview.breakdown.total_to_investors,
        )
        return ApprovalResponse(
            request=DistributionRequestResponse.model_validate(approved),
            breakdown=preview.breakdown,
            investors=preview.investors,
            ledger_entries=len(ledger_rows),
        )

    async def reject(
        self, request_id: UUID, reason: str, reviewed_by: Optional[str] = None
    ) -> ProfitDistributionRequest:
        """Reject a PENDING request and record why."""
        request = await self.get_request(request_id)
        self._require_pending(request)

        rejected = await self._request_repo.transition_status(
            request.id,
            DistributionRequestStatus.PENDING,
            DistributionRequestStatus.REJECTED,
            {
                "rejection_reason": reason,
                "reviewed_at": datetime.now(timezone.utc),
                "reviewed_by": reviewed_by,
            },
        )
        if rejected is None:
            raise ConflictException(f"Distribution request '{request.id}' was already processed")

        cache.invalidate(self.CACHE_PREFIX)
        logger.info("Rejected distribution request %s: %s", rejected.id, reason)
        return rejected

    # ── Internals ──

    @staticmethod
    def _require_pending(request: ProfitDistributionRequest) -> None:
        if request.status != DistributionRequestStatus.PENDING:
            raise ConflictException(
                f"Distribution request '{request.id}' has already been processed "
                f"(status: {request.status.value})"
            )

    async def _plan(
        self,
        request: ProfitDistributionRequest,
        overrides: Optional[DistributionOverrides],
    ) -> Tuple[DistributionPreview, List[InvestmentRecord]]:
        investments = await self._investment_repo.get_records_for_deal(request.deal_id)
        if not investments:
            raise BusinessRuleViolation(
                f"Deal '{request.deal_id}' has no investments to distribute to"
            )

        terms = apply_overrides(DistributionTerms.model_validate(request), overrides)
        breakdown = compute_breakdown(terms)
        history = await self._history.get_historical_partials(request.deal_id)
        investors = calculate_investor_distributions(
            investments,
            None,
            breakdown.investors_profit,
            breakdown.investors_capital,
            history.investor_data,
            tolerance=self._tolerance,
        )

        profitability = None
        if terms.distribution_type == DistributionType.FINAL:
            profitability = analyze_profitability(
                sum((money(row.amount) for row in investments), ZERO),
                terms.total_amount,
                terms.estimated_profit,
                terms.estimated_return_capital,
                terms.sahem_invest_percent,
                terms.reserved_gain_percent,
                terms.is_loss,
                locale=self._locale,
            )

        validation = None
        if overrides is not None and overrides.custom_amounts is not None:
            investors, validation = self._apply_custom_amounts(
                investors, overrides.custom_amounts, breakdown
            )

        preview = DistributionPreview(
            request_id=request.id,
            deal_id=request.deal_id,
            terms=terms,
            breakdown=breakdown,
            investors=investors,
            historical_summary=history.summary,
            profitability=profitability,
            validation=validation,
        )
        return preview, investments

    def _apply_custom_amounts(
        self,
        investors: List[InvestorDistributionDetail],
        custom_amounts: Sequence[CustomInvestorAmount],
        breakdown: DistributionBreakdown,
    ) -> Tuple[List[InvestorDistributionDetail], AmountValidationResult]:
        """Swap in the admin's per-investor payouts; investors not listed keep theirs."""
        edits = {item.investor_id: item for item in custom_amounts}
        merged = []
        for detail in investors:
            edit = edits.get(detail.investor_id)
            if edit is None:
                merged.append(detail)
                continue
            final_capital = money(edit.final_capital)
            final_profit = money(edit.final_profit)
            merged.append(
                detail.model_copy(
                    update={
                        "final_capital": final_capital,
                        "final_profit": final_profit,
                        "final_total": final_capital + final_profit,
                    }
                )
            )

        result = validate_investor_amounts(
            [
                CustomInvestorAmount(
                    investor_id=detail.investor_id,
                    final_capital=detail.final_capital,
                    final_profit=detail.final_profit,
                )
                for detail in merged
            ],
            breakdown.investors_profit,
            breakdown.investors_capital,
            tolerance=self._tolerance,
        )

        errors = list(result.errors)
        known = {detail.investor_id for detail in investors}
        seen = set()
        for item in custom_amounts:
            if item.investor_id not in known:
                errors.append(f"Investor {item.investor_id} has no investment in this deal")
            elif item.investor_id in seen:
                errors.append(f"Investor {item.investor_id} appears more than once")
            seen.add(item.investor_id)
        return merged, AmountValidationResult(valid=not errors, errors=errors)

    @staticmethod
    def _build_payouts(
        request: ProfitDistributionRequest,
        deal_title: str,
        preview: DistributionPreview,
        investments: Sequence[InvestmentRecord],
        paid_at: datetime,
    ) -> Payouts:
        # Ledger rows point at the investor's largest investment in the deal.
        primary_investment: Dict[UUID, Optional[UUID]] = {}
        for record in sorted(investments, key=lambda row: -money(row.amount)):
            primary_investment.setdefault(record.investor_id, record.investment_id)

        period = preview.terms.distribution_type
        label = "Final" if period == DistributionType.FINAL else "Partial"
        ledger_rows: List[ProfitDistribution] = []
        transactions: List[Transaction] = []
        credits: Dict[UUID, Tuple[Decimal, Decimal]] = {}

        for detail in preview.investors:
            if detail.final_total <= 0:
                continue
            investment_id = primary_investment[detail.investor_id]
            ledger_rows.append(
                ProfitDistribution(
                    deal_id=request.deal_id,
                    investor_id=detail.investor_id,
                    investment_id=investment_id,
                    request_id=request.id,
                    amount=detail.final_profit,
                    capital_amount=detail.final_capital,
                    investment_share=(detail.investment_ratio * HUNDRED).quantize(
                        SHARE_PRECISION
                    ),
                    profit_period=period,
                    status=LedgerStatus.COMPLETED,
                    distribution_date=paid_at,
                )
            )
            if detail.final_profit > 0:
                transactions.append(
                    Transaction(
                        investor_id=detail.investor_id,
                        investment_id=investment_id,
                        type=TransactionType.RETURN,
                        amount=detail.final_profit,
                        description=f"{label} profit distribution from {deal_title}",
                        created_at=paid_at,
                    )
                )
            if detail.final_capital > 0:
                transactions.append(
                    Transaction(
                        investor_id=detail.investor_id,
                        investment_id=investment_id,
                        type=TransactionType.CAPITAL_RETURN,
                        amount=detail.final_capital,
                        description=f"Capital returned from {deal_title}",
                        created_at=paid_at,
                    )
                )
            credits[detail.investor_id] = (detail.final_total, detail.final_profit)

        return ledger_rows, transactions, credits
