"""
Profitability analysis shown to the admin (and partner) next to a FINAL
distribution: did the deal make or lose money, how much, and what do the
investors get back.
"""

from typing import Any, Dict

from sahem_invest.core.money import ZERO, money, ratio_as_percent
from sahem_invest.distribution.breakdown import split_commissions
from sahem_invest.schemas.distribution import ProfitabilityAnalysis, ProfitabilityDetails

_MESSAGES: Dict[str, Dict[str, str]] = {
    "ar": {
        "loss_reason": "الصفقة لم تحقق أرباحاً كافية لاسترداد رأس المال بالكامل",
        "loss_message": (
            "تم فقدان {loss} دولار ({percent}%) من رأس المال. "
            "سيتم إرجاع {recovery} دولار للمستثمرين بدون أي عمولات."
        ),
        "profit_reason": "الصفقة حققت أرباحاً وسيتم إرجاع رأس المال بالكامل مع الأرباح",
        "profit_message": (
            "تم تحقيق ربح قدره {profit} دولار ({percent}%). "
            "سيحصل المستثمرون على {capital} دولار رأس مال و {investor_profit} دولار أرباح."
        ),
    },
    "en": {
        "loss_reason": "The deal did not earn enough to recover the full capital",
        "loss_message": (
            "Lost {loss} USD ({percent}%) of capital. "
            "{recovery} USD will be returned to investors without any commission."
        ),
        "profit_reason": "The deal was profitable; capital is returned in full with profit",
        "profit_message": (
            "Realized a profit of {profit} USD ({percent}%). Investors receive "
            "{capital} USD of capital and {investor_profit} USD of profit."
        ),
    },
}


def analyze_profitability(
    original_investment: Any,
    total_amount: Any,
    estimated_profit: Any,
    estimated_capital_return: Any,
    sahem_percent: Any,
    reserve_percent: Any,
    is_loss: bool,
    locale: str = "ar",
) -> ProfitabilityAnalysis:
    """
    Classify a deal outcome and summarize it.

    A loss (``is_loss`` or a negative ``estimated_profit``) is measured as
    ``original_investment - total_amount``; commissions are waived and the
    whole ``total_amount`` is recovered by investors. Otherwise the profit is
    split exactly as :func:`~sahem_invest.distribution.breakdown.split_commissions`
    does and investors recover the capital plus their profit share.

    ``locale`` selects the language of ``reason`` and ``message`` ("ar" or
    "en"; anything else falls back to English).
    """
    texts = _MESSAGES.get(locale, _MESSAGES["en"])
    original = money(original_investment)
    total = money(total_amount)
    profit = money(estimated_profit)
    capital = money(estimated_capital_return)

    if is_loss or profit < 0:
        loss = original - total
        loss_percent = ratio_as_percent(loss, original)
        return ProfitabilityAnalysis(
            is_profitable=False,
            profit_or_loss_amount=-loss,
            profit_or_loss_percentage=-loss_percent,
            reason=texts["loss_reason"],
            details=ProfitabilityDetails(
                original_investment=original,
                total_distributed=total,
                commissions_paid=ZERO,
                investor_recovery=total,
            ),
            message=texts["loss_message"].format(
                loss=f"{loss:.2f}", percent=f"{loss_percent:.2f}", recovery=f"{total:.2f}"
            ),
        )

    sahem_amount, reserve_amount, investor_profit = split_commissions(
        profit, sahem_percent, reserve_percent
    )
    profit_percent = ratio_as_percent(profit, original)
    return ProfitabilityAnalysis(
        is_profitable=True,
        profit_or_loss_amount=profit,
        profit_or_loss_percentage=profit_percent,
        reason=texts["profit_reason"],
        details=ProfitabilityDetails(
            original_investment=original,
            total_distributed=total,
            commissions_paid=sahem_amount + reserve_amount,
            investor_recovery=capital + investor_profit,
        ),
        message=texts["profit_message"].format(
            profit=f"{profit:.2f}",
            percent=f"{profit_percent:.2f}",
            capital=f"{capital:.2f}",
            investor_profit=f"{investor_profit:.2f}",
        ),
    )
