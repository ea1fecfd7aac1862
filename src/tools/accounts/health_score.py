from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable

from domain import spending_groups
from domain.models import DEFAULT_ANCHOR_CURRENCY, Account, CategoryTotal, ExchangeRate, Goal, HealthScore
from domain.schemas import ToolRequest, ToolResponse
from tools._aggregate_support import anchor_currency_for, as_int, display_currency_for, load_snapshot, to_jsonable
from tools.accounts.net_worth import account_legs
from tools.base import Tool, ToolSpec
from tools.budget.pay_period import INVALID_PERIOD_MESSAGE, current_pay_period, is_valid_pay_period
from tools.currency.conversion import convert, convert_money, to_real_number
from tools.registry import register_tool

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
MAX_SUB_SCORE = 20
# No insurance data in the snapshot yet, so every customer gets half marks.
INSURANCE_SCORE = 10
RECOMMENDATION_THRESHOLD = 15
ACTIVE_GOAL_STATUSES = ("Continue", "Pending")
DEBT_CLASSES = ("CreditCard", "Loan")

RECOMMENDATIONS = {
    "savings": "Build up your emergency fund to cover at least 3 months of expenses",
    "insurance": "Consider adding insurance coverage to protect your assets",
    "investment": "Start investing regularly to build long-term wealth",
    "debt": "Focus on reducing high-interest debt to improve your debt-to-income ratio",
    "spending": "Track your spending more closely and stick to your budget",
}
ALL_GOOD = "Great job! Keep maintaining your excellent financial habits"

SCORE_LEVELS = (
    (80, "Excellent", "You're in great financial shape!"),
    (60, "Good", "You're doing well, with room for improvement"),
    (40, "Fair", "There's work to do to improve your finances"),
    (0, "Needs Work", "Focus on building better financial habits"),
)


def _balance(account: Account, currency: str, rates: tuple[ExchangeRate, ...], anchor: str) -> Decimal:
    if account.have is None:
        return ZERO
    return to_real_number(convert_money(account.have, currency, rates, anchor_currency=anchor))


def savings_score(monthly_income: Decimal, total_savings: Decimal) -> int:
    score = 0
    # Months of income the savings would cover; none without income.
    months = total_savings / monthly_income if monthly_income > 0 else ZERO
    if months >= 6:
        score += 12
    elif months >= 3:
        score += 8
    elif months >= 1:
        score += 4
    # Flat credit until a savings rate can be measured.
    score += 4
    return min(score, MAX_SUB_SCORE)


def investment_score(investment_balances: list[Decimal], goals: Iterable[Goal]) -> int:
    score = 0
    if sum(investment_balances, ZERO) > 0:
        score += 8
    if any(goal.status in ACTIVE_GOAL_STATUSES for goal in goals):
        score += 6
    if len(investment_balances) >= 2:
        score += 6
    elif len(investment_balances) == 1:
        score += 3
    return min(score, MAX_SUB_SCORE)


def debt_score(total_debt: Decimal, monthly_income: Decimal) -> int:
    if total_debt <= 0:
        return MAX_SUB_SCORE
    if monthly_income <= 0:
        return 0
    ratio = total_debt / monthly_income * 100
    if ratio > 50:
        return 0
    if ratio > 40:
        return 5
    if ratio > 30:
        return 10
    if ratio > 20:
        return 15
    return MAX_SUB_SCORE


def spending_score(category_totals: Iterable[CategoryTotal]) -> int:
    tracked = [ct for ct in category_totals if ct.is_tracked_for_pay_period]
    score = 0
    if len(tracked) >= 5:
        score += 10
    elif len(tracked) >= 3:
        score += 7
    elif tracked:
        score += 4

    if tracked:
        adherence = []
        for ct in tracked:
            budget = ct.planned_amount or ct.average_amount or ZERO
            if budget == 0:
                adherence.append(ZERO)
                continue
            adherence.append(max(min((budget - ct.total_amount) / budget, Decimal("1")), ZERO))
        average = sum(adherence, ZERO) / len(adherence)
        score += int((average * 10).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return min(score, MAX_SUB_SCORE)


def recommendations_for(scores: dict[str, int]) -> tuple[str, ...]:
    advice = tuple(RECOMMENDATIONS[name] for name in RECOMMENDATIONS if scores[name] < RECOMMENDATION_THRESHOLD)
    return advice or (ALL_GOOD,)


def score_level(overall: int) -> tuple[str, str]:
    for floor, level, description in SCORE_LEVELS:
        if overall >= floor:
            return level, description
    return SCORE_LEVELS[-1][1], SCORE_LEVELS[-1][2]


def monthly_income_for(category_totals: Iterable[CategoryTotal], pay_period: int) -> Decimal:
    return sum(
        (
            abs(ct.total_amount)
            for ct in category_totals
            if ct.pay_period == pay_period and spending_groups.is_income_group(ct.spending_group_id)
        ),
        ZERO,
    )


def calculate_health_score(
    accounts: Iterable[Account],
    category_totals: Iterable[CategoryTotal],
    goals: Iterable[Goal],
    monthly_income: Decimal,
    currency: str,
    rates: Iterable[ExchangeRate],
    anchor_currency: str = DEFAULT_ANCHOR_CURRENCY,
) -> HealthScore:
    """
    Score financial health out of 100 as five sub-scores of up to 20 each.

    Savings compares savings-account balances to monthly income, debt does the
    same for card and loan liabilities, investment rewards invested balances
    and active goals, and spending rewards tracked categories kept within
    their budget. Balances are converted to `currency` first.
    """
    rates = tuple(rates)
    active = [a for a in accounts if not a.deactivated and not a.is_deleted]

    total_savings = sum(
        (
            _balance(a, currency, rates, anchor_currency)
            for a in active
            if a.account_class == "Bank" and "savings" in (a.account_type or "").lower()
        ),
        ZERO,
    )
    investments = [_balance(a, currency, rates, anchor_currency) for a in active if a.account_class == "Investment"]
    total_debt = sum(
        (account_legs(a, currency, rates, anchor_currency)[1] for a in active if a.account_class in DEBT_CLASSES),
        ZERO,
    )

    scores = {
        "savings": savings_score(monthly_income, total_savings),
        "insurance": INSURANCE_SCORE,
        "investment": investment_score(investments, goals),
        "debt": debt_score(total_debt, monthly_income),
        "spending": spending_score(category_totals),
    }
    logger.debug("Health sub-scores %s income=%s debt=%s", scores, monthly_income, total_debt)
    return HealthScore(overall=sum(scores.values()), recommendations=recommendations_for(scores), **scores)


@register_tool
class HealthScoreTool(Tool):
    name = "accounts.health_score"
    description = (
        "Financial health score out of 100 built from savings, insurance, investment, debt and spending "
        "sub-scores, with a level and recommendations."
    )

    def run(self, request: ToolRequest) -> ToolResponse:
        args = request.args if isinstance(request.args, dict) else {}
        aggregate = load_snapshot(request)
        period = as_int(args.get("pay_period")) or current_pay_period(aggregate.customer_info.day_of_month_paid)
        if not is_valid_pay_period(period):
            return self.fail(request, INVALID_PERIOD_MESSAGE)

        currency = display_currency_for(request, aggregate)
        anchor = anchor_currency_for(request)
        if args.get("monthly_income") is not None:
            try:
                monthly_income = Decimal(str(args["monthly_income"]))
            except (InvalidOperation, ValueError):
                return self.fail(request, "monthly_income must be a number")
            if not monthly_income.is_finite() or monthly_income < 0:
                return self.fail(request, "monthly_income must be a finite, non-negative number")
        else:
            # Category totals are in the customer's default currency.
            income = monthly_income_for(aggregate.category_totals, period)
            default_currency = aggregate.customer_info.default_currency_code
            converted = convert(income, default_currency, currency, aggregate.exchange_rates, anchor_currency=anchor)
            monthly_income = income if converted is None else converted

        period_totals = [ct for ct in aggregate.category_totals if ct.pay_period == period]
        score = calculate_health_score(
            aggregate.accounts,
            period_totals,
            aggregate.goals,
            monthly_income,
            currency,
            aggregate.exchange_rates,
            anchor,
        )
        level, level_description = score_level(score.overall)
        result = to_jsonable(score)
        result.update(
            {
                "level": level,
                "level_description": level_description,
                "pay_period": period,
                "monthly_income": to_jsonable(monthly_income),
                "currency": currency,
            }
        )
        return self.respond(request, result)

    def spec(self) -> ToolSpec:
        return ToolSpec(
            name=self.name,
            description=self.description,
            args_schema={
                "type": "object",
                "properties": {
                    "pay_period": {"type": "integer", "description": "Period whose budgets and income are scored."},
                    "monthly_income": {
                        "type": "number",
                        "description": "Overrides the income read from the period's Income categories.",
                    },
                    "currency": {"type": "string", "description": "Currency balances are compared in."},
                },
            },
        )
