from __future__ import annotations

from collections import defaultdict
from decimal import ROUND_FLOOR, Decimal
from enum import Enum
from typing import Iterable

from domain import spending_groups
from domain.models import BudgetSummary, CategoryLine, CategoryTotal, GroupSummary
from domain.schemas import ToolRequest, ToolResponse
from tools._aggregate_support import as_int, load_snapshot, to_jsonable
from tools.base import Tool, ToolSpec
from tools.budget.pay_period import (
    INVALID_PERIOD_MESSAGE,
    current_pay_period,
    days_remaining,
    format_pay_period,
    is_valid_pay_period,
)
from tools.currency.formatting import format_percentage
from tools.registry import register_tool

ZERO = Decimal("0")
ALERT_THRESHOLDS = (50, 80, 100)


class AlertLevel(str, Enum):
    OVER_BUDGET = "over-budget"
    WARNING_80 = "warning-80"
    WARNING_50 = "warning-50"
    ON_TRACK = "on-track"


def effective_budget(category_total: CategoryTotal) -> Decimal | None:
    """Planned amount when tracked this period, else the trailing average, else unknown."""
    if category_total.is_tracked_for_pay_period and category_total.planned_amount is not None:
        return category_total.planned_amount
    if category_total.average_amount is not None:
        return category_total.average_amount
    return None


def categories_with_value(category_totals: Iterable[CategoryTotal]) -> list[CategoryTotal]:
    kept = []
    for row in category_totals:
        budget = effective_budget(row)
        if (budget is not None and budget > 0) or row.total_amount > 0:
            kept.append(row)
    return kept


def rollup_by_spending_group(category_totals: Iterable[CategoryTotal]) -> list[GroupSummary]:
    actual: dict[str, Decimal] = defaultdict(Decimal)
    target: dict[str, Decimal] = defaultdict(Decimal)
    lines: dict[str, list[CategoryLine]] = defaultdict(list)
    names: dict[str, str] = {}

    for row in categories_with_value(category_totals):
        group_id = row.spending_group_id
        budget = effective_budget(row)
        actual[group_id] += row.total_amount
        target[group_id] += (budget or ZERO).to_integral_value(rounding=ROUND_FLOOR)
        if group_id in spending_groups.SPENDING_GROUP_NAMES:
            names[group_id] = spending_groups.SPENDING_GROUP_NAMES[group_id]
        else:
            names.setdefault(group_id, row.spending_group_description or "Other")
        lines[group_id].append(
            CategoryLine(
                category_id=row.category_id,
                category_name=row.category_description,
                actual=row.total_amount,
                target=budget,
                is_tracked=row.is_tracked_for_pay_period,
            )
        )

    ordered = sorted(actual, key=lambda group_id: (spending_groups.sort_order(group_id), group_id))
    return [
        GroupSummary(
            spending_group_id=group_id,
            spending_group_name=names[group_id],
            actual=actual[group_id],
            target=target[group_id],
            categories=tuple(sorted(lines[group_id], key=lambda line: line.category_id)),
        )
        for group_id in ordered
    ]


def budget_breakdown(category_totals: Iterable[CategoryTotal], pay_period: int) -> list[GroupSummary]:
    return rollup_by_spending_group(ct for ct in category_totals if ct.pay_period == pay_period)


def current_budget_summary(category_totals: Iterable[CategoryTotal], pay_period: int) -> BudgetSummary:
    groups = [
        group
        for group in budget_breakdown(category_totals, pay_period)
        if not spending_groups.is_income_group(group.spending_group_id)
    ]
    total_spent = sum((g.actual for g in groups), ZERO)
    total_budgeted = sum((g.target for g in groups), ZERO)
    remaining = total_budgeted - total_spent
    max_amount = max(total_budgeted, total_spent)
    percent_used = total_spent / max_amount * 100 if max_amount else ZERO

    return BudgetSummary(
        total_spent=total_spent,
        total_budgeted=total_budgeted,
        remaining=remaining,
        zero_based_remaining=max(remaining, ZERO),
        overspend=total_spent - total_budgeted,
        is_overspend=total_spent > total_budgeted,
        percent_used=percent_used,
        max_amount=max_amount,
    )


def budget_progress(actual: Decimal, target: Decimal | None) -> Decimal:
    if target is None or target <= 0:
        return ZERO
    return Decimal(actual) / Decimal(target) * 100


def alert_level(actual: Decimal, target: Decimal | None) -> AlertLevel:
    percentage = budget_progress(actual, target)
    if percentage >= 100:
        return AlertLevel.OVER_BUDGET
    if percentage >= 80:
        return AlertLevel.WARNING_80
    if percentage >= 50:
        return AlertLevel.WARNING_50
    return AlertLevel.ON_TRACK


def should_trigger_alert(
    actual: Decimal,
    target: Decimal | None,
    previous_actual: Decimal,
    alerts_enabled: bool,
) -> bool:
    if not alerts_enabled or not target or target <= 0:
        return False
    current = budget_progress(actual, target)
    previous = budget_progress(previous_actual, target)
    return any(current >= threshold > previous for threshold in ALERT_THRESHOLDS)


def spending_by_category(
    category_totals: Iterable[CategoryTotal],
    pay_period: int,
    limit: int | None = None,
) -> list[dict[str, object]]:
    rows = [ct for ct in category_totals if ct.pay_period == pay_period and ct.total_amount > 0]
    total = sum((ct.total_amount for ct in rows), ZERO)
    spending = [
        {
            "category_id": ct.category_id,
            "category_name": ct.category_description or "Uncategorized",
            "amount": ct.total_amount,
            "percentage": ct.total_amount / total * 100 if total else ZERO,
        }
        for ct in rows
    ]
    spending.sort(key=lambda item: item["amount"], reverse=True)
    if limit and limit > 0:
        return spending[:limit]
    return spending


def _resolve_period(request: ToolRequest, day_of_month_paid: int) -> int | None:
    """Requested or current pay period, None when the requested one is out of range."""
    args = request.args if isinstance(request.args, dict) else {}
    period = as_int(args.get("pay_period")) or current_pay_period(day_of_month_paid)
    return period if is_valid_pay_period(period) else None


_PERIOD_ARGS_SCHEMA = {
    "type": "object",
    "properties": {
        "pay_period": {
            "type": "integer",
            "description": "Budget period as YYYYMM. Defaults to the period containing today.",
        },
    },
}


@register_tool
class BudgetSummaryTool(Tool):
    name = "budget.current_summary"
    description = "Totals spent vs budgeted for a pay period, excluding income."

    def run(self, request: ToolRequest) -> ToolResponse:
        aggregate = load_snapshot(request)
        day_paid = aggregate.customer_info.day_of_month_paid
        period = _resolve_period(request, day_paid)
        if period is None:
            return self.fail(request, INVALID_PERIOD_MESSAGE)
        summary = current_budget_summary(aggregate.category_totals, period)
        result = to_jsonable(summary)
        result.update(
            {
                "pay_period": period,
                "label": format_pay_period(period),
                "days_remaining": days_remaining(period, day_paid),
                "alert_level": alert_level(summary.total_spent, summary.total_budgeted).value,
                "percent_used_label": format_percentage(summary.percent_used),
            }
        )
        return self.respond(request, result)

    def spec(self) -> ToolSpec:
        return ToolSpec(name=self.name, description=self.description, args_schema=_PERIOD_ARGS_SCHEMA)


@register_tool
class BudgetBreakdownTool(Tool):
    name = "budget.breakdown"
    description = "Per spending group actual vs target for a pay period, with category lines."

    def run(self, request: ToolRequest) -> ToolResponse:
        aggregate = load_snapshot(request)
        period = _resolve_period(request, aggregate.customer_info.day_of_month_paid)
        if period is None:
            return self.fail(request, INVALID_PERIOD_MESSAGE)
        groups = []
        for group in budget_breakdown(aggregate.category_totals, period):
            entry = to_jsonable(group)
            entry["alert_level"] = alert_level(group.actual, group.target).value
            groups.append(entry)
        return self.respond(
            request,
            {
                "pay_period": period,
                "groups": groups,
                "top_categories": to_jsonable(spending_by_category(aggregate.category_totals, period, limit=5)),
            },
        )

    def spec(self) -> ToolSpec:
        return ToolSpec(name=self.name, description=self.description, args_schema=_PERIOD_ARGS_SCHEMA)
