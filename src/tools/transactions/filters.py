from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Iterable

from pydantic import ValidationError

from domain import spending_groups
from domain.models import Aggregate, Transaction
from domain.schemas import ToolRequest, ToolResponse, TransactionFilters
from tools._aggregate_support import as_int, load_snapshot, to_jsonable
from tools.base import Tool, ToolSpec
from tools.budget.pay_period import current_pay_period
from tools.registry import register_tool
from tools.transactions.summary import parse_transaction_date, sort_newest_first, transaction_totals

logger = logging.getLogger(__name__)

# Leading number of a search term, so "52 groceries" still searches for 52.
_LEADING_NUMBER = re.compile(r"\s*(-?\d+(?:\.\d+)?)")


@dataclass(frozen=True)
class FilterContext:
    filters: TransactionFilters
    aggregate: Aggregate
    current_pay_period: int | None = None


Stage = Callable[[list[Transaction], FilterContext], list[Transaction]]


def _by_accounts(rows: list[Transaction], ctx: FilterContext) -> list[Transaction]:
    selected = set(ctx.filters.accounts)
    if not selected:
        return rows
    return [t for t in rows if t.account_id in selected]


def _by_categories(rows: list[Transaction], ctx: FilterContext) -> list[Transaction]:
    selected = set(ctx.filters.categories)
    if not selected:
        return rows
    return [t for t in rows if (t.category_id or "") in selected]


def _by_spending_groups(rows: list[Transaction], ctx: FilterContext) -> list[Transaction]:
    selected = set(ctx.filters.spending_groups)
    if not selected:
        return rows
    return [t for t in rows if (t.spending_group_id or "") in selected]


def _by_tags(rows: list[Transaction], ctx: FilterContext) -> list[Transaction]:
    selected = set(ctx.filters.tags)
    if not selected:
        return rows
    return [t for t in rows if any(tag.id in selected for tag in t.tags)]


def _by_quick_flags(rows: list[Transaction], ctx: FilterContext) -> list[Transaction]:
    quick = ctx.filters.quick_filters
    if quick.pending:
        rows = [t for t in rows if t.is_pending]
    if quick.unseen:
        rows = [t for t in rows if not t.is_read]
    if quick.uncategorised:
        rows = [t for t in rows if t.category_id == spending_groups.UNCATEGORIZED_CATEGORY_ID]
    return rows


def _by_date_range(rows: list[Transaction], ctx: FilterContext) -> list[Transaction]:
    start, end = ctx.filters.from_date, ctx.filters.to_date
    if start is None and end is None:
        return rows

    kept = []
    for t in rows:
        day = parse_transaction_date(t.transaction_date).date()
        if start is not None and day < start:
            continue
        if end is not None and day > end:
            continue
        kept.append(t)
    return kept


def _by_current_budget(rows: list[Transaction], ctx: FilterContext) -> list[Transaction]:
    if not ctx.filters.quick_filters.current_budget or ctx.current_pay_period is None:
        return rows
    return [
        t
        for t in rows
        if t.pay_period == ctx.current_pay_period and not spending_groups.is_transfer_group(t.spending_group_id)
    ]


def _by_amount_range(rows: list[Transaction], ctx: FilterContext) -> list[Transaction]:
    low, high = ctx.filters.min_amount, ctx.filters.max_amount
    if low is not None:
        rows = [t for t in rows if abs(t.amount.amount) >= low]
    if high is not None:
        rows = [t for t in rows if abs(t.amount.amount) <= high]
    return rows


def _round_whole(value: Decimal) -> Decimal:
    return value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def _by_search(rows: list[Transaction], ctx: FilterContext) -> list[Transaction]:
    raw = ctx.filters.search_query or ""
    if not raw.strip():
        return rows

    term = raw.lower()
    words = [w for w in term.split(" ") if w]
    number = _LEADING_NUMBER.match(term)
    search_amount = _round_whole(abs(Decimal(number.group(1)))) if number else None

    aggregate = ctx.aggregate
    categories = {c.id: c.description.lower() for c in aggregate.categories}
    groups = {g.id: g.description.lower() for g in aggregate.spending_groups}
    merchants = {m.id: m.name.lower() for m in aggregate.merchants}
    tags = {tag.id: tag.name.lower() for tag in aggregate.tags}

    def matches(t: Transaction) -> bool:
        description_words = t.description.lower().split(" ")
        if any(word in description_words for word in words):
            return True
        if t.category_id and term in categories.get(t.category_id, ""):
            return True
        if t.spending_group_id:
            group_name = groups.get(t.spending_group_id) or spending_groups.spending_group_name(t.spending_group_id).lower()
            if term in group_name:
                return True
        if t.merchant_id and term in merchants.get(t.merchant_id, ""):
            return True
        if any(term in tags.get(tag.id, tag.name.lower()) for tag in t.tags):
            return True
        return search_amount is not None and _round_whole(abs(t.amount.amount)) == search_amount

    return [t for t in rows if matches(t)]


# Free-text search is the most expensive stage and stays last.
STAGES: tuple[Stage, ...] = (
    _by_accounts,
    _by_categories,
    _by_spending_groups,
    _by_tags,
    _by_quick_flags,
    _by_date_range,
    _by_current_budget,
    _by_amount_range,
    _by_search,
)


def filter_transactions(
    transactions: Iterable[Transaction],
    filters: TransactionFilters,
    aggregate: Aggregate,
    current_pay_period: int | None = None,
) -> list[Transaction]:
    ctx = FilterContext(filters=filters, aggregate=aggregate, current_pay_period=current_pay_period)
    rows = list(transactions)
    for stage in STAGES:
        rows = stage(rows, ctx)
    return sort_newest_first(rows)


def active_filter_count(filters: TransactionFilters) -> int:
    """Number of filter kinds in use; a list with three accounts still counts once."""
    count = sum(
        1
        for selected in (filters.categories, filters.spending_groups, filters.accounts, filters.tags)
        if selected
    )
    if filters.from_date is not None or filters.to_date is not None:
        count += 1
    if filters.min_amount is not None or filters.max_amount is not None:
        count += 1
    count += sum(1 for enabled in filters.quick_filters.model_dump().values() if enabled)
    return count


def has_active_filters(filters: TransactionFilters) -> bool:
    return active_filter_count(filters) > 0 or bool((filters.search_query or "").strip())


@register_tool
class FilterTransactionsTool(Tool):
    name = "transactions.filter"
    description = (
        "Filter the snapshot's transactions by account, category, spending group, tag, quick flags, "
        "date range, amount range and free-text search; newest first."
    )

    def run(self, request: ToolRequest) -> ToolResponse:
        args = dict(request.args) if isinstance(request.args, dict) else {}
        limit = as_int(args.pop("limit", None))
        try:
            filters = TransactionFilters.model_validate(args.get("filters") or {})
        except ValidationError as exc:
            return self.fail(request, f"Invalid transaction filters: {exc}")

        aggregate = load_snapshot(request)
        period = as_int(args.get("current_pay_period")) or current_pay_period(aggregate.customer_info.day_of_month_paid)
        visible = [t for t in aggregate.transactions if not t.is_deleted]
        rows = filter_transactions(visible, filters, aggregate, current_pay_period=period)
        logger.info(
            "Filtered transactions in=%d out=%d active_filters=%d",
            len(visible),
            len(rows),
            active_filter_count(filters),
        )
        totals = to_jsonable(transaction_totals(rows))
        if limit and limit > 0:
            rows = rows[:limit]
        return self.respond(
            request,
            {
                "totals": totals,
                "transactions": to_jsonable(rows),
                "transaction_count": len(rows),
                "active_filter_count": active_filter_count(filters),
                "filters_used": filters.model_dump(mode="json", exclude_defaults=True),
            },
        )

    def spec(self) -> ToolSpec:
        return ToolSpec(
            name=self.name,
            description=self.description,
            args_schema={
                "type": "object",
                "properties": {
                    "filters": TransactionFilters.model_json_schema(),
                    "current_pay_period": {"type": "integer"},
                    "limit": {"type": "integer", "minimum": 1},
                },
            },
        )
