from __future__ import annotations

from calendar import month_abbr, month_name, monthrange
from datetime import date, timedelta

from domain.schemas import ToolRequest, ToolResponse
from tools._aggregate_support import as_int, load_snapshot
from tools.base import Tool, ToolSpec
from tools.registry import register_tool

LAST_DAY_THRESHOLD = 30
MID_MONTH = 15
# Periods reach one month either side of their own for start and end dates.
MIN_PERIOD_YEAR = 1900
MAX_PERIOD_YEAR = 9998
INVALID_PERIOD_MESSAGE = f"pay_period must be in YYYYMM form with a year from {MIN_PERIOD_YEAR} to {MAX_PERIOD_YEAR}"


def _days_in_month(year: int, month: int) -> int:
    return monthrange(year, month)[1]


def _shift_month(year: int, month: int, months: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def _split(period: int) -> tuple[int, int]:
    return period // 100, period % 100


def is_valid_pay_period(period: int) -> bool:
    year, month = _split(period)
    return MIN_PERIOD_YEAR <= year <= MAX_PERIOD_YEAR and 1 <= month <= 12


def shift_pay_period(period: int, months: int) -> int:
    year, month = _shift_month(*_split(period), months)
    return year * 100 + month


def pay_period_for(day: date, day_of_month_paid: int) -> int:
    """
    Map a calendar date to the YYYYMM pay period it falls in.

    A start day of 30 or 31 means the last day of the date's month. Start days
    before the 15th name the period after the month it opens in; later start
    days name it after the month it closes in. The two branches below are kept
    exactly as billing-cycle data expects them and are not complements.
    """
    start_day = day_of_month_paid
    if start_day >= LAST_DAY_THRESHOLD:
        start_day = _days_in_month(day.year, day.month)

    year, month = day.year, day.month
    if start_day < MID_MONTH and day.day < start_day:
        year, month = _shift_month(year, month, -1)
    if not (start_day < MID_MONTH or day.day < start_day):
        year, month = _shift_month(year, month, 1)

    return year * 100 + month


def current_pay_period(day_of_month_paid: int, today: date | None = None) -> int:
    return pay_period_for(today or date.today(), day_of_month_paid)


def period_start(period: int, day_of_month_paid: int) -> date:
    year, month = _split(period)
    if day_of_month_paid >= MID_MONTH:
        year, month = _shift_month(year, month, -1)
    last_day = _days_in_month(year, month)
    day = last_day if day_of_month_paid >= LAST_DAY_THRESHOLD else min(day_of_month_paid, last_day)
    return date(year, month, day)


def period_end(period: int, day_of_month_paid: int) -> date:
    return period_start(shift_pay_period(period, 1), day_of_month_paid) - timedelta(days=1)


def days_remaining(period: int, day_of_month_paid: int, today: date | None = None) -> int:
    remaining = (period_end(period, day_of_month_paid) - (today or date.today())).days
    return max(0, remaining)


def format_pay_period(period: int) -> str:
    year, month = _split(period)
    return f"{month_name[month]} {year}"


def pay_period_range(period: int, day_of_month_paid: int) -> str:
    start = period_start(period, day_of_month_paid)
    end = period_end(period, day_of_month_paid)
    return f"{month_abbr[start.month]} {start.day} - {month_abbr[end.month]} {end.day}"


@register_tool
class PayPeriodTool(Tool):
    name = "budget.pay_period"
    description = (
        "Describe a pay period for the customer's day-of-month-paid setting. "
        "Optional `pay_period` (YYYYMM) defaults to the period containing today."
    )

    def run(self, request: ToolRequest) -> ToolResponse:
        aggregate = load_snapshot(request)
        args = request.args if isinstance(request.args, dict) else {}
        day_paid = as_int(args.get("day_of_month_paid")) or aggregate.customer_info.day_of_month_paid
        if not 1 <= day_paid <= 31:
            return self.fail(request, "day_of_month_paid must be an integer from 1 to 31")

        period = as_int(args.get("pay_period")) or current_pay_period(day_paid)
        if not is_valid_pay_period(period):
            return self.fail(request, INVALID_PERIOD_MESSAGE)

        start = period_start(period, day_paid)
        end = period_end(period, day_paid)
        return self.respond(
            request,
            {
                "pay_period": period,
                "label": format_pay_period(period),
                "range": pay_period_range(period, day_paid),
                "start": start.isoformat(),
                "end": end.isoformat(),
                "days_remaining": days_remaining(period, day_paid),
                "day_of_month_paid": day_paid,
            },
        )

    def spec(self) -> ToolSpec:
        return ToolSpec(
            name=self.name,
            description=self.description,
            args_schema={
                "type": "object",
                "properties": {
                    "pay_period": {"type": "integer", "description": "Period as YYYYMM, e.g. 202410."},
                    "day_of_month_paid": {"type": "integer", "minimum": 1, "maximum": 31},
                },
            },
        )
