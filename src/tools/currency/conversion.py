from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from domain.models import DEFAULT_ANCHOR_CURRENCY, ExchangeRate, Money, MoneySign
from domain.schemas import ToolRequest, ToolResponse
from tools._aggregate_support import anchor_currency_for, load_snapshot, to_jsonable
from tools.base import Tool, ToolSpec
from tools.registry import register_tool

logger = logging.getLogger(__name__)


def _as_of_key(as_of_date: date | str | None) -> str | None:
    if as_of_date is None:
        return None
    if isinstance(as_of_date, date):
        return as_of_date.isoformat()
    return str(as_of_date).strip()[:10] or None


def resolve_rates(
    rates: Iterable[ExchangeRate],
    as_of_date: date | str | None = None,
    anchor_currency: str = DEFAULT_ANCHOR_CURRENCY,
) -> dict[str, Decimal]:
    """
    Pick one rate per currency from a flat rate list.

    With `as_of_date` only entries dated exactly that day are considered;
    otherwise the latest-dated entry per currency wins. All rates are quoted
    against `anchor_currency`, which resolves to 1 when the table omits it.
    """
    target_day = _as_of_key(as_of_date)
    chosen: dict[str, ExchangeRate] = {}
    for rate in rates:
        currency = rate.currency.upper()
        if target_day is not None:
            if rate.date[:10] == target_day and currency not in chosen:
                chosen[currency] = rate
            continue
        current = chosen.get(currency)
        if current is None or rate.date > current.date:
            chosen[currency] = rate

    resolved = {currency: rate.rate for currency, rate in chosen.items() if rate.rate}
    resolved.setdefault(anchor_currency.upper(), Decimal("1"))
    return resolved


def convert(
    amount: Decimal,
    from_currency: str,
    to_currency: str,
    rates: Iterable[ExchangeRate],
    as_of_date: date | str | None = None,
    anchor_currency: str = DEFAULT_ANCHOR_CURRENCY,
) -> Decimal | None:
    if amount == 0 or from_currency.upper() == to_currency.upper():
        return amount

    table = resolve_rates(rates, as_of_date=as_of_date, anchor_currency=anchor_currency)
    from_rate = table.get(from_currency.upper())
    to_rate = table.get(to_currency.upper())
    if from_rate is None or to_rate is None:
        logger.warning(
            "Missing exchange rate from=%s to=%s as_of=%s",
            from_currency,
            to_currency,
            _as_of_key(as_of_date) or "latest",
        )
        return None

    # Same as amount * (to_rate / from_rate), multiplied first so exact ratios stay exact.
    return Decimal(amount) * to_rate / from_rate


def can_convert(
    from_currency: str,
    to_currency: str,
    rates: Iterable[ExchangeRate],
    as_of_date: date | str | None = None,
    anchor_currency: str = DEFAULT_ANCHOR_CURRENCY,
) -> bool:
    if from_currency.upper() == to_currency.upper():
        return True
    table = resolve_rates(rates, as_of_date=as_of_date, anchor_currency=anchor_currency)
    return from_currency.upper() in table and to_currency.upper() in table


def convert_money(
    money: Money,
    to_currency: str,
    rates: Iterable[ExchangeRate],
    as_of_date: date | str | None = None,
    anchor_currency: str = DEFAULT_ANCHOR_CURRENCY,
) -> Money:
    """Return `money` in `to_currency`, or `money` itself when no rate is available."""
    converted = convert(
        money.amount,
        money.currency_code,
        to_currency,
        rates,
        as_of_date=as_of_date,
        anchor_currency=anchor_currency,
    )
    if converted is None:
        return money
    return Money(amount=converted, currency_code=to_currency.upper(), sign=money.sign)


def to_real_number(money: Money) -> Decimal:
    return -money.amount if money.sign == MoneySign.DEBIT else money.amount


def zero_money(currency_code: str, sign: MoneySign = MoneySign.CREDIT) -> Money:
    return Money(amount=Decimal("0"), currency_code=currency_code.upper(), sign=sign)


@register_tool
class ConvertCurrencyTool(Tool):
    name = "currency.convert"
    description = (
        "Convert an amount between two currencies using the snapshot's exchange rates. "
        "Takes `amount`, `from_currency`, `to_currency` and an optional `as_of_date` (YYYY-MM-DD)."
    )

    def run(self, request: ToolRequest) -> ToolResponse:
        args = request.args if isinstance(request.args, dict) else {}
        from_currency = str(args.get("from_currency") or "").strip()
        to_currency = str(args.get("to_currency") or request.context.currency or "").strip()
        if not from_currency or not to_currency:
            return self.fail(request, "from_currency and to_currency are required")
        try:
            amount = Decimal(str(args.get("amount")))
        except (InvalidOperation, ValueError):
            return self.fail(request, "amount must be a number")
        if not amount.is_finite():
            return self.fail(request, "amount must be a finite number")

        aggregate = load_snapshot(request)
        as_of_date = args.get("as_of_date")
        anchor = anchor_currency_for(request)
        converted = convert(
            amount, from_currency, to_currency, aggregate.exchange_rates, as_of_date=as_of_date, anchor_currency=anchor
        )
        return self.respond(
            request,
            {
                "amount": to_jsonable(amount),
                "from_currency": from_currency.upper(),
                "to_currency": to_currency.upper(),
                "as_of_date": as_of_date,
                "converted": to_jsonable(converted),
                "convertible": converted is not None,
            },
        )

    def spec(self) -> ToolSpec:
        schema: dict[str, Any] = {
            "type": "object",
            "properties": {
                "amount": {"type": "number"},
                "from_currency": {"type": "string"},
                "to_currency": {"type": "string"},
                "as_of_date": {"type": "string", "description": "Exact rate date, YYYY-MM-DD."},
            },
            "required": ["amount", "from_currency", "to_currency"],
        }
        return ToolSpec(name=self.name, description=self.description, args_schema=schema)
