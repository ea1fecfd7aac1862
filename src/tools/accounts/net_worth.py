from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from typing import Any, Iterable

from domain.models import DEFAULT_ANCHOR_CURRENCY, Account, ExchangeRate, Money, NetWorth
from domain.schemas import ToolRequest, ToolResponse
from tools._aggregate_support import anchor_currency_for, display_currency_for, load_snapshot, to_jsonable
from tools.base import Tool, ToolSpec
from tools.currency.conversion import convert_money, to_real_number
from tools.currency.formatting import format_money, format_money_compact
from tools.registry import register_tool

ZERO = Decimal("0")


def is_eligible(account: Account) -> bool:
    return not account.deactivated and not account.is_deleted and account.include_in_nav


def is_credit_account(account: Account) -> bool:
    return "credit" in account.account_class.lower() or "credit" in (account.account_type or "").lower()


def _signed(money: Money | None, target_currency: str, rates: tuple[ExchangeRate, ...], anchor: str) -> Decimal | None:
    if money is None:
        return None
    return to_real_number(convert_money(money, target_currency, rates, anchor_currency=anchor))


def account_legs(
    account: Account,
    target_currency: str,
    rates: Iterable[ExchangeRate],
    anchor_currency: str = DEFAULT_ANCHOR_CURRENCY,
) -> tuple[Decimal, Decimal]:
    """(asset, liability) contribution of one account, both as magnitudes."""
    rates = tuple(rates)
    have = _signed(account.have, target_currency, rates, anchor_currency)
    owe = _signed(account.owe, target_currency, rates, anchor_currency)
    assets = ZERO
    liabilities = ZERO

    if is_credit_account(account):
        # A positive balance on a card is money owed; a negative one is a credit in the customer's favour.
        if have is not None and have > 0:
            liabilities += have
        elif have is not None and have < 0:
            assets += abs(have)
        if owe is not None:
            liabilities += abs(owe)
        return assets, liabilities

    if have is not None and have > 0:
        assets += have
    elif have is not None and have < 0:
        liabilities += abs(have)
    if owe is not None and owe < 0:
        liabilities += abs(owe)
    elif owe is not None and owe > 0:
        assets += owe
    return assets, liabilities


def net_worth(
    accounts: Iterable[Account],
    target_currency: str,
    rates: Iterable[ExchangeRate],
    anchor_currency: str = DEFAULT_ANCHOR_CURRENCY,
) -> NetWorth:
    rates = tuple(rates)
    total_assets = ZERO
    total_liabilities = ZERO
    for account in accounts:
        if not is_eligible(account):
            continue
        assets, liabilities = account_legs(account, target_currency, rates, anchor_currency)
        total_assets += assets
        total_liabilities += liabilities

    return NetWorth(
        total_assets=total_assets,
        total_liabilities=total_liabilities,
        net_worth=total_assets - total_liabilities,
        currency=target_currency.upper(),
    )


def net_worth_by_class(
    accounts: Iterable[Account],
    target_currency: str,
    rates: Iterable[ExchangeRate],
    anchor_currency: str = DEFAULT_ANCHOR_CURRENCY,
) -> dict[str, list[dict[str, Any]]]:
    rates = tuple(rates)
    assets: dict[str, Decimal] = defaultdict(Decimal)
    liabilities: dict[str, Decimal] = defaultdict(Decimal)
    for account in accounts:
        if not is_eligible(account):
            continue
        asset, liability = account_legs(account, target_currency, rates, anchor_currency)
        if asset:
            assets[account.account_class] += asset
        if liability:
            liabilities[account.account_class] += liability

    def _shares(buckets: dict[str, Decimal]) -> list[dict[str, Any]]:
        total = sum(buckets.values(), ZERO)
        rows = [
            {"account_class": name, "value": value, "percentage": value / total * 100 if total else ZERO}
            for name, value in buckets.items()
        ]
        rows.sort(key=lambda row: row["value"], reverse=True)
        return rows

    return {"assets": _shares(assets), "liabilities": _shares(liabilities)}


def net_worth_trend(current: Decimal, previous: Decimal) -> dict[str, Any]:
    change = current - previous
    change_percentage = change / abs(previous) * 100 if previous else ZERO
    trending = "up" if change > 0 else "down" if change < 0 else "flat"
    return {"change": change, "change_percentage": change_percentage, "trending": trending}


@register_tool
class NetWorthTool(Tool):
    name = "accounts.net_worth"
    description = "Total assets, liabilities and net worth across active accounts in one currency."

    def run(self, request: ToolRequest) -> ToolResponse:
        aggregate = load_snapshot(request)
        currency = display_currency_for(request, aggregate)
        anchor = anchor_currency_for(request)
        summary = net_worth(aggregate.accounts, currency, aggregate.exchange_rates, anchor)
        result = to_jsonable(summary)
        result["by_class"] = to_jsonable(
            net_worth_by_class(aggregate.accounts, currency, aggregate.exchange_rates, anchor)
        )
        result["account_count"] = sum(1 for a in aggregate.accounts if is_eligible(a))
        result["display"] = {
            "net_worth": format_money(summary.net_worth, currency),
            "net_worth_compact": format_money_compact(summary.net_worth, currency),
        }
        return self.respond(request, result)

    def spec(self) -> ToolSpec:
        return ToolSpec(
            name=self.name,
            description=self.description,
            args_schema={
                "type": "object",
                "properties": {"currency": {"type": "string", "description": "Target currency code."}},
            },
        )
