from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from domain.models import DEFAULT_ANCHOR_CURRENCY, Account, AccountGroup, ExchangeRate
from domain.schemas import ToolRequest, ToolResponse
from tools._aggregate_support import anchor_currency_for, display_currency_for, load_snapshot, to_jsonable
from tools.base import Tool, ToolSpec
from tools.currency.conversion import convert_money, to_real_number
from tools.currency.formatting import format_money
from tools.registry import register_tool

OTHER_GROUP = "Something else"

# Display order of the account groups.
GROUP_ORDER = (
    "Bank",
    "Credit",
    "Investments",
    "Crypto",
    "Loans",
    "Home loan",
    "Vehicle loans",
    "Home",
    "Real estate",
    "Rewards",
    "Vehicles",
    OTHER_GROUP,
)

_CLASS_GROUPS = {
    "Bank": "Bank",
    "Credit Card": "Credit",
    "CreditCard": "Credit",
    "Reward": "Rewards",
    "Rewards": "Rewards",
    "Loan": "Loans",
    "Mortgage": "Loans",
    "Investment": "Investments",
    "UnitTrust": "Investments",
    "OMInvestment": "Investments",
    "Wealth": "Investments",
    "WealthProduct": "Investments",
    "WealthProducts": "Investments",
    "Crypto": "Crypto",
    "Wallet": OTHER_GROUP,
}

_MANUAL_TYPE_GROUPS = {
    "Bank": "Bank",
    "Savings": "Bank",
    "Cash": "Bank",
    "Deposits": "Bank",
    "CreditCard": "Credit",
    "StoreCard": "Credit",
    "Investment": "Investments",
    "WealthProducts": "Investments",
    "Crypto": "Crypto",
    "Loan": "Loans",
    "VehicleLoan": "Loans",
    "HomeLoan": "Loans",
    "Home": "Home",
    "RealEstate": "Real estate",
    "Vehicle": "Vehicles",
    "Rewards": "Rewards",
    "Reward": "Rewards",
}

_INVESTMENT_CLASSES = {"investment", "unittrust", "ominvestment", "wealth", "wealthproduct"}


def _is_manual(account: Account) -> bool:
    return account.account_class == "Manual"


def is_investment_account(account: Account) -> bool:
    return (
        account.account_class.lower() in _INVESTMENT_CLASSES
        or account.manual_account_type in ("WealthProducts", "Investment")
    )


def is_crypto_account(account: Account) -> bool:
    if account.account_class == "Crypto":
        return True
    return _is_manual(account) and "Crypto" in (account.manual_account_type, account.account_type)


def is_goal_account(account: Account) -> bool:
    return account.goal_name is not None or "goal" in account.account_class.lower()


def group_name_for_class(account_class: str) -> str | None:
    if account_class in _CLASS_GROUPS:
        return _CLASS_GROUPS[account_class]
    if account_class == "Manual":
        return None
    lowered = account_class.lower()
    if any(marker in lowered for marker in ("goal", "invest", "wealth")):
        return "Investments"
    return None


def group_name_for(account: Account) -> str:
    """Name of the display group one account belongs to."""
    if is_investment_account(account):
        return "Investments"
    if account.account_class == "Rewards" or (
        _is_manual(account) and account.manual_account_type in ("Reward", "Rewards")
    ):
        return "Rewards"
    if is_crypto_account(account):
        return "Crypto"
    if _is_manual(account) and account.manual_account_type:
        return _MANUAL_TYPE_GROUPS.get(account.manual_account_type, OTHER_GROUP)
    return group_name_for_class(account.account_class) or OTHER_GROUP


def group_accounts(
    accounts: Iterable[Account],
    target_currency: str,
    rates: Iterable[ExchangeRate],
    anchor_currency: str = DEFAULT_ANCHOR_CURRENCY,
) -> list[AccountGroup]:
    """
    Bucket accounts into display groups with a converted balance total each.

    Deleted accounts are dropped. Deactivated accounts stay only when they back
    a savings goal. Empty groups are omitted and the rest follow GROUP_ORDER.
    """
    rates = tuple(rates)
    members: dict[str, list[Account]] = {name: [] for name in GROUP_ORDER}
    totals: dict[str, Decimal] = {name: Decimal("0") for name in GROUP_ORDER}

    for account in accounts:
        if account.is_deleted or (account.deactivated and not is_goal_account(account)):
            continue
        name = group_name_for(account)
        members[name].append(account)
        if account.have is not None:
            converted = convert_money(account.have, target_currency, rates, anchor_currency=anchor_currency)
            totals[name] += to_real_number(converted)

    return [
        AccountGroup(name=name, sort_order=order, accounts=tuple(members[name]), total=totals[name])
        for order, name in enumerate(GROUP_ORDER)
        if members[name]
    ]


@register_tool
class AccountGroupsTool(Tool):
    name = "accounts.groups"
    description = "Accounts bucketed into display groups (Bank, Credit, Investments, ...) with a total per group."

    def run(self, request: ToolRequest) -> ToolResponse:
        aggregate = load_snapshot(request)
        currency = display_currency_for(request, aggregate)
        groups = group_accounts(aggregate.accounts, currency, aggregate.exchange_rates, anchor_currency_for(request))
        return self.respond(
            request,
            {
                "currency": currency,
                "groups": [
                    {
                        "name": group.name,
                        "sort_order": group.sort_order,
                        "total": to_jsonable(group.total),
                        "total_display": format_money(group.total, currency),
                        "accounts": [
                            {"id": a.id, "name": a.name, "account_class": a.account_class}
                            for a in group.accounts
                        ],
                    }
                    for group in groups
                ],
            },
        )

    def spec(self) -> ToolSpec:
        return ToolSpec(
            name=self.name,
            description=self.description,
            args_schema={
                "type": "object",
                "properties": {"currency": {"type": "string", "description": "Currency for the group totals."}},
            },
        )
