from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


DEFAULT_ANCHOR_CURRENCY = "USD"


class MoneySign(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


@dataclass(frozen=True)
class Money:
    amount: Decimal
    currency_code: str
    sign: MoneySign = MoneySign.CREDIT


@dataclass(frozen=True)
class ExchangeRate:
    currency: str
    rate: Decimal
    date: str
    id: str = ""
    fetched_at: str | None = None


@dataclass(frozen=True)
class Account:
    id: str
    name: str
    account_class: str
    currency_code: str
    account_type: str | None = None
    manual_account_type: str | None = None
    goal_name: str | None = None
    have: Money | None = None
    owe: Money | None = None
    deactivated: bool = False
    is_deleted: bool = False
    include_in_nav: bool = True


@dataclass(frozen=True)
class Tag:
    id: str
    name: str = ""


@dataclass(frozen=True)
class Transaction:
    id: str
    account_id: str
    amount: Money
    description: str = ""
    category_id: str | None = None
    spending_group_id: str | None = None
    merchant_id: str | None = None
    transaction_date: str | None = None
    pay_period: int = 0
    is_pending: bool = False
    is_read: bool = True
    is_deleted: bool = False
    tags: tuple[Tag, ...] = ()


@dataclass(frozen=True)
class Category:
    id: str
    description: str
    spending_group_id: str | None = None
    is_deleted: bool = False


@dataclass(frozen=True)
class SpendingGroup:
    id: str
    description: str


@dataclass(frozen=True)
class Merchant:
    id: str
    name: str


@dataclass(frozen=True)
class CategoryTotal:
    category_id: str
    spending_group_id: str
    pay_period: int
    total_amount: Decimal = Decimal("0")
    planned_amount: Decimal | None = None
    average_amount: Decimal | None = None
    is_tracked_for_pay_period: bool = False
    apply_only_to_current_period: bool = False
    alerts_enabled: bool = False
    category_description: str = ""
    spending_group_description: str = ""


@dataclass(frozen=True)
class Goal:
    id: str
    name: str
    target_amount: Decimal = Decimal("0")
    current_amount: Decimal = Decimal("0")
    status: str = "None"


@dataclass(frozen=True)
class CustomerInfo:
    id: str
    day_of_month_paid: int = 1
    default_currency_code: str = DEFAULT_ANCHOR_CURRENCY


@dataclass(frozen=True)
class Aggregate:
    customer_info: CustomerInfo
    accounts: tuple[Account, ...] = ()
    transactions: tuple[Transaction, ...] = ()
    categories: tuple[Category, ...] = ()
    spending_groups: tuple[SpendingGroup, ...] = ()
    category_totals: tuple[CategoryTotal, ...] = ()
    exchange_rates: tuple[ExchangeRate, ...] = ()
    merchants: tuple[Merchant, ...] = ()
    tags: tuple[Tag, ...] = ()
    goals: tuple[Goal, ...] = ()


@dataclass(frozen=True)
class CategoryLine:
    category_id: str
    category_name: str
    actual: Decimal
    target: Decimal | None
    is_tracked: bool


@dataclass(frozen=True)
class GroupSummary:
    spending_group_id: str
    spending_group_name: str
    actual: Decimal
    target: Decimal
    categories: tuple[CategoryLine, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class BudgetSummary:
    total_spent: Decimal
    total_budgeted: Decimal
    remaining: Decimal
    zero_based_remaining: Decimal
    overspend: Decimal
    is_overspend: bool
    percent_used: Decimal
    max_amount: Decimal


@dataclass(frozen=True)
class NetWorth:
    total_assets: Decimal
    total_liabilities: Decimal
    net_worth: Decimal
    currency: str


@dataclass(frozen=True)
class AccountGroup:
    name: str
    sort_order: int
    accounts: tuple[Account, ...]
    total: Decimal


@dataclass(frozen=True)
class HealthScore:
    overall: int
    savings: int
    insurance: int
    investment: int
    debt: int
    spending: int
    recommendations: tuple[str, ...] = ()
