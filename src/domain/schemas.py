from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from domain.models import (
    DEFAULT_ANCHOR_CURRENCY,
    Account,
    Aggregate,
    Category,
    CategoryTotal,
    CustomerInfo,
    ExchangeRate,
    Goal,
    Merchant,
    Money,
    MoneySign,
    SpendingGroup,
    Tag,
    Transaction,
)


def _coerce_date(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date) or not isinstance(value, str):
        return value

    text = value.strip()
    if not text:
        return None

    # Canonical format first.
    for fmt in ("%Y-%m-%d", "%Y/%m/%d", "%m/%d/%Y", "%m-%d-%Y"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return value


class _Payload(BaseModel):
    """Backend payloads arrive camelCase; unknown keys are dropped."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# ---- backend payloads ----

class MoneyPayload(_Payload):
    amount: Decimal = Decimal("0")
    currency_code: str = Field(
        default=DEFAULT_ANCHOR_CURRENCY,
        validation_alias=AliasChoices("currencyCode", "currency", "currency_code"),
    )
    debit_or_credit: MoneySign = Field(
        default=MoneySign.CREDIT,
        validation_alias=AliasChoices("debitOrCredit", "sign", "debit_or_credit"),
    )

    def to_domain(self) -> Money:
        # Negative magnitudes from the backend flip the sign so the amount stays unsigned.
        sign = self.debit_or_credit
        if self.amount < 0:
            sign = MoneySign.CREDIT if sign == MoneySign.DEBIT else MoneySign.DEBIT
        return Money(amount=abs(self.amount), currency_code=self.currency_code.upper(), sign=sign)


class ExchangeRatePayload(_Payload):
    currency: str
    rate: Decimal
    date: str
    id: str = ""
    fetched_at: Optional[str] = None

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("date", mode="before")
    @classmethod
    def iso_date(cls, value: Any) -> Any:
        coerced = _coerce_date(value)
        return coerced.isoformat() if isinstance(coerced, date) else value

    def to_domain(self) -> ExchangeRate:
        return ExchangeRate(
            currency=self.currency,
            rate=self.rate,
            date=self.date,
            id=self.id,
            fetched_at=self.fetched_at,
        )


class AccountPayload(_Payload):
    id: str
    name: str = ""
    account_class: str = "Manual"
    account_type: Optional[str] = None
    manual_account_type: Optional[str] = None
    goal_name: Optional[str] = None
    currency_code: str = DEFAULT_ANCHOR_CURRENCY
    have: Optional[MoneyPayload] = None
    owe: Optional[MoneyPayload] = None
    deactivated: bool = False
    is_deleted: bool = False
    include_in_nav: bool = True

    def to_domain(self) -> Account:
        return Account(
            id=self.id,
            name=self.name,
            account_class=self.account_class,
            account_type=self.account_type,
            manual_account_type=self.manual_account_type,
            goal_name=self.goal_name,
            currency_code=self.currency_code.upper(),
            have=self.have.to_domain() if self.have else None,
            owe=self.owe.to_domain() if self.owe else None,
            deactivated=self.deactivated,
            is_deleted=self.is_deleted,
            include_in_nav=self.include_in_nav,
        )


class TagPayload(_Payload):
    id: str
    name: str = ""

    def to_domain(self) -> Tag:
        return Tag(id=self.id, name=self.name)


class TransactionPayload(_Payload):
    id: str
    account_id: str
    amount: MoneyPayload
    description: str = ""
    category_id: Optional[str] = None
    spending_group_id: Optional[str] = None
    merchant_id: Optional[str] = None
    transaction_date: Optional[str] = None
    pay_period: int = 0
    is_pending: bool = False
    is_read: bool = True
    is_deleted: bool = False
    tags: List[TagPayload] = Field(default_factory=list)

    def to_domain(self) -> Transaction:
        return Transaction(
            id=self.id,
            account_id=self.account_id,
            amount=self.amount.to_domain(),
            description=self.description,
            category_id=self.category_id,
            spending_group_id=self.spending_group_id,
            merchant_id=self.merchant_id,
            transaction_date=self.transaction_date,
            pay_period=self.pay_period,
            is_pending=self.is_pending,
            is_read=self.is_read,
            is_deleted=self.is_deleted,
            tags=tuple(tag.to_domain() for tag in self.tags),
        )


class CategoryPayload(_Payload):
    id: str
    description: str = ""
    spending_group_id: Optional[str] = None
    is_deleted: bool = False

    def to_domain(self) -> Category:
        return Category(
            id=self.id,
            description=self.description,
            spending_group_id=self.spending_group_id,
            is_deleted=self.is_deleted,
        )


class SpendingGroupPayload(_Payload):
    id: str
    description: str = ""

    def to_domain(self) -> SpendingGroup:
        return SpendingGroup(id=self.id, description=self.description)


class MerchantPayload(_Payload):
    id: str
    name: str = ""

    def to_domain(self) -> Merchant:
        return Merchant(id=self.id, name=self.name)


class CategoryTotalPayload(_Payload):
    category_id: str
    spending_group_id: str = ""
    pay_period: int
    total_amount: Decimal = Decimal("0")
    planned_amount: Optional[Decimal] = None
    average_amount: Optional[Decimal] = None
    is_tracked_for_pay_period: bool = False
    apply_only_to_current_period: bool = False
    alerts_enabled: bool = False
    category_description: str = ""
    spending_group_description: str = ""

    def to_domain(self) -> CategoryTotal:
        return CategoryTotal(**self.model_dump(by_alias=False))


class GoalPayload(_Payload):
    id: str
    name: str = ""
    target_amount: Decimal = Decimal("0")
    current_amount: Decimal = Decimal("0")
    status: str = "None"

    def to_domain(self) -> Goal:
        return Goal(**self.model_dump(by_alias=False))


class CustomerInfoPayload(_Payload):
    id: str = ""
    day_of_month_paid: int = Field(default=1, ge=1, le=31)
    default_currency_code: str = DEFAULT_ANCHOR_CURRENCY

    @field_validator("day_of_month_paid", mode="before")
    @classmethod
    def default_missing_day(cls, value: Any) -> Any:
        return 1 if value in (None, "", 0) else value

    def to_domain(self) -> CustomerInfo:
        return CustomerInfo(
            id=self.id,
            day_of_month_paid=self.day_of_month_paid,
            default_currency_code=self.default_currency_code.upper(),
        )


class AggregatePayload(_Payload):
    customer_info: CustomerInfoPayload = Field(default_factory=CustomerInfoPayload)
    accounts: List[AccountPayload] = Field(default_factory=list)
    transactions: List[TransactionPayload] = Field(default_factory=list)
    categories: List[CategoryPayload] = Field(default_factory=list)
    spending_groups: List[SpendingGroupPayload] = Field(default_factory=list)
    category_totals: List[CategoryTotalPayload] = Field(default_factory=list)
    exchange_rates: List[ExchangeRatePayload] = Field(default_factory=list)
    merchants: List[MerchantPayload] = Field(default_factory=list)
    tags: List[TagPayload] = Field(default_factory=list)
    goals: List[GoalPayload] = Field(default_factory=list)

    def to_domain(self) -> Aggregate:
        return Aggregate(
            customer_info=self.customer_info.to_domain(),
            accounts=tuple(a.to_domain() for a in self.accounts),
            transactions=tuple(t.to_domain() for t in self.transactions),
            categories=tuple(c.to_domain() for c in self.categories),
            spending_groups=tuple(g.to_domain() for g in self.spending_groups),
            category_totals=tuple(ct.to_domain() for ct in self.category_totals),
            exchange_rates=tuple(r.to_domain() for r in self.exchange_rates),
            merchants=tuple(m.to_domain() for m in self.merchants),
            tags=tuple(t.to_domain() for t in self.tags),
            goals=tuple(g.to_domain() for g in self.goals),
        )


# ---- transaction filters ----

class QuickFilters(BaseModel):
    model_config = ConfigDict(extra="forbid")

    current_budget: bool = False
    pending: bool = False
    unseen: bool = False
    uncategorised: bool = False


class TransactionFilters(BaseModel):
    """
    Criteria for the transaction filter pipeline.

    Every field is optional; an unset field leaves its stage as a no-op.
    Bounds are inclusive: dates compare by calendar day, amounts by magnitude.
    """

    search_query: Optional[str] = None
    accounts: List[str] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    spending_groups: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    quick_filters: QuickFilters = Field(default_factory=QuickFilters)

    @field_validator("from_date", "to_date", mode="before")
    @classmethod
    def coerce_date(cls, value: Any) -> Any:
        return _coerce_date(value)

    @model_validator(mode="after")
    def validate_ranges(self) -> "TransactionFilters":
        if self.min_amount is not None and self.max_amount is not None and self.min_amount > self.max_amount:
            raise ValueError("min_amount must be <= max_amount")
        if self.from_date is not None and self.to_date is not None and self.from_date > self.to_date:
            raise ValueError("from_date must be <= to_date")
        return self


# ---- tool envelope ----

class ToolContext(BaseModel):
    customer_id: str
    currency: Optional[str] = None
    anchor_currency: Optional[str] = None


class ToolRequest(BaseModel):
    request_id: str
    tool: str
    args: Dict[str, Any] = Field(default_factory=dict)
    context: ToolContext


class ToolResponse(BaseModel):
    request_id: str
    tool: str
    ok: bool = True
    result: Dict[str, Any] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list)
    context: ToolContext
