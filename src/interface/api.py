from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, HTTPException

from domain.schemas import TransactionFilters
from infrastructure.providers.provider import AggregateProviderError
from interface.cli import build_context, run_tool

app = FastAPI(title="vaultview API")


def _call(name: str, args: dict[str, Any], currency: Optional[str] = None) -> dict[str, Any]:
    try:
        response = run_tool(name, args, context=build_context(currency))
    except AggregateProviderError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    if not response.ok:
        raise HTTPException(status_code=400, detail=response.errors)
    return response.result


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/net-worth")
def net_worth(currency: Optional[str] = None) -> dict[str, Any]:
    return _call("accounts.net_worth", {}, currency)


@app.get("/accounts/groups")
def account_groups(currency: Optional[str] = None) -> dict[str, Any]:
    return _call("accounts.groups", {}, currency)


@app.get("/health-score")
def health_score(
    pay_period: Optional[int] = None,
    monthly_income: Optional[str] = None,
    currency: Optional[str] = None,
) -> dict[str, Any]:
    return _call("accounts.health_score", {"pay_period": pay_period, "monthly_income": monthly_income}, currency)


@app.get("/budget/summary")
def budget_summary(pay_period: Optional[int] = None) -> dict[str, Any]:
    return _call("budget.current_summary", {"pay_period": pay_period})


@app.get("/budget/breakdown")
def budget_breakdown(pay_period: Optional[int] = None) -> dict[str, Any]:
    return _call("budget.breakdown", {"pay_period": pay_period})


@app.get("/pay-period")
def pay_period(pay_period: Optional[int] = None) -> dict[str, Any]:
    return _call("budget.pay_period", {"pay_period": pay_period})


@app.post("/transactions/search")
def search_transactions(filters: TransactionFilters, limit: Optional[int] = None) -> dict[str, Any]:
    return _call("transactions.filter", {"filters": filters.model_dump(mode="json"), "limit": limit})


@app.get("/currency/convert")
def convert_currency(
    amount: str,
    from_currency: str,
    to_currency: str,
    as_of_date: Optional[str] = None,
) -> dict[str, Any]:
    return _call(
        "currency.convert",
        {"amount": amount, "from_currency": from_currency, "to_currency": to_currency, "as_of_date": as_of_date},
    )
