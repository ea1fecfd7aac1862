from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from typing import Any

from domain.schemas import ToolContext, ToolRequest, ToolResponse
from tools.registry import registry


def build_context(currency: str | None = None) -> ToolContext:
    return ToolContext(
        customer_id=os.getenv("VAULTVIEW_CUSTOMER_ID", "me"),
        currency=currency or os.getenv("VAULTVIEW_CURRENCY") or None,
    )


def run_tool(name: str, args: dict[str, Any] | None = None, context: ToolContext | None = None) -> ToolResponse:
    context = context or build_context()
    request = ToolRequest(
        request_id=f"req_cli_{datetime.now(timezone.utc).strftime('%Y%m%d%H%M%S')}:{name}",
        tool=name,
        args=args or {},
        context=context,
    )
    return registry.get_tool(name).run(request)


def build_dashboard(search_query: str = "", context: ToolContext | None = None) -> dict[str, Any]:
    context = context or build_context()
    filters: dict[str, Any] = {"search_query": search_query} if search_query else {}
    responses = {
        "pay_period": run_tool("budget.pay_period", context=context),
        "net_worth": run_tool("accounts.net_worth", context=context),
        "account_groups": run_tool("accounts.groups", context=context),
        "health_score": run_tool("accounts.health_score", context=context),
        "budget": run_tool("budget.current_summary", context=context),
        "recent_transactions": run_tool("transactions.filter", {"filters": filters, "limit": 10}, context=context),
    }
    return {
        key: response.result if response.ok else {"errors": response.errors}
        for key, response in responses.items()
    }


def main() -> None:
    query = input("vaultview search > ").strip()
    print(json.dumps(build_dashboard(query), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
