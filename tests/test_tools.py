from __future__ import annotations

import unittest
from dataclasses import replace
from unittest.mock import patch

from _builders import sample_aggregate, txn
from domain.schemas import ToolContext, ToolRequest
from infrastructure.providers.provider import AggregateProviderError
from tools.registry import registry

import tools  # noqa: F401


def _request(tool: str, args: dict | None = None, currency: str | None = None) -> ToolRequest:
    return ToolRequest(
        request_id=f"req_test:{tool}",
        tool=tool,
        args=args or {},
        context=ToolContext(customer_id="cust_1", currency=currency),
    )


class SnapshotToolTests(unittest.TestCase):
    def setUp(self) -> None:
        self.aggregate = sample_aggregate()
        patcher = patch("tools._aggregate_support.get_aggregate.get_aggregate", return_value=self.aggregate)
        self.load = patcher.start()
        self.addCleanup(patcher.stop)

    def _run(self, tool: str, args: dict | None = None, currency: str | None = None):
        return registry.get_tool(tool).run(_request(tool, args, currency))

    def test_net_worth_tool(self) -> None:
        response = self._run("accounts.net_worth")
        self.assertTrue(response.ok)
        self.assertEqual(response.result["net_worth"], 1400.0)
        self.assertEqual(response.result["currency"], "USD")
        self.assertEqual(response.result["account_count"], 2)
        self.assertEqual(response.result["display"], {"net_worth": "$1,400.00", "net_worth_compact": "1.40K"})
        self.assertEqual(response.result["by_class"]["liabilities"][0]["account_class"], "CreditCard")
        self.load.assert_called_once_with("cust_1")

    def test_net_worth_tool_uses_requested_currency(self) -> None:
        response = self._run("accounts.net_worth", currency="ZAR")
        self.assertEqual(response.result["currency"], "ZAR")
        self.assertAlmostEqual(response.result["net_worth"], 25900.0)

    def test_convert_tool(self) -> None:
        response = self._run("currency.convert", {"amount": "100", "from_currency": "usd", "to_currency": "ZAR"})
        self.assertTrue(response.ok)
        self.assertEqual(response.result["converted"], 1850.0)
        self.assertTrue(response.result["convertible"])

    def test_convert_tool_reports_missing_rate(self) -> None:
        response = self._run("currency.convert", {"amount": 50, "from_currency": "USD", "to_currency": "XYZ"})
        self.assertTrue(response.ok)
        self.assertIsNone(response.result["converted"])
        self.assertFalse(response.result["convertible"])

    def test_convert_tool_validates_args(self) -> None:
        self.assertFalse(self._run("currency.convert", {"amount": 5, "to_currency": "ZAR"}).ok)
        response = self._run("currency.convert", {"amount": "lots", "from_currency": "USD", "to_currency": "ZAR"})
        self.assertFalse(response.ok)
        self.assertEqual(response.errors, ["amount must be a number"])

    def test_convert_tool_rejects_non_finite_amounts(self) -> None:
        for amount in ("sNaN", "NaN", "Infinity", "-inf"):
            response = self._run("currency.convert", {"amount": amount, "from_currency": "USD", "to_currency": "ZAR"})
            self.assertFalse(response.ok, amount)
            self.assertEqual(response.errors, ["amount must be a finite number"])

    def test_context_without_anchor_uses_loader_anchor(self) -> None:
        args = {"amount": "100", "from_currency": "EUR", "to_currency": "USD"}
        self.assertFalse(self._run("currency.convert", args).result["convertible"])
        with patch("tools._aggregate_support.get_aggregate.anchor_currency", "EUR"):
            response = self._run("currency.convert", args)
        self.assertTrue(response.result["convertible"])
        self.assertEqual(response.result["converted"], 100.0)

    def test_account_groups_tool(self) -> None:
        response = self._run("accounts.groups")
        self.assertTrue(response.ok)
        groups = response.result["groups"]
        self.assertEqual([g["name"] for g in groups], ["Bank", "Credit"])
        self.assertEqual([g["total"] for g in groups], [1500.0, 100.0])
        self.assertEqual(groups[1]["accounts"][0]["id"], "acc_card")
        self.assertEqual(groups[0]["total_display"], "$1,500.00")

    def test_health_score_tool(self) -> None:
        response = self._run("accounts.health_score", {"pay_period": 202410})
        self.assertTrue(response.ok)
        result = response.result
        self.assertEqual(result["monthly_income"], 4000.0)
        self.assertEqual(
            (result["savings"], result["insurance"], result["investment"], result["debt"], result["spending"]),
            (4, 10, 0, 20, 4),
        )
        self.assertEqual(result["overall"], 38)
        self.assertEqual(result["level"], "Needs Work")
        self.assertEqual(len(result["recommendations"]), 4)

    def test_health_score_tool_validates_income(self) -> None:
        for income in ("lots", "-1", "NaN"):
            response = self._run("accounts.health_score", {"pay_period": 202410, "monthly_income": income})
            self.assertFalse(response.ok, income)
        response = self._run("accounts.health_score", {"pay_period": 202410, "monthly_income": "0"})
        self.assertTrue(response.ok)
        self.assertEqual(response.result["debt"], 0)

    def test_pay_period_tool(self) -> None:
        response = self._run("budget.pay_period", {"pay_period": 202410})
        self.assertTrue(response.ok)
        self.assertEqual(response.result["label"], "October 2024")
        self.assertEqual(response.result["start"], "2024-09-25")
        self.assertEqual(response.result["end"], "2024-10-24")
        self.assertEqual(response.result["range"], "Sep 25 - Oct 24")

    def test_pay_period_tool_rejects_bad_input(self) -> None:
        self.assertFalse(self._run("budget.pay_period", {"pay_period": 202413}).ok)
        self.assertFalse(self._run("budget.pay_period", {"day_of_month_paid": 40}).ok)

    def test_period_tools_reject_periods_without_a_year(self) -> None:
        for tool in ("budget.pay_period", "budget.current_summary", "budget.breakdown", "accounts.health_score"):
            for period in (12, 202400, 1000001):
                response = self._run(tool, {"pay_period": period})
                self.assertFalse(response.ok, (tool, period))
                self.assertTrue(response.errors[0].startswith("pay_period must be in YYYYMM form"))

    def test_budget_summary_tool(self) -> None:
        response = self._run("budget.current_summary", {"pay_period": 202410})
        self.assertEqual(response.result["total_spent"], 2300.0)
        self.assertEqual(response.result["total_budgeted"], 2200.0)
        self.assertTrue(response.result["is_overspend"])
        self.assertEqual(response.result["alert_level"], "over-budget")
        self.assertEqual(response.result["percent_used_label"], "100.0%")
        self.assertEqual(response.result["pay_period"], 202410)

    def test_budget_breakdown_tool(self) -> None:
        response = self._run("budget.breakdown", {"pay_period": 202410})
        names = [group["spending_group_name"] for group in response.result["groups"]]
        self.assertEqual(names, ["Day-to-day", "Recurring", "Income"])
        self.assertEqual(response.result["groups"][0]["alert_level"], "over-budget")
        self.assertEqual(response.result["top_categories"][0]["category_id"], "cat_salary")

    def test_filter_tool_applies_current_budget_and_limit(self) -> None:
        response = self._run(
            "transactions.filter",
            {"filters": {"quick_filters": {"current_budget": True}}, "current_pay_period": 202410, "limit": 2},
        )
        self.assertTrue(response.ok)
        self.assertEqual([t["id"] for t in response.result["transactions"]], ["t_pending", "t_groceries"])
        self.assertEqual(response.result["active_filter_count"], 1)
        self.assertEqual(response.result["totals"]["income"], 4000.0)
        self.assertAlmostEqual(response.result["totals"]["expenses"], 1872.09)

    def test_filter_tool_hides_deleted_transactions(self) -> None:
        deleted = txn("t_deleted", "99", description="Removed", transaction_date="2024-10-09", is_deleted=True)
        self.load.return_value = replace(self.aggregate, transactions=self.aggregate.transactions + (deleted,))
        response = self._run("transactions.filter", {"filters": {"search_query": "removed"}})
        self.assertEqual(response.result["transaction_count"], 0)

    def test_filter_tool_rejects_invalid_filters(self) -> None:
        response = self._run("transactions.filter", {"filters": {"min_amount": 10, "max_amount": 1}})
        self.assertFalse(response.ok)
        self.assertTrue(response.errors[0].startswith("Invalid transaction filters"))
        self.load.assert_not_called()


class ApiTests(unittest.TestCase):
    def setUp(self) -> None:
        from fastapi.testclient import TestClient

        from interface.api import app

        self.client = TestClient(app)
        patcher = patch("tools._aggregate_support.get_aggregate.get_aggregate", return_value=sample_aggregate())
        self.load = patcher.start()
        self.addCleanup(patcher.stop)

    def test_health(self) -> None:
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})

    def test_search_transactions(self) -> None:
        response = self.client.post("/transactions/search", json={"search_query": "rent"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual([t["id"] for t in response.json()["transactions"]], ["t_rent"])

    def test_invalid_filters_are_rejected(self) -> None:
        response = self.client.post("/transactions/search", json={"from_date": "2024-10-05", "to_date": "2024-10-01"})
        self.assertEqual(response.status_code, 422)

    def test_bad_tool_input_is_a_400(self) -> None:
        response = self.client.get("/budget/summary", params={"pay_period": 202410})
        self.assertEqual(response.status_code, 200)
        response = self.client.get("/pay-period", params={"pay_period": 202413})
        self.assertEqual(response.status_code, 400)

    def test_out_of_range_input_is_a_400(self) -> None:
        response = self.client.get(
            "/currency/convert", params={"amount": "sNaN", "from_currency": "USD", "to_currency": "ZAR"}
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.client.get("/pay-period", params={"pay_period": 12}).status_code, 400)
        self.assertEqual(self.client.get("/budget/summary", params={"pay_period": 12}).status_code, 400)
        self.assertEqual(self.client.get("/budget/breakdown", params={"pay_period": 12}).status_code, 400)

    def test_account_groups_and_health_score(self) -> None:
        groups = self.client.get("/accounts/groups")
        self.assertEqual(groups.status_code, 200)
        self.assertEqual([g["name"] for g in groups.json()["groups"]], ["Bank", "Credit"])
        score = self.client.get("/health-score", params={"pay_period": 202410})
        self.assertEqual(score.status_code, 200)
        self.assertEqual(score.json()["overall"], 38)

    def test_unavailable_snapshot_is_a_503(self) -> None:
        self.load.side_effect = AggregateProviderError("snapshot missing")
        self.assertEqual(self.client.get("/net-worth").status_code, 503)


if __name__ == "__main__":
    unittest.main()
