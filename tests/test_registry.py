from __future__ import annotations

import unittest
from domain.schemas import ToolRequest, ToolResponse
from tools.registry import ToolRegistry


class _FakeTool:
    name = "fake_tool"

    def run(self, request: ToolRequest) -> ToolResponse:
        return ToolResponse(
            request_id=request.request_id,
            tool=self.name,
            result={"echo": request.args},
            context=request.context,
        )


class ToolRegistryTests(unittest.TestCase):
    def test_tool_request_schema_shape(self) -> None:
        payload = {
            "request_id": "req_01HZYQ3",
            "tool": "transactions.filter",
            "args": {
                "filters": {
                    "accounts": ["acc_checking"],
                    "from_date": "2024-10-01",
                    "quick_filters": {"pending": True},
                },
                "limit": 10,
            },
            "context": {
                "customer_id": "cust_1",
                "currency": "ZAR",
            },
        }
        request = ToolRequest.model_validate(payload)
        self.assertEqual(request.tool, "transactions.filter")
        self.assertEqual(request.args["filters"]["from_date"], "2024-10-01")
        self.assertEqual(request.context.customer_id, "cust_1")
        self.assertIsNone(request.context.anchor_currency)

    def test_register_and_get_tool(self) -> None:
        registry = ToolRegistry()
        tool = _FakeTool()
        registry.register(tool)

        result = registry.get_tool("fake_tool")
        self.assertIs(result, tool)
        self.assertEqual(registry.names(), ["fake_tool"])

    def test_get_missing_tool_raises_key_error(self) -> None:
        registry = ToolRegistry()

        with self.assertRaises(KeyError):
            registry.get_tool("missing")

    def test_builtin_tools_self_register_on_import(self) -> None:
        from tools.registry import registry as global_registry

        import tools  # noqa: F401
        specs = global_registry.list_specs()
        names = {spec.name for spec in specs}

        self.assertEqual(
            names,
            {
                "accounts.groups",
                "accounts.health_score",
                "accounts.net_worth",
                "budget.breakdown",
                "budget.current_summary",
                "budget.pay_period",
                "currency.convert",
                "transactions.filter",
            },
        )
        self.assertTrue(all(spec.args_schema.get("type") == "object" for spec in specs))


if __name__ == "__main__":
    unittest.main()
