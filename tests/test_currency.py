from __future__ import annotations

import unittest
from decimal import Decimal

from _builders import money, rates
from domain.models import ExchangeRate, Money, MoneySign
from tools.currency.conversion import (
    can_convert,
    convert,
    convert_money,
    resolve_rates,
    to_real_number,
    zero_money,
)
from tools.currency.formatting import (
    calculate_percentage,
    currency_symbol,
    format_money,
    format_money_compact,
    format_percentage,
    parse_money,
    round_money,
)


class ConvertTests(unittest.TestCase):
    def setUp(self) -> None:
        self.rates = rates(USD="1.0", ZAR="18.5", AED="3.67")

    def test_anchor_to_other_currency(self) -> None:
        self.assertEqual(convert(Decimal("100"), "USD", "ZAR", self.rates), Decimal("1850.0"))

    def test_cross_rate_between_two_non_anchor_currencies(self) -> None:
        result = convert(Decimal("100"), "ZAR", "AED", self.rates)
        self.assertAlmostEqual(float(result), 19.8378, places=4)

    def test_same_currency_is_identity_even_without_rates(self) -> None:
        self.assertEqual(convert(Decimal("42.5"), "XYZ", "xyz", ()), Decimal("42.5"))
        self.assertEqual(convert(Decimal("42.5"), "ZAR", "ZAR", self.rates), Decimal("42.5"))

    def test_zero_is_absorbing_without_rates(self) -> None:
        self.assertEqual(convert(Decimal("0"), "ABC", "XYZ", ()), Decimal("0"))

    def test_missing_rate_returns_none(self) -> None:
        self.assertIsNone(convert(Decimal("50"), "USD", "XYZ", self.rates))
        self.assertIsNone(convert(Decimal("50"), "XYZ", "USD", self.rates))

    def test_round_trip_returns_original_amount(self) -> None:
        there = convert(Decimal("123.45"), "ZAR", "AED", self.rates)
        back = convert(there, "AED", "ZAR", self.rates)
        self.assertAlmostEqual(float(back), 123.45, places=9)

    def test_currency_codes_are_case_insensitive(self) -> None:
        self.assertEqual(convert(Decimal("2"), "usd", "zar", self.rates), Decimal("37.0"))

    def test_can_convert(self) -> None:
        self.assertTrue(can_convert("ZAR", "AED", self.rates))
        self.assertTrue(can_convert("XYZ", "XYZ", self.rates))
        self.assertFalse(can_convert("USD", "XYZ", self.rates))


class ResolveRatesTests(unittest.TestCase):
    def setUp(self) -> None:
        self.rates = (
            ExchangeRate(currency="ZAR", rate=Decimal("18.0"), date="2024-09-30"),
            ExchangeRate(currency="ZAR", rate=Decimal("18.5"), date="2024-10-01"),
            ExchangeRate(currency="EUR", rate=Decimal("0.9"), date="2024-09-30"),
            ExchangeRate(currency="EUR", rate=Decimal("0.92"), date="2024-10-01"),
        )

    def test_latest_rate_per_currency(self) -> None:
        table = resolve_rates(self.rates)
        self.assertEqual(table["ZAR"], Decimal("18.5"))
        self.assertEqual(table["EUR"], Decimal("0.92"))

    def test_latest_rate_ignores_list_order(self) -> None:
        table = resolve_rates(tuple(reversed(self.rates)))
        self.assertEqual(table["ZAR"], Decimal("18.5"))

    def test_historical_rates_match_exact_date(self) -> None:
        table = resolve_rates(self.rates, as_of_date="2024-09-30")
        self.assertEqual(table["ZAR"], Decimal("18.0"))
        self.assertEqual(convert(Decimal("90"), "EUR", "ZAR", self.rates, as_of_date="2024-09-30"), Decimal("1800"))

    def test_historical_date_without_rates_cannot_convert(self) -> None:
        self.assertIsNone(convert(Decimal("10"), "EUR", "ZAR", self.rates, as_of_date="2020-01-01"))

    def test_anchor_currency_is_explicit(self) -> None:
        self.assertEqual(resolve_rates(self.rates)["USD"], Decimal("1"))
        self.assertNotIn("USD", resolve_rates(self.rates, anchor_currency="EUR"))
        self.assertEqual(resolve_rates(self.rates, anchor_currency="GBP")["GBP"], Decimal("1"))


class ConvertMoneyTests(unittest.TestCase):
    def test_missing_rate_returns_original_money(self) -> None:
        original = Money(amount=Decimal("50"), currency_code="USD", sign=MoneySign.CREDIT)
        result = convert_money(original, "XYZ", rates(USD="1.0"))
        self.assertIs(result, original)

    def test_converted_money_keeps_sign(self) -> None:
        result = convert_money(money("10", "USD", MoneySign.DEBIT), "ZAR", rates(ZAR="18.5"))
        self.assertEqual(result, Money(amount=Decimal("185.0"), currency_code="ZAR", sign=MoneySign.DEBIT))

    def test_to_real_number(self) -> None:
        self.assertEqual(to_real_number(money("12.5", sign=MoneySign.DEBIT)), Decimal("-12.5"))
        self.assertEqual(to_real_number(money("12.5", sign=MoneySign.CREDIT)), Decimal("12.5"))

    def test_zero_money(self) -> None:
        self.assertEqual(zero_money("aed"), Money(amount=Decimal("0"), currency_code="AED", sign=MoneySign.CREDIT))


class FormattingTests(unittest.TestCase):
    def test_round_money_half_up_to_cents(self) -> None:
        self.assertEqual(round_money(Decimal("19.8375")), Decimal("19.84"))
        self.assertEqual(round_money(Decimal("2.005")), Decimal("2.01"))

    def test_format_money(self) -> None:
        self.assertEqual(format_money(Decimal("1234.5"), "USD"), "$1,234.50")
        self.assertEqual(format_money(Decimal("-99.999"), "ZAR"), "-R100.00")
        self.assertEqual(format_money(None, "USD"), "—")

    def test_format_money_compact(self) -> None:
        self.assertEqual(format_money_compact(Decimal("1200"), "USD"), "1.20K")
        self.assertEqual(format_money_compact(Decimal("3500000"), "USD"), "3.50M")
        self.assertEqual(format_money_compact(Decimal("2000000000"), "USD"), "2B")
        self.assertEqual(format_money_compact(Decimal("15500"), "USD"), "15.5K")
        self.assertEqual(format_money_compact(Decimal("999"), "USD"), "$999.00")
        self.assertEqual(format_money_compact(Decimal("0"), "USD"), "0")

    def test_parse_money_strips_symbols_and_separators(self) -> None:
        self.assertEqual(parse_money("$1,234.50"), Decimal("1234.50"))
        self.assertEqual(parse_money("R -20"), Decimal("-20"))
        self.assertEqual(parse_money("abc"), Decimal("0"))
        self.assertEqual(parse_money(""), Decimal("0"))

    def test_currency_symbol_falls_back_to_code(self) -> None:
        self.assertEqual(currency_symbol("gbp"), "£")
        self.assertEqual(currency_symbol("XYZ"), "XYZ")

    def test_percentages(self) -> None:
        self.assertEqual(calculate_percentage(Decimal("25"), Decimal("0")), Decimal("0"))
        self.assertEqual(calculate_percentage(Decimal("25"), Decimal("200")), Decimal("12.5"))
        self.assertEqual(format_percentage(Decimal("12.345")), "12.3%")


if __name__ == "__main__":
    unittest.main()
