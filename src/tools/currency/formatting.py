from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MINOR_UNITS_DEFAULT = 2

CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CNY": "¥",
    "AED": "د.إ",
    "SAR": "﷼",
    "ZAR": "R",
    "EGP": "£",
    "KWD": "د.ك",
    "QAR": "﷼",
    "BHD": ".د.ب",
    "OMR": "﷼",
    "JOD": "د.ا",
    "CHF": "CHF",
    "SEK": "kr",
    "NOK": "kr",
    "DKK": "kr",
    "PLN": "zł",
    "CZK": "Kč",
    "HUF": "Ft",
    "RON": "lei",
    "RUB": "₽",
    "TRY": "₺",
    "CAD": "C$",
    "MXN": "$",
    "BRL": "R$",
    "ARS": "$",
    "CLP": "$",
    "COP": "$",
    "AUD": "A$",
    "NZD": "NZ$",
    "INR": "₹",
    "SGD": "S$",
    "HKD": "HK$",
    "KRW": "₩",
    "THB": "฿",
    "MYR": "RM",
    "IDR": "Rp",
    "PHP": "₱",
    "VND": "₫",
    "PKR": "₨",
    "BDT": "৳",
    "BTC": "₿",
    "ETH": "Ξ",
}

_NON_NUMERIC = re.compile(r"[^\d.\-]")


def currency_symbol(currency_code: str) -> str:
    return CURRENCY_SYMBOLS.get(currency_code.upper(), currency_code)


def round_money(amount: Decimal, currency_code: str = "USD") -> Decimal:
    # Every supported currency has two minor units.
    return Decimal(amount).quantize(Decimal(1).scaleb(-MINOR_UNITS_DEFAULT), rounding=ROUND_HALF_UP)


def format_money(amount: Decimal | None, currency_code: str = "USD") -> str:
    if amount is None:
        return "—"
    rounded = round_money(amount, currency_code)
    sign = "-" if rounded < 0 else ""
    return f"{sign}{currency_symbol(currency_code)}{abs(rounded):,}"


def format_money_compact(amount: Decimal, currency_code: str = "USD") -> str:
    if not amount:
        return "0"

    value = Decimal(amount)
    magnitude = abs(value)
    for threshold, suffix in ((Decimal("1e9"), "B"), (Decimal("1e6"), "M"), (Decimal("1e3"), "K")):
        if magnitude >= threshold:
            scaled = value / threshold
            break
    else:
        return format_money(value, currency_code)

    whole = scaled == scaled.to_integral_value()
    if abs(scaled) >= 100 or whole:
        decimals = 0
    elif abs(scaled) >= 10:
        decimals = 1
    else:
        decimals = 2
    return f"{scaled:.{decimals}f}{suffix}"


def parse_money(text: str | None) -> Decimal:
    """Parse user input such as "$1,234.50" or "R 99"; anything unreadable is 0."""
    if not text:
        return Decimal("0")
    cleaned = _NON_NUMERIC.sub("", text)
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return Decimal("0")


def calculate_percentage(value: Decimal, total: Decimal) -> Decimal:
    if not total:
        return Decimal("0")
    return Decimal(value) / Decimal(total) * 100


def format_percentage(value: Decimal, decimals: int = 1) -> str:
    return f"{Decimal(value):.{decimals}f}%"
