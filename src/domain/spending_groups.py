from __future__ import annotations

TRANSFER = "4d9c747850610817942e45ab"
RECURRING = "4d9c747850610817942e45a6"
DAY_TO_DAY = "4d9c747850610817942e45a8"
EXCEPTIONS = "4d9c747850610817942e45ac"
INCOME = "4d9c747850610817942e45a9"
INVEST_SAVE_REPAY = "5469e52e028d46ffcfcbb7ef"

UNCATEGORIZED_CATEGORY_ID = "00000000-0000-0000-0000-000000000001"

UNKNOWN_SORT_ORDER = 999

SPENDING_GROUP_NAMES: dict[str, str] = {
    TRANSFER: "Transfer",
    RECURRING: "Recurring",
    DAY_TO_DAY: "Day-to-day",
    EXCEPTIONS: "Exceptions",
    INCOME: "Income",
    INVEST_SAVE_REPAY: "Invest-save-repay",
}

# Income and Transfer are left out on purpose; they sort last.
SPENDING_GROUP_SORT_ORDER: dict[str, int] = {
    DAY_TO_DAY: 0,
    RECURRING: 1,
    INVEST_SAVE_REPAY: 2,
    EXCEPTIONS: 3,
}


def is_income_group(spending_group_id: str | None) -> bool:
    return spending_group_id == INCOME


def is_transfer_group(spending_group_id: str | None) -> bool:
    return spending_group_id == TRANSFER


def spending_group_name(spending_group_id: str | None) -> str:
    key = (spending_group_id or "").lower()
    for group_id, name in SPENDING_GROUP_NAMES.items():
        if group_id.lower() == key:
            return name
    return "Other"


def sort_order(spending_group_id: str | None) -> int:
    return SPENDING_GROUP_SORT_ORDER.get(spending_group_id or "", UNKNOWN_SORT_ORDER)
