from __future__ import annotations

from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from domain.models import Aggregate
from infrastructure.get_aggregate import get_aggregate


def load_snapshot(request: Any) -> Aggregate:
    context = getattr(request, "context", None)
    customer_id = getattr(context, "customer_id", None) or "me"
    return get_aggregate.get_aggregate(customer_id)


def anchor_currency_for(request: Any) -> str:
    context = getattr(request, "context", None)
    return str(getattr(context, "anchor_currency", None) or get_aggregate.anchor_currency).upper()


def display_currency_for(request: Any, aggregate: Aggregate) -> str:
    args = request.args if isinstance(getattr(request, "args", None), dict) else {}
    context = getattr(request, "context", None)
    currency = args.get("currency") or getattr(context, "currency", None) or aggregate.customer_info.default_currency_code
    return str(currency).upper()


def as_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def to_jsonable(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return to_jsonable(asdict(value))
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value
