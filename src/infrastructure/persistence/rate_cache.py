from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from domain.models import ExchangeRate
from domain.schemas import ExchangeRatePayload

logger = logging.getLogger(__name__)

RATES_KEY = "EXCHANGE_RATES"
FETCHED_AT_KEY = "EXCHANGE_RATES_FETCHED_AT"


class ExchangeRateCache:
    """Last good exchange-rate table, kept in memory or in a JSON file when `path` is set."""

    def __init__(self, path: str | Path | None = None):
        self._path = Path(path) if path else None
        self._store: dict[str, Any] = {}
        if self._path is not None and self._path.exists():
            self._store = self._read_file()

    def put(self, rates: list[ExchangeRate], fetched_at: datetime | None = None) -> None:
        stamp = (fetched_at or datetime.now(timezone.utc)).isoformat()
        self._store[RATES_KEY] = [
            {
                "id": r.id,
                "currency": r.currency,
                "rate": str(r.rate),
                "date": r.date,
                "fetchedAt": r.fetched_at,
            }
            for r in rates
        ]
        self._store[FETCHED_AT_KEY] = stamp
        if self._path is not None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(self._store, indent=2), encoding="utf-8")

    def get(self) -> list[ExchangeRate] | None:
        rows = self._store.get(RATES_KEY)
        if not isinstance(rows, list):
            return None
        try:
            return [ExchangeRatePayload.model_validate(row).to_domain() for row in rows]
        except ValidationError as exc:
            logger.warning("Discarding unreadable exchange-rate cache: %s", exc)
            return None

    def fetched_at(self) -> str | None:
        value = self._store.get(FETCHED_AT_KEY)
        return value if isinstance(value, str) else None

    def _read_file(self) -> dict[str, Any]:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Exchange-rate cache file unreadable path=%s: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}
