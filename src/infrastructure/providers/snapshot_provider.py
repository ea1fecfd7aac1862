from __future__ import annotations

import json
import logging
import os
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from domain.models import Aggregate, ExchangeRate
from domain.schemas import AggregatePayload, ExchangeRatePayload
from infrastructure.providers.provider import AggregateProvider, AggregateProviderError

logger = logging.getLogger(__name__)


def parse_exchange_rate_payload(payload: Any, fetched_at: str | None = None) -> list[ExchangeRate]:
    """
    Flatten a backend exchange-rate response into one row per currency.

    Accepted shapes:
      - {"fx": {"rates": {"USD": "1.0", "ZAR": "18.5"}, "date": "...", "ttsId": "..."}}
      - {"rates": {...}, "date": "...", "ttsId": "..."}
      - a list of already-flat rate rows
    """
    if isinstance(payload, list):
        try:
            return [ExchangeRatePayload.model_validate(row).to_domain() for row in payload]
        except ValidationError as exc:
            raise AggregateProviderError(f"Exchange-rate rows did not match schema: {exc}") from exc

    if not isinstance(payload, dict):
        return []

    body = payload.get("fx") if isinstance(payload.get("fx"), dict) else payload
    rates_map = body.get("rates")
    if not isinstance(rates_map, dict):
        return []

    source_id = str(body.get("ttsId") or "")
    rate_date = str(body.get("date") or date.today().isoformat())
    stamp = fetched_at or datetime.now(timezone.utc).isoformat()

    rows = []
    for currency, raw_rate in rates_map.items():
        if not currency or raw_rate in (None, ""):
            continue
        try:
            row = ExchangeRatePayload(
                id=f"{source_id}_{currency.upper()}_{rate_date}",
                currency=currency,
                rate=raw_rate,
                date=rate_date,
                fetched_at=stamp,
            )
        except ValidationError:
            logger.warning("Skipping unparseable exchange rate currency=%s rate=%r", currency, raw_rate)
            continue
        rows.append(row.to_domain())
    return rows


class SnapshotFileProvider(AggregateProvider):
    """Reads a customer aggregate exported from the backend as camelCase JSON."""

    name = "snapshot"

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path or os.getenv("VAULTVIEW_SNAPSHOT_PATH", "data/aggregate.json"))

    def fetch_exchange_rates(self) -> list[ExchangeRate]:
        payload = self._load()
        if isinstance(payload.get("fx"), dict):
            raw: Any = {"fx": payload["fx"]}
        else:
            raw = payload.get("exchangeRates") or []
        rates = parse_exchange_rate_payload(raw)
        logger.info("Snapshot provider loaded exchange rates count=%d path=%s", len(rates), self._path)
        return rates

    def fetch_aggregate(self, customer_id: str) -> Aggregate:
        payload = {k: v for k, v in self._load().items() if k not in ("fx", "exchangeRates")}
        try:
            aggregate = AggregatePayload.model_validate(payload).to_domain()
        except ValidationError as exc:
            raise AggregateProviderError(f"Snapshot payload did not match Aggregate schema: {exc}") from exc

        if customer_id and aggregate.customer_info.id and aggregate.customer_info.id != customer_id:
            logger.warning(
                "Snapshot customer mismatch requested=%s snapshot=%s",
                customer_id,
                aggregate.customer_info.id,
            )
        logger.info(
            "Snapshot provider loaded aggregate accounts=%d transactions=%d category_totals=%d",
            len(aggregate.accounts),
            len(aggregate.transactions),
            len(aggregate.category_totals),
        )
        return aggregate

    def _load(self) -> dict[str, Any]:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise AggregateProviderError(f"Unable to read snapshot {self._path}: {exc}") from exc
        if not isinstance(data, dict):
            raise AggregateProviderError(f"Expected JSON object in snapshot, got {type(data).__name__}")
        return data
