from __future__ import annotations

import logging
import os
from dataclasses import replace

from domain.models import DEFAULT_ANCHOR_CURRENCY, Aggregate, ExchangeRate
from infrastructure.persistence.rate_cache import ExchangeRateCache
from infrastructure.providers.provider import AggregateProvider, AggregateProviderError
from infrastructure.providers.snapshot_provider import SnapshotFileProvider

logger = logging.getLogger(__name__)


class GetAggregate:
    """
    Loads the customer snapshot the query tools operate on.

    Exchange rates are always fetched before the rest of the aggregate. When
    the rate fetch fails or comes back empty, the last cached table is used.
    The loaded snapshot is kept per customer until `refresh` is requested;
    nothing computed from it is cached here.
    """

    def __init__(
        self,
        provider: AggregateProvider | None = None,
        rate_cache: ExchangeRateCache | None = None,
        anchor_currency: str | None = None,
    ) -> None:
        self._provider = provider or SnapshotFileProvider()
        self._rate_cache = rate_cache or ExchangeRateCache(os.getenv("VAULTVIEW_RATE_CACHE_PATH") or None)
        self.anchor_currency = (anchor_currency or os.getenv("VAULTVIEW_ANCHOR_CURRENCY", DEFAULT_ANCHOR_CURRENCY)).upper()
        self._snapshots: dict[str, Aggregate] = {}

    def set_provider(self, provider: AggregateProvider) -> None:
        self._provider = provider
        self._snapshots.clear()

    def get_aggregate(self, customer_id: str, refresh: bool = False) -> Aggregate:
        if not refresh and customer_id in self._snapshots:
            return self._snapshots[customer_id]

        rates = self.fetch_exchange_rates()
        aggregate = self._provider.fetch_aggregate(customer_id)
        if rates:
            aggregate = replace(aggregate, exchange_rates=tuple(rates))
        self._snapshots[customer_id] = aggregate
        return aggregate

    def fetch_exchange_rates(self) -> list[ExchangeRate]:
        try:
            rates = self._provider.fetch_exchange_rates()
        except AggregateProviderError as exc:
            logger.warning("Exchange-rate fetch failed provider=%s, using cache: %s", self._provider.name, exc)
            rates = []

        if rates:
            self._rate_cache.put(rates)
            return rates

        cached = self._rate_cache.get() or []
        logger.info(
            "Using cached exchange rates count=%d fetched_at=%s",
            len(cached),
            self._rate_cache.fetched_at(),
        )
        return cached


# Singleton instance used across the codebase.
get_aggregate = GetAggregate()
