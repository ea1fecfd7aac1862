from __future__ import annotations

from abc import ABC, abstractmethod

from domain.models import Aggregate, ExchangeRate


class AggregateProviderError(RuntimeError):
    pass


class AggregateProvider(ABC):
    """Source of customer snapshots and the exchange-rate table."""

    name: str = "provider"

    @abstractmethod
    def fetch_exchange_rates(self) -> list[ExchangeRate]:
        raise NotImplementedError

    @abstractmethod
    def fetch_aggregate(self, customer_id: str) -> Aggregate:
        raise NotImplementedError
