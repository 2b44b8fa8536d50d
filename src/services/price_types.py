from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal


@dataclass(frozen=True)
class PriceKey:
    """Cache key for one historical price: (day, oracle asset id, currency)."""

    day: date
    asset_id: str
    currency: str

    @classmethod
    def of(cls, asset_id: str, day: date, currency: str) -> PriceKey:
        return cls(day=day, asset_id=asset_id.lower(), currency=currency.lower())


@dataclass(frozen=True)
class PriceQuote:
    """Daily unit price of an asset in a currency."""

    day: date
    asset_id: str
    currency: str
    rate: Decimal
    source: str

    @property
    def key(self) -> PriceKey:
        return PriceKey.of(self.asset_id, self.day, self.currency)


__all__ = ["PriceKey", "PriceQuote"]
