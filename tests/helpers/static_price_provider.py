from __future__ import annotations

from datetime import date
from decimal import Decimal

from domain.pricing import PriceProvider, normalize_currency


class StaticPriceProvider(PriceProvider):
    """Fixed prices per (asset, day); records every lookup."""

    def __init__(
        self,
        prices: dict[tuple[str, date], Decimal | str] | None = None,
        *,
        default: Decimal | str = "0",
        supported_currencies: tuple[str, ...] = ("eur", "usd"),
    ) -> None:
        self._prices = {key: Decimal(value) for key, value in (prices or {}).items()}
        self._default = Decimal(default)
        self._supported = supported_currencies
        self.calls: list[tuple[str, date, str]] = []

    def set(self, asset_id: str, day: date, price: Decimal | str) -> None:
        self._prices[(asset_id, day)] = Decimal(price)

    def price(self, asset_id: str, day: date, currency: str) -> Decimal:
        normalize_currency(currency, self._supported)
        self.calls.append((asset_id, day, currency))
        return self._prices.get((asset_id, day), self._default)
