from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable, Protocol


class UnsupportedCurrencyError(ValueError):
    def __init__(self, currency: str, *, supported: Iterable[str] = ()) -> None:
        self.currency = currency
        self.supported = tuple(supported)
        message = f"Unsupported currency {currency!r}"
        if self.supported:
            message += f" (supported: {', '.join(self.supported)})"
        super().__init__(message)


class PriceProvider(Protocol):
    """Lookup interface for historical asset→currency unit prices."""

    def price(self, asset_id: str, day: date, currency: str) -> Decimal: ...


def normalize_currency(currency: str, supported: Iterable[str]) -> str:
    supported_codes = tuple(code.lower() for code in supported)
    normalized = currency.strip().lower()
    if normalized not in supported_codes:
        raise UnsupportedCurrencyError(currency, supported=supported_codes)
    return normalized
