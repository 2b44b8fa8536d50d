from __future__ import annotations

import hashlib
import random
from datetime import date
from decimal import Decimal
from typing import Mapping, Protocol, Sequence, runtime_checkable

from .price_types import PriceQuote


class PriceSourceError(RuntimeError):
    """Raised by price sources. `transient` errors are worth retrying."""

    transient = False


class PriceUnavailableError(PriceSourceError):
    def __init__(self, message: str, *, asset_id: str, currency: str, day: date) -> None:
        super().__init__(message)
        self.asset_id = asset_id
        self.currency = currency
        self.day = day


class PriceSnapshotSource(Protocol):
    source_name: str

    def fetch_snapshot(self, asset_id: str, currency: str, day: date) -> PriceQuote: ...


@runtime_checkable
class CurrentPriceSource(Protocol):
    def fetch_current(self, asset_ids: Sequence[str], currency: str) -> dict[str, Decimal]: ...


# Offline reference prices keyed by oracle id, used when no API access is configured.
REFERENCE_PRICES: dict[str, dict[str, Decimal]] = {
    "ethereum": {"eur": Decimal("2500"), "usd": Decimal("2700")},
    "bitcoin": {"eur": Decimal("48000"), "usd": Decimal("52000")},
    "tether": {"eur": Decimal("0.92"), "usd": Decimal("1.00")},
    "usd-coin": {"eur": Decimal("0.92"), "usd": Decimal("1.00")},
    "dai": {"eur": Decimal("0.92"), "usd": Decimal("1.00")},
    "bnb": {"eur": Decimal("350"), "usd": Decimal("380")},
    "xrp": {"eur": Decimal("0.45"), "usd": Decimal("0.49")},
    "cardano": {"eur": Decimal("0.35"), "usd": Decimal("0.38")},
    "solana": {"eur": Decimal("95"), "usd": Decimal("103")},
    "polygon": {"eur": Decimal("0.50"), "usd": Decimal("0.54")},
    "polkadot": {"eur": Decimal("5.80"), "usd": Decimal("6.30")},
    "litecoin": {"eur": Decimal("65"), "usd": Decimal("70")},
    "weth": {"eur": Decimal("2500"), "usd": Decimal("2700")},
    "wrapped-bitcoin": {"eur": Decimal("48000"), "usd": Decimal("52000")},
    "chainlink": {"eur": Decimal("13"), "usd": Decimal("14")},
    "uniswap": {"eur": Decimal("8"), "usd": Decimal("8.7")},
    "aave": {"eur": Decimal("75"), "usd": Decimal("82")},
    "curve-dao-token": {"eur": Decimal("0.42"), "usd": Decimal("0.46")},
    "synthetix-network-token": {"eur": Decimal("2.8"), "usd": Decimal("3.0")},
    "compound-governance-token": {"eur": Decimal("41"), "usd": Decimal("45")},
    "yearn-finance": {"eur": Decimal("7200"), "usd": Decimal("7800")},
    "maker": {"eur": Decimal("1350"), "usd": Decimal("1460")},
    "sushi": {"eur": Decimal("0.95"), "usd": Decimal("1.03")},
}


class ReferencePriceSource(PriceSnapshotSource):
    """Deterministic offline prices: a reference price moved by up to ±`variation` per day."""

    def __init__(
        self,
        *,
        prices: Mapping[str, Mapping[str, Decimal]] | None = None,
        variation: Decimal = Decimal("0.10"),
        seed: int = 0,
        source_name: str = "reference-prices",
    ) -> None:
        if not Decimal(0) <= variation < Decimal(1):
            msg = "variation must be within [0, 1)"
            raise ValueError(msg)

        self._prices = {
            asset_id.lower(): {currency.lower(): rate for currency, rate in rates.items()}
            for asset_id, rates in (prices if prices is not None else REFERENCE_PRICES).items()
        }
        self.variation = variation
        self.seed = seed
        self.source_name = source_name

    def fetch_snapshot(self, asset_id: str, currency: str, day: date) -> PriceQuote:
        asset = asset_id.lower()
        quote_currency = currency.lower()
        reference = self._prices.get(asset, {}).get(quote_currency)
        if reference is None:
            msg = f"No reference price for {asset} in {quote_currency.upper()}"
            raise PriceUnavailableError(msg, asset_id=asset, currency=quote_currency, day=day)

        return PriceQuote(
            day=day,
            asset_id=asset,
            currency=quote_currency,
            rate=reference * (Decimal(1) + self._daily_offset(asset, quote_currency, day)),
            source=self.source_name,
        )

    def fetch_current(self, asset_ids: Sequence[str], currency: str) -> dict[str, Decimal]:
        quote_currency = currency.lower()
        current: dict[str, Decimal] = {}
        for asset_id in asset_ids:
            reference = self._prices.get(asset_id.lower(), {}).get(quote_currency)
            if reference is not None:
                current[asset_id.lower()] = reference
        return current

    def _daily_offset(self, asset_id: str, currency: str, day: date) -> Decimal:
        if self.variation == 0:
            return Decimal(0)
        digest_input = "|".join([asset_id, currency, day.isoformat()])
        digest = hashlib.sha256(digest_input.encode("utf-8")).digest()
        rng = random.Random(self.seed ^ int.from_bytes(digest, "big", signed=False))
        basis_points = int(self.variation * 10_000)
        return Decimal(rng.randint(-basis_points, basis_points)) / Decimal(10_000)


__all__ = [
    "REFERENCE_PRICES",
    "CurrentPriceSource",
    "PriceSnapshotSource",
    "PriceSourceError",
    "PriceUnavailableError",
    "ReferencePriceSource",
]
