from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Callable, Iterable, Sequence

from config import config
from domain.pricing import PriceProvider, normalize_currency

from .asset_ids import AssetIdResolver
from .coingecko_source import CoinGeckoSource
from .price_sources import CurrentPriceSource, PriceSnapshotSource, PriceSourceError, ReferencePriceSource
from .price_store import InMemoryPriceStore, JsonlPriceStore, PriceStore
from .price_types import PriceKey, PriceQuote
from .rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class PriceService(PriceProvider):
    """Historical price oracle: cache first, then the source, then the nearest cached day.

    Lookups that cannot be priced at all resolve to `default_price` instead of
    failing. Only an unsupported currency is an error.
    """

    def __init__(
        self,
        source: PriceSnapshotSource,
        store: PriceStore | None = None,
        *,
        resolver: AssetIdResolver | None = None,
        rate_limiter: RateLimiter | None = None,
        supported_currencies: Iterable[str] | None = None,
        default_price: Decimal | None = None,
        retry_attempts: int | None = None,
        retry_delay_seconds: float | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        settings = config()
        self.source = source
        self.store = store if store is not None else InMemoryPriceStore()
        self.resolver = resolver or AssetIdResolver(
            native_asset=settings.native_asset, native_coin_id=settings.native_coin_id
        )
        self.rate_limiter = rate_limiter
        self.supported_currencies = tuple(supported_currencies or settings.supported_currencies)
        self.default_price = default_price if default_price is not None else settings.default_price
        self.retry_attempts = retry_attempts if retry_attempts is not None else settings.price_retry_attempts
        self.retry_delay_seconds = (
            retry_delay_seconds if retry_delay_seconds is not None else settings.price_retry_delay_seconds
        )
        self._sleep = sleep or time.sleep

    def price(self, asset_id: str, day: date, currency: str) -> Decimal:
        quote_currency = normalize_currency(currency, self.supported_currencies)
        oracle_id = self.resolver.resolve(asset_id)
        if oracle_id is None:
            logger.warning("No price id for asset %s, using default price %s", asset_id, self.default_price)
            return self.default_price

        key = PriceKey.of(oracle_id, day, quote_currency)
        cached = self.store.read(key)
        if cached is not None:
            logger.debug("Price cache hit for %s %s on %s", oracle_id, quote_currency, day)
            return cached.rate

        try:
            quote = self._fetch_with_retry(key)
        except PriceSourceError as exc:
            return self._fallback(key, exc)

        self.store.write(quote)
        return quote.rate

    def prefetch(
        self,
        lookups: Iterable[tuple[str, date]],
        currency: str,
        *,
        max_workers: int = 4,
    ) -> None:
        """Warm the cache for many (asset, day) pairs concurrently."""
        quote_currency = normalize_currency(currency, self.supported_currencies)
        distinct = list(dict.fromkeys(lookups))
        if not distinct:
            return

        logger.info("Prefetching %d prices in %s", len(distinct), quote_currency.upper())
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(self.price, asset_id, day, quote_currency) for asset_id, day in distinct]
            for future in futures:
                future.result()

    def current_prices(self, asset_ids: Sequence[str], currency: str) -> dict[str, Decimal]:
        """Spot prices keyed by the requested asset ids; unknown assets get the default price."""
        quote_currency = normalize_currency(currency, self.supported_currencies)
        oracle_ids = {asset_id: self.resolver.resolve(asset_id) for asset_id in asset_ids}
        fetched: dict[str, Decimal] = {}
        if isinstance(self.source, CurrentPriceSource):
            requested = sorted({oracle_id for oracle_id in oracle_ids.values() if oracle_id})
            if requested:
                self._throttle()
                try:
                    fetched = self.source.fetch_current(requested, quote_currency)
                except PriceSourceError as exc:
                    logger.warning("Current price lookup failed: %s", exc)

        return {
            asset_id: fetched.get(oracle_id, self.default_price) if oracle_id else self.default_price
            for asset_id, oracle_id in oracle_ids.items()
        }

    def _fetch_with_retry(self, key: PriceKey) -> PriceQuote:
        attempt = 0
        while True:
            self._throttle()
            try:
                return self.source.fetch_snapshot(key.asset_id, key.currency, key.day)
            except PriceSourceError as exc:
                if not exc.transient or attempt >= self.retry_attempts:
                    raise
                attempt += 1
                logger.info(
                    "Retrying price for %s %s on %s (attempt %d/%d): %s",
                    key.asset_id,
                    key.currency,
                    key.day,
                    attempt,
                    self.retry_attempts,
                    exc,
                )
                self._sleep(self.retry_delay_seconds)

    def _fallback(self, key: PriceKey, error: PriceSourceError) -> Decimal:
        nearest = self.store.nearest(key.asset_id, key.currency, key.day)
        if nearest is not None:
            logger.warning(
                "Price for %s %s on %s unavailable (%s), using cached price from %s",
                key.asset_id,
                key.currency,
                key.day,
                error,
                nearest.day,
            )
            return nearest.rate

        logger.warning(
            "Price for %s %s on %s unavailable (%s), using default price %s",
            key.asset_id,
            key.currency,
            key.day,
            error,
            self.default_price,
        )
        return self.default_price

    def _throttle(self) -> None:
        if self.rate_limiter is not None:
            self.rate_limiter.acquire()


def build_price_service(*, cache_dir: Path | None = None) -> PriceService:
    settings = config()
    store: PriceStore
    if cache_dir is not None:
        cache_dir.mkdir(parents=True, exist_ok=True)
        store = JsonlPriceStore(root_dir=cache_dir)
    else:
        store = InMemoryPriceStore()

    source: PriceSnapshotSource
    rate_limiter: RateLimiter | None = None
    if settings.price_source == "coingecko":
        source = CoinGeckoSource()
        rate_limiter = RateLimiter(
            max_requests=settings.price_rate_limit_requests,
            window_seconds=settings.price_rate_limit_window_seconds,
            min_interval_seconds=settings.price_min_interval_seconds,
        )
    else:
        source = ReferencePriceSource()
    return PriceService(source=source, store=store, rate_limiter=rate_limiter)


__all__ = ["PriceService", "build_price_service"]
