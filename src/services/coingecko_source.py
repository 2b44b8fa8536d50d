from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Sequence

import requests
from requests import Response
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from config import config

from .price_sources import CurrentPriceSource, PriceSnapshotSource, PriceSourceError, PriceUnavailableError
from .price_types import PriceQuote

logger = logging.getLogger(__name__)

# API docs: https://docs.coingecko.com/reference/coins-id-history


class CoinGeckoAPIError(PriceSourceError):
    def __init__(self, message: str, *, status_code: int | None = None, payload: Any | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload

    @property
    def transient(self) -> bool:  # type: ignore[override]
        return self.status_code is None or self.status_code == 429 or self.status_code >= 500


class CoinGeckoClient:
    def __init__(
        self,
        base_url: str = "https://api.coingecko.com/api/v3",
        timeout: float | None = None,
        session: requests.Session | None = None,
        retry_attempts: int = 3,
        retry_backoff_seconds: float = 1,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else config().http_timeout_seconds
        self._session = session or requests.Session()

        retry = Retry(
            total=retry_attempts,
            backoff_factor=retry_backoff_seconds,
            status_forcelist={429},
            allowed_methods={"GET"},
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)

    def get_coin_history(self, *, coin_id: str, target_date: date) -> dict[str, Decimal]:
        """Return the `current_price` table (currency → price) CoinGecko recorded for `target_date`."""
        if not coin_id:
            raise ValueError("coin_id must be provided")

        params = {"date": target_date.strftime("%d-%m-%Y"), "localization": "false"}
        payload = self._request("GET", f"/coins/{coin_id}/history", params=params)
        market_data = payload.get("market_data")
        if not isinstance(market_data, dict):
            return {}
        current_price = market_data.get("current_price")
        if not isinstance(current_price, dict):
            return {}
        return {
            str(currency).lower(): self._to_decimal(value)
            for currency, value in current_price.items()
            if value is not None
        }

    def get_simple_prices(self, *, coin_ids: Sequence[str], currency: str) -> dict[str, Decimal]:
        if not coin_ids:
            return {}

        params = {"ids": ",".join(coin_ids), "vs_currencies": currency.lower()}
        payload = self._request("GET", "/simple/price", params=params)
        prices: dict[str, Decimal] = {}
        for coin_id, quotes in payload.items():
            if not isinstance(quotes, dict):
                continue
            value = quotes.get(currency.lower())
            if value is not None:
                prices[str(coin_id).lower()] = self._to_decimal(value)
        return prices

    def _request(self, method: str, path: str, *, params: dict[str, Any] | None = None) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json"}
        api_key = config().coingecko_api_key
        if api_key:
            headers["x-cg-demo-api-key"] = api_key
        try:
            response = self._session.request(method, url, params=params, timeout=self.timeout, headers=headers)
            response.raise_for_status()
        except requests.HTTPError as exc:
            resp = exc.response
            message, payload_err = self._extract_error(resp)
            status_code = getattr(resp, "status_code", None)
            raise CoinGeckoAPIError(message, status_code=status_code, payload=payload_err) from exc
        except requests.RequestException as exc:
            status_code = getattr(getattr(exc, "response", None), "status_code", None)
            raise CoinGeckoAPIError("CoinGecko API request failed", status_code=status_code) from exc

        try:
            payload: Any = response.json()
        except ValueError as exc:
            raise CoinGeckoAPIError("CoinGecko API returned invalid JSON", payload=response.text) from exc

        if not isinstance(payload, dict):
            raise CoinGeckoAPIError("CoinGecko API returned unexpected payload type", payload=payload)

        if payload.get("error"):
            raise CoinGeckoAPIError(str(payload["error"]), status_code=response.status_code, payload=payload)

        return payload

    @staticmethod
    def _to_decimal(value: Any) -> Decimal:
        return Decimal(str(value))

    @staticmethod
    def _extract_error(response: Response | None) -> tuple[str, Any | None]:
        message = "CoinGecko API request failed"
        payload: Any | None = None
        if response is None:
            return message, payload

        try:
            payload = response.json()
            if isinstance(payload, dict):
                status = payload.get("status")
                if isinstance(status, dict) and status.get("error_message"):
                    message = status["error_message"]
                elif payload.get("error"):
                    message = str(payload["error"])
        except ValueError:
            payload = response.text
        return message, payload


class CoinGeckoSource(PriceSnapshotSource, CurrentPriceSource):
    def __init__(
        self,
        *,
        client: CoinGeckoClient | None = None,
        source_name: str = "coingecko-history",
    ) -> None:
        self.client = client or CoinGeckoClient()
        self.source_name = source_name

    def fetch_snapshot(self, asset_id: str, currency: str, day: date) -> PriceQuote:
        coin_id = asset_id.lower()
        quote_currency = currency.lower()
        prices = self.client.get_coin_history(coin_id=coin_id, target_date=day)
        rate = prices.get(quote_currency)
        if rate is None:
            msg = f"CoinGecko has no {quote_currency.upper()} price for {coin_id} on {day.isoformat()}"
            raise PriceUnavailableError(msg, asset_id=coin_id, currency=quote_currency, day=day)

        return PriceQuote(day=day, asset_id=coin_id, currency=quote_currency, rate=rate, source=self.source_name)

    def fetch_current(self, asset_ids: Sequence[str], currency: str) -> dict[str, Decimal]:
        coin_ids = [asset_id.lower() for asset_id in asset_ids]
        prices = self.client.get_simple_prices(coin_ids=coin_ids, currency=currency)
        missing = sorted(set(coin_ids) - set(prices))
        if missing:
            logger.warning("CoinGecko returned no current %s price for %s", currency.upper(), ", ".join(missing))
        return prices


__all__ = ["CoinGeckoAPIError", "CoinGeckoClient", "CoinGeckoSource"]
