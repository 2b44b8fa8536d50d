from __future__ import annotations

from typing import Mapping

COINGECKO_IDS: dict[str, str] = {
    "ETH": "ethereum",
    "WETH": "weth",
    "BTC": "bitcoin",
    "WBTC": "wrapped-bitcoin",
    "USDT": "tether",
    "USDC": "usd-coin",
    "DAI": "dai",
    "LINK": "chainlink",
    "UNI": "uniswap",
    "AAVE": "aave",
    "CRV": "curve-dao-token",
    "SNX": "synthetix-network-token",
    "COMP": "compound-governance-token",
    "YFI": "yearn-finance",
    "MKR": "maker",
    "SUSHI": "sushi",
    "BNB": "bnb",
    "ADA": "cardano",
    "XRP": "xrp",
    "SOL": "solana",
    "DOT": "polkadot",
    "DOGE": "dogecoin",
    "MATIC": "polygon",
    "LTC": "litecoin",
    "AVAX": "avalanche-2",
}

# Ticker symbols are at most this long; anything longer is taken to be an oracle id already.
MAX_SYMBOL_LENGTH = 5


class AssetIdResolver:
    """Map ticker symbols to price-oracle ids."""

    def __init__(
        self,
        *,
        native_asset: str | None = None,
        native_coin_id: str | None = None,
        overrides: Mapping[str, str] | None = None,
    ) -> None:
        self._ids = dict(COINGECKO_IDS)
        if overrides:
            self._ids.update({symbol.upper(): coin_id for symbol, coin_id in overrides.items()})
        if native_asset and native_coin_id:
            self._ids[native_asset.upper()] = native_coin_id

    def resolve(self, symbol: str) -> str | None:
        if not symbol:
            return None
        known = self._ids.get(symbol.upper())
        if known is not None:
            return known
        if len(symbol) > MAX_SYMBOL_LENGTH:
            return symbol.lower()
        return None


__all__ = ["COINGECKO_IDS", "AssetIdResolver"]
