from pathlib import Path
from typing import Generator

import pytest

from config import config
from domain.direction import WalletDirectionClassifier
from domain.tax_calculator import TaxCalculator
from tests.constants import OWN_WALLET, SECOND_OWN_WALLET
from tests.helpers.static_price_provider import StaticPriceProvider


@pytest.fixture(autouse=True)
def _reset_config_cache(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[None, None, None]:
    # Settings must come from defaults, not from a developer's .env or environment.
    for name in ("PRICE_SOURCE", "COINGECKO_API_KEY", "SUPPORTED_CURRENCIES", "DEFAULT_PRICE", "DEFAULT_CURRENCY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    config.cache_clear()
    yield
    config.cache_clear()


@pytest.fixture(scope="function")
def price_provider() -> StaticPriceProvider:
    return StaticPriceProvider()


@pytest.fixture(scope="function")
def wallet_classifier() -> WalletDirectionClassifier:
    return WalletDirectionClassifier([OWN_WALLET, SECOND_OWN_WALLET])


@pytest.fixture(scope="function")
def calculator(price_provider: StaticPriceProvider, wallet_classifier: WalletDirectionClassifier) -> TaxCalculator:
    return TaxCalculator(price_provider=price_provider, direction_classifier=wallet_classifier)
