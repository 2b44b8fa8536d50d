from __future__ import annotations

from datetime import date
from decimal import Decimal
from unittest.mock import Mock

import pytest
import requests

from services.coingecko_source import CoinGeckoAPIError, CoinGeckoClient, CoinGeckoSource
from services.price_sources import PriceUnavailableError


def _mock_response(payload: object, status_code: int = 200) -> Mock:
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    response.text = "payload"
    response.raise_for_status.return_value = None
    return response


def _history_payload(**prices: float) -> dict:
    return {"id": "ethereum", "market_data": {"current_price": prices}}


def test_history_request_uses_coingecko_date_format() -> None:
    session = Mock()
    session.request.return_value = _mock_response(_history_payload(eur=1234.56, usd=1300))

    client = CoinGeckoClient(session=session)
    prices = client.get_coin_history(coin_id="ethereum", target_date=date(2024, 3, 7))

    assert prices == {"eur": Decimal("1234.56"), "usd": Decimal("1300")}
    session.request.assert_called_once()
    args, kwargs = session.request.call_args
    assert args == ("GET", "https://api.coingecko.com/api/v3/coins/ethereum/history")
    assert kwargs["params"] == {"date": "07-03-2024", "localization": "false"}
    assert kwargs["timeout"] == 10.0
    assert "x-cg-demo-api-key" not in kwargs["headers"]


def test_api_key_is_sent_when_configured(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COINGECKO_API_KEY", "demo-key")
    session = Mock()
    session.request.return_value = _mock_response(_history_payload(eur=1))

    CoinGeckoClient(session=session).get_coin_history(coin_id="ethereum", target_date=date(2024, 1, 1))

    assert session.request.call_args.kwargs["headers"]["x-cg-demo-api-key"] == "demo-key"


def test_history_without_market_data_is_empty() -> None:
    session = Mock()
    session.request.return_value = _mock_response({"id": "some-token"})

    client = CoinGeckoClient(session=session)

    assert client.get_coin_history(coin_id="some-token", target_date=date(2015, 1, 1)) == {}


def test_http_errors_are_wrapped_with_status() -> None:
    session = Mock()
    response = _mock_response({"status": {"error_code": 429, "error_message": "Rate limited"}}, status_code=429)
    response.raise_for_status.side_effect = requests.HTTPError(response=response)
    session.request.return_value = response

    client = CoinGeckoClient(session=session)

    with pytest.raises(CoinGeckoAPIError) as excinfo:
        client.get_coin_history(coin_id="ethereum", target_date=date(2024, 1, 1))
    assert excinfo.value.status_code == 429
    assert str(excinfo.value) == "Rate limited"
    assert excinfo.value.transient


def test_not_found_is_not_transient() -> None:
    session = Mock()
    response = _mock_response({"error": "coin not found"}, status_code=404)
    response.raise_for_status.side_effect = requests.HTTPError(response=response)
    session.request.return_value = response

    with pytest.raises(CoinGeckoAPIError) as excinfo:
        CoinGeckoClient(session=session).get_coin_history(coin_id="nope", target_date=date(2024, 1, 1))
    assert excinfo.value.status_code == 404
    assert not excinfo.value.transient


def test_connection_errors_are_transient() -> None:
    session = Mock()
    session.request.side_effect = requests.ConnectionError("boom")

    with pytest.raises(CoinGeckoAPIError) as excinfo:
        CoinGeckoClient(session=session).get_coin_history(coin_id="ethereum", target_date=date(2024, 1, 1))
    assert excinfo.value.status_code is None
    assert excinfo.value.transient


def test_invalid_json_is_rejected() -> None:
    session = Mock()
    response = _mock_response(None)
    response.json.side_effect = ValueError("not json")
    session.request.return_value = response

    with pytest.raises(CoinGeckoAPIError):
        CoinGeckoClient(session=session).get_coin_history(coin_id="ethereum", target_date=date(2024, 1, 1))


def test_error_payload_is_rejected() -> None:
    session = Mock()
    session.request.return_value = _mock_response({"error": "invalid vs_currency"})

    with pytest.raises(CoinGeckoAPIError):
        CoinGeckoClient(session=session).get_simple_prices(coin_ids=["ethereum"], currency="xyz")


def test_simple_prices() -> None:
    session = Mock()
    session.request.return_value = _mock_response({"ethereum": {"eur": 2500.1}, "bitcoin": {"usd": 1}})

    prices = CoinGeckoClient(session=session).get_simple_prices(coin_ids=["ethereum", "bitcoin"], currency="EUR")

    assert prices == {"ethereum": Decimal("2500.1")}
    assert session.request.call_args.kwargs["params"] == {"ids": "ethereum,bitcoin", "vs_currencies": "eur"}


def test_source_builds_quote_from_history() -> None:
    client = Mock()
    client.get_coin_history.return_value = {"eur": Decimal("1800"), "usd": Decimal("1950")}

    quote = CoinGeckoSource(client=client).fetch_snapshot("Ethereum", "USD", date(2023, 2, 2))

    assert quote.asset_id == "ethereum"
    assert quote.currency == "usd"
    assert quote.rate == Decimal("1950")
    assert quote.day == date(2023, 2, 2)
    assert quote.source == "coingecko-history"
    client.get_coin_history.assert_called_once_with(coin_id="ethereum", target_date=date(2023, 2, 2))


def test_source_without_requested_currency_is_unavailable() -> None:
    client = Mock()
    client.get_coin_history.return_value = {"eur": Decimal("1800")}

    with pytest.raises(PriceUnavailableError):
        CoinGeckoSource(client=client).fetch_snapshot("ethereum", "usd", date(2023, 2, 2))


def test_source_current_prices_warn_on_missing(caplog: pytest.LogCaptureFixture) -> None:
    client = Mock()
    client.get_simple_prices.return_value = {"ethereum": Decimal("2500")}

    with caplog.at_level("WARNING", logger="services.coingecko_source"):
        prices = CoinGeckoSource(client=client).fetch_current(["ethereum", "dai"], "eur")

    assert prices == {"ethereum": Decimal("2500")}
    assert "dai" in caplog.text
