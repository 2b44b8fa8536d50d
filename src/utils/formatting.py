from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

CENTS = Decimal("0.01")


def format_amount(value: Decimal, asset_id: str | None = None) -> str:
    """Asset quantity in plain notation with trailing zeros stripped, e.g. `1.5 ETH`."""
    text = f"{value.normalize():f}"
    return f"{text} {asset_id}" if asset_id else text


def format_currency(value: Decimal, currency: str | None = None) -> str:
    text = f"{value.quantize(CENTS, rounding=ROUND_HALF_UP):,.2f}"
    return f"{text} {currency.upper()}" if currency else text
