from __future__ import annotations

from decimal import Decimal


def base_units_to_decimal(value: int | str, decimals: int = 18) -> Decimal:
    """Scale an integer on-chain value (wei-like units) to the asset's natural units.

    String values may be decimal or `0x`-prefixed hex, as returned by RPC nodes.
    """
    if decimals < 0:
        msg = "decimals must be >= 0"
        raise ValueError(msg)
    if isinstance(value, str):
        value = int(value, 16) if value.lower().startswith("0x") else int(value)
    return Decimal(value).scaleb(-decimals)
