from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum
from typing import NewType

from pydantic import BaseModel, ConfigDict, model_validator

from utils.units import base_units_to_decimal

AssetId = NewType("AssetId", str)
WalletAddress = NewType("WalletAddress", str)


class TransferKind(StrEnum):
    NATIVE_TRANSFER = "Native Transfer"
    TOKEN_TRANSFER = "Token Transfer"
    SWAP = "Swap"
    OTHER = "Other"


RELEVANT_TRANSFER_KINDS = frozenset({TransferKind.NATIVE_TRANSFER, TransferKind.TOKEN_TRANSFER, TransferKind.SWAP})


class TransferEvent(BaseModel):
    """A single asset movement between two addresses.

    Conventions:
    - The amount is expressed in the asset's natural units (e.g. ETH, not wei).
    - The sign is informational only; direction is decided from the addresses.
    - Zero amounts are valid input (e.g. plain contract calls) and carry no value.
    - An address may be empty, e.g. the destination of a contract creation.
    """

    model_config = ConfigDict(frozen=True)

    hash: str
    asset_id: AssetId
    amount: Decimal
    timestamp: datetime
    from_address: WalletAddress
    to_address: WalletAddress
    kind: TransferKind | str = TransferKind.OTHER

    @model_validator(mode="after")
    def _validate_fields(self) -> TransferEvent:
        if not self.asset_id:
            raise ValueError("TransferEvent.asset_id must be non-empty")
        if self.timestamp.tzinfo is None or self.timestamp.utcoffset() is None:
            raise ValueError("TransferEvent.timestamp must be timezone-aware")
        return self

    @classmethod
    def from_base_units(cls, *, value: int | str, decimals: int = 18, **fields: object) -> TransferEvent:
        """Build an event from an integer on-chain value (wei-like units)."""
        return cls.model_validate({**fields, "amount": base_units_to_decimal(value, decimals)})

    @property
    def is_relevant(self) -> bool:
        return self.kind in RELEVANT_TRANSFER_KINDS

    @property
    def quantity(self) -> Decimal:
        return abs(self.amount)

    @property
    def day(self) -> date:
        return self.timestamp.date()
