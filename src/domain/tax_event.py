from __future__ import annotations

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from .ledger import AssetId, TransferEvent


class TaxableEvent(BaseModel):
    """A realized disposal with its cost basis and result."""

    model_config = ConfigDict(frozen=True)

    source_transfer: TransferEvent
    asset_id: AssetId
    date: dt.date
    disposed_amount: Decimal
    matched_amount: Decimal
    unit_price: Decimal
    acquisition_cost: Decimal
    proceeds: Decimal
    gain_or_loss: Decimal
    is_long_term: bool

    @property
    def is_under_collateralized(self) -> bool:
        return self.matched_amount < self.disposed_amount

    @property
    def year(self) -> str:
        return f"{self.date.year:04d}"
