from __future__ import annotations

import dataclasses
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal

from pydantic import BaseModel

from .ledger import AssetId
from .lot_selection import FifoStrategy, LotSelectionStrategy


@dataclass(frozen=True)
class CostBasisLot:
    """Quantity of one asset acquired at a single unit price."""

    amount: Decimal
    unit_price: Decimal
    date: date
    timestamp: int

    @classmethod
    def acquired(cls, *, amount: Decimal, unit_price: Decimal, acquired_at: datetime) -> CostBasisLot:
        return cls(
            amount=amount,
            unit_price=unit_price,
            date=acquired_at.date(),
            timestamp=int(acquired_at.timestamp()),
        )

    @property
    def cost(self) -> Decimal:
        return self.amount * self.unit_price

    def replace(self, **changes: object) -> CostBasisLot:
        return dataclasses.replace(self, **changes)  # type: ignore[arg-type]

    def shrink(self, quantity: Decimal) -> CostBasisLot:
        return self.replace(amount=self.amount - quantity)


@dataclass(frozen=True)
class Consumption:
    """Outcome of matching a disposal quantity against the ledger."""

    requested: Decimal
    matched: Decimal
    acquisition_cost: Decimal
    consumed_lots: tuple[CostBasisLot, ...]

    @property
    def shortfall(self) -> Decimal:
        return self.requested - self.matched


class OpenLotSnapshot(BaseModel):
    asset_id: AssetId
    acquired_on: date
    acquired_timestamp: datetime
    quantity_remaining: Decimal
    cost_per_unit: Decimal


class CostBasisLedger:
    """Per-asset lots still available for disposal, kept in consumption order."""

    def __init__(self, *, strategy: LotSelectionStrategy | None = None) -> None:
        self.strategy = strategy or FifoStrategy()
        self._lots: dict[AssetId, list[CostBasisLot]] = defaultdict(list)

    def record_acquisition(
        self,
        asset_id: AssetId,
        amount: Decimal,
        unit_price: Decimal,
        acquired_at: datetime,
    ) -> CostBasisLot:
        if amount <= 0:
            msg = f"Acquisition amount must be > 0, got {amount} for asset={asset_id}"
            raise ValueError(msg)
        if unit_price < 0:
            msg = f"Unit price must be >= 0, got {unit_price} for asset={asset_id}"
            raise ValueError(msg)

        lot = CostBasisLot.acquired(amount=amount, unit_price=unit_price, acquired_at=acquired_at)
        lots = self._lots[asset_id]
        lots.append(lot)
        self._lots[asset_id] = self.strategy.reorder(lots)
        return lot

    def select_for_consumption(self, asset_id: AssetId) -> tuple[CostBasisLot, ...]:
        return tuple(self._lots.get(asset_id, ()))

    def has_lots(self, asset_id: AssetId) -> bool:
        return bool(self._lots.get(asset_id))

    def consume(self, asset_id: AssetId, quantity: Decimal) -> Consumption:
        """Take `quantity` from the front of the ordered lots.

        Whole lots are removed; a partially used lot is replaced by a shrunk copy.
        When the lots run out before `quantity` is matched the consumption is
        partial and `Consumption.shortfall` is positive.
        """
        lots = self._lots.get(asset_id, [])
        remaining = quantity
        cost = Decimal(0)
        consumed: list[CostBasisLot] = []

        while remaining > 0 and lots:
            lot = lots[0]
            if lot.amount <= remaining:
                cost += lot.amount * lot.unit_price
                remaining -= lot.amount
                consumed.append(lot)
                lots.pop(0)
            else:
                cost += remaining * lot.unit_price
                consumed.append(lot.replace(amount=remaining))
                lots[0] = lot.shrink(remaining)
                remaining = Decimal(0)

        if not lots:
            self._lots.pop(asset_id, None)

        return Consumption(
            requested=quantity,
            matched=quantity - remaining,
            acquisition_cost=cost,
            consumed_lots=tuple(consumed),
        )

    def oldest_lot(self, asset_id: AssetId) -> CostBasisLot | None:
        lots = self._lots.get(asset_id)
        if not lots:
            return None
        return min(lots, key=lambda lot: lot.timestamp)

    def total_amount(self, asset_id: AssetId) -> Decimal:
        return sum((lot.amount for lot in self._lots.get(asset_id, ())), start=Decimal(0))

    def assets(self) -> list[AssetId]:
        return sorted(asset_id for asset_id, lots in self._lots.items() if lots)

    def open_lots(self) -> list[OpenLotSnapshot]:
        snapshots = [
            OpenLotSnapshot(
                asset_id=asset_id,
                acquired_on=lot.date,
                acquired_timestamp=datetime.fromtimestamp(lot.timestamp, tz=timezone.utc),
                quantity_remaining=lot.amount,
                cost_per_unit=lot.unit_price,
            )
            for asset_id, lots in self._lots.items()
            for lot in lots
        ]
        snapshots.sort(key=lambda snap: (snap.asset_id, snap.acquired_timestamp))
        return snapshots
