from __future__ import annotations

from decimal import Decimal
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, Sequence

if TYPE_CHECKING:
    from .inventory import CostBasisLot


class CostBasisMethod(StrEnum):
    FIFO = "FIFO"
    LIFO = "LIFO"
    HIFO = "HIFO"
    WAC = "WAC"


class LotSelectionStrategy(Protocol):
    """Orders (or aggregates) an asset's lots so that consumption starts at index 0."""

    method: CostBasisMethod

    def reorder(self, lots: Sequence[CostBasisLot]) -> list[CostBasisLot]: ...


class FifoStrategy:
    method = CostBasisMethod.FIFO

    def reorder(self, lots: Sequence[CostBasisLot]) -> list[CostBasisLot]:
        return sorted(lots, key=lambda lot: lot.timestamp)


class LifoStrategy:
    method = CostBasisMethod.LIFO

    def reorder(self, lots: Sequence[CostBasisLot]) -> list[CostBasisLot]:
        return sorted(lots, key=lambda lot: lot.timestamp, reverse=True)


class HifoStrategy:
    method = CostBasisMethod.HIFO

    def reorder(self, lots: Sequence[CostBasisLot]) -> list[CostBasisLot]:
        return sorted(lots, key=lambda lot: lot.unit_price, reverse=True)


class WeightedAverageStrategy:
    """Collapse every lot into a single lot priced at the quantity-weighted average.

    The merged lot keeps the date of the oldest constituent, so holding periods
    are measured from the first acquisition.
    """

    method = CostBasisMethod.WAC

    def reorder(self, lots: Sequence[CostBasisLot]) -> list[CostBasisLot]:
        if len(lots) <= 1:
            return list(lots)

        total_amount = sum((lot.amount for lot in lots), start=Decimal(0))
        total_cost = sum((lot.amount * lot.unit_price for lot in lots), start=Decimal(0))
        oldest = min(lots, key=lambda lot: lot.timestamp)
        return [oldest.replace(amount=total_amount, unit_price=total_cost / total_amount)]


_STRATEGIES: dict[CostBasisMethod, type[LotSelectionStrategy]] = {
    CostBasisMethod.FIFO: FifoStrategy,
    CostBasisMethod.LIFO: LifoStrategy,
    CostBasisMethod.HIFO: HifoStrategy,
    CostBasisMethod.WAC: WeightedAverageStrategy,
}


def strategy_for(method: CostBasisMethod | str) -> LotSelectionStrategy:
    try:
        resolved = CostBasisMethod(str(method).upper())
    except ValueError as exc:
        msg = f"Unknown cost basis method {method!r}"
        raise ValueError(msg) from exc
    return _STRATEGIES[resolved]()


__all__ = [
    "CostBasisMethod",
    "FifoStrategy",
    "HifoStrategy",
    "LifoStrategy",
    "LotSelectionStrategy",
    "WeightedAverageStrategy",
    "strategy_for",
]
