"""Long-term / short-term classification of disposals.

A disposal is long-term when the holding period is strictly longer than the
threshold (365 days by default): exactly 365 days is still short-term.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Protocol, Sequence

from .inventory import CostBasisLot

DEFAULT_LONG_TERM_DAYS = 365


class HoldingPeriodPolicy(Protocol):
    def is_long_term(
        self,
        *,
        disposal_timestamp: int,
        consumed_lots: Sequence[CostBasisLot],
        oldest_remaining_lot: CostBasisLot | None,
    ) -> bool: ...


class _ThresholdPolicy:
    def __init__(self, *, long_term_days: int = DEFAULT_LONG_TERM_DAYS) -> None:
        if long_term_days <= 0:
            msg = "long_term_days must be > 0"
            raise ValueError(msg)
        self.long_term_days = long_term_days
        self._threshold_seconds = int(timedelta(days=long_term_days).total_seconds())

    def _held_long_enough(self, disposal_timestamp: int, lot: CostBasisLot) -> bool:
        return disposal_timestamp - lot.timestamp > self._threshold_seconds


class RemainingOldestLotPolicy(_ThresholdPolicy):
    """Measure the holding period against the oldest lot left after the disposal.

    This is how the dashboard has always reported terms. The lots that were
    actually sold are ignored, and a disposal that empties the ledger is always
    short-term.
    """

    def is_long_term(
        self,
        *,
        disposal_timestamp: int,
        consumed_lots: Sequence[CostBasisLot],
        oldest_remaining_lot: CostBasisLot | None,
    ) -> bool:
        if oldest_remaining_lot is None:
            return False
        return self._held_long_enough(disposal_timestamp, oldest_remaining_lot)


class ConsumedLotsPolicy(_ThresholdPolicy):
    """Long-term only when every lot consumed by the disposal was held past the threshold."""

    def is_long_term(
        self,
        *,
        disposal_timestamp: int,
        consumed_lots: Sequence[CostBasisLot],
        oldest_remaining_lot: CostBasisLot | None,
    ) -> bool:
        if not consumed_lots:
            return False
        return all(self._held_long_enough(disposal_timestamp, lot) for lot in consumed_lots)


__all__ = [
    "DEFAULT_LONG_TERM_DAYS",
    "ConsumedLotsPolicy",
    "HoldingPeriodPolicy",
    "RemainingOldestLotPolicy",
]
