from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from pydantic import BaseModel, ConfigDict

from domain.tax_event import TaxableEvent


class TaxSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_gains: Decimal
    total_losses: Decimal
    net_gain_or_loss: Decimal
    long_term_gains: Decimal
    short_term_gains: Decimal
    taxable_events: list[TaxableEvent]
    taxable_events_by_year: dict[str, list[TaxableEvent]]
    taxable_events_by_asset: dict[str, list[TaxableEvent]]


def compute_tax_summary(taxable_events: Iterable[TaxableEvent]) -> TaxSummary:
    """Fold taxable events into totals plus per-year and per-asset groupings.

    Only gains are split by term; losses are reported as a single positive total.
    """
    events = list(taxable_events)
    total_gains = Decimal(0)
    total_losses = Decimal(0)
    long_term_gains = Decimal(0)
    short_term_gains = Decimal(0)
    by_year: dict[str, list[TaxableEvent]] = {}
    by_asset: dict[str, list[TaxableEvent]] = {}

    for event in events:
        if event.gain_or_loss > 0:
            total_gains += event.gain_or_loss
            if event.is_long_term:
                long_term_gains += event.gain_or_loss
            else:
                short_term_gains += event.gain_or_loss
        else:
            total_losses += abs(event.gain_or_loss)

        by_year.setdefault(event.year, []).append(event)
        by_asset.setdefault(event.asset_id, []).append(event)

    return TaxSummary(
        total_gains=total_gains,
        total_losses=total_losses,
        net_gain_or_loss=total_gains - total_losses,
        long_term_gains=long_term_gains,
        short_term_gains=short_term_gains,
        taxable_events=events,
        taxable_events_by_year=by_year,
        taxable_events_by_asset=by_asset,
    )
