from __future__ import annotations

import logging

from .holding_period import HoldingPeriodPolicy, RemainingOldestLotPolicy
from .inventory import CostBasisLedger
from .ledger import TransferEvent
from .pricing import PriceProvider
from .tax_event import TaxableEvent

logger = logging.getLogger(__name__)


class DisposalProcessor:
    """Match outgoing transfers against the ledger and realize gains or losses."""

    def __init__(
        self,
        *,
        price_provider: PriceProvider,
        holding_period_policy: HoldingPeriodPolicy | None = None,
    ) -> None:
        self._price_provider = price_provider
        self.holding_period_policy = holding_period_policy or RemainingOldestLotPolicy()

    def process(
        self,
        transfer: TransferEvent,
        ledger: CostBasisLedger,
        *,
        currency: str,
    ) -> TaxableEvent | None:
        """Return the taxable event for `transfer`, or None when nothing is held."""
        asset_id = transfer.asset_id
        if not ledger.has_lots(asset_id):
            return None

        amount = transfer.quantity
        unit_price = self._price_provider.price(asset_id, transfer.day, currency)
        proceeds = amount * unit_price

        consumption = ledger.consume(asset_id, amount)
        if consumption.shortfall > 0:
            logger.warning(
                "Disposal %s of %s %s exceeds held lots by %s; using partial cost basis",
                transfer.hash,
                amount,
                asset_id,
                consumption.shortfall,
            )

        disposal_timestamp = int(transfer.timestamp.timestamp())
        is_long_term = self.holding_period_policy.is_long_term(
            disposal_timestamp=disposal_timestamp,
            consumed_lots=consumption.consumed_lots,
            oldest_remaining_lot=ledger.oldest_lot(asset_id),
        )

        return TaxableEvent(
            source_transfer=transfer,
            asset_id=asset_id,
            date=transfer.day,
            disposed_amount=amount,
            matched_amount=consumption.matched,
            unit_price=unit_price,
            acquisition_cost=consumption.acquisition_cost,
            proceeds=proceeds,
            gain_or_loss=proceeds - consumption.acquisition_cost,
            is_long_term=is_long_term,
        )
