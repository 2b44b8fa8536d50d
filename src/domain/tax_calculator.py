from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Sequence

from pydantic import BaseModel

from config import config
from utils.tax_summary import TaxSummary, compute_tax_summary

from .direction import DirectionClassifier, TransferDirection
from .disposals import DisposalProcessor
from .holding_period import HoldingPeriodPolicy, RemainingOldestLotPolicy
from .inventory import CostBasisLedger, OpenLotSnapshot
from .ledger import AssetId, TransferEvent
from .lot_selection import CostBasisMethod, strategy_for
from .pricing import PriceProvider, normalize_currency
from .tax_event import TaxableEvent

logger = logging.getLogger(__name__)


class TaxCalculation(BaseModel):
    currency: str
    method: CostBasisMethod
    summary: TaxSummary
    open_lots: list[OpenLotSnapshot]
    acquisitions: int
    disposals_without_lots: int
    skipped_transfers: int


class TaxCalculator:
    """Replay transfers through a cost-basis ledger and summarize realized gains.

    Every call to `run` starts from an empty ledger; nothing is shared between runs
    except the price provider (and whatever cache it keeps).
    """

    def __init__(
        self,
        *,
        price_provider: PriceProvider,
        direction_classifier: DirectionClassifier,
        method: CostBasisMethod | str = CostBasisMethod.FIFO,
        holding_period_policy: HoldingPeriodPolicy | None = None,
        supported_currencies: Iterable[str] | None = None,
    ) -> None:
        self._price_provider = price_provider
        self._direction_classifier = direction_classifier
        self.method = CostBasisMethod(str(method).upper())
        self._disposal_processor = DisposalProcessor(
            price_provider=price_provider,
            holding_period_policy=holding_period_policy or RemainingOldestLotPolicy(),
        )
        self._supported_currencies = tuple(supported_currencies or config().supported_currencies)

    def calculate(self, transfers: Iterable[TransferEvent], currency: str | None = None) -> TaxSummary:
        return self.run(transfers, currency).summary

    def run(self, transfers: Iterable[TransferEvent], currency: str | None = None) -> TaxCalculation:
        resolved_currency = normalize_currency(currency or config().default_currency, self._supported_currencies)
        ordered = self._ordered(transfers)
        ledger = CostBasisLedger(strategy=strategy_for(self.method))
        taxable_events: list[TaxableEvent] = []
        acquisitions = 0
        disposals_without_lots = 0
        skipped = 0

        logger.info(
            "Calculating %s gains for %d transfers in %s", self.method, len(ordered), resolved_currency.upper()
        )
        for transfer in ordered:
            if not transfer.is_relevant or transfer.quantity == 0:
                skipped += 1
                continue

            direction = self._direction_classifier.classify(transfer)
            if direction == TransferDirection.ACQUISITION:
                unit_price = self._price_provider.price(transfer.asset_id, transfer.day, resolved_currency)
                ledger.record_acquisition(transfer.asset_id, transfer.quantity, unit_price, transfer.timestamp)
                acquisitions += 1
            elif direction == TransferDirection.DISPOSAL:
                taxable_event = self._disposal_processor.process(transfer, ledger, currency=resolved_currency)
                if taxable_event is None:
                    disposals_without_lots += 1
                    logger.debug("No lots held for %s, skipping disposal %s", transfer.asset_id, transfer.hash)
                    continue
                taxable_events.append(taxable_event)
            else:
                skipped += 1

        summary = compute_tax_summary(taxable_events)
        logger.info(
            "Realized %d taxable events: gains=%s losses=%s net=%s",
            len(taxable_events),
            summary.total_gains,
            summary.total_losses,
            summary.net_gain_or_loss,
        )
        return TaxCalculation(
            currency=resolved_currency,
            method=self.method,
            summary=summary,
            open_lots=ledger.open_lots(),
            acquisitions=acquisitions,
            disposals_without_lots=disposals_without_lots,
            skipped_transfers=skipped,
        )

    def price_lookups(self, transfers: Iterable[TransferEvent]) -> list[tuple[AssetId, date]]:
        """Distinct (asset, day) pairs a run over `transfers` may ask prices for."""
        lookups: dict[tuple[AssetId, date], None] = {}
        for transfer in self._ordered(transfers):
            if not transfer.is_relevant or transfer.quantity == 0:
                continue
            if self._direction_classifier.classify(transfer) == TransferDirection.IGNORED:
                continue
            lookups[(transfer.asset_id, transfer.day)] = None
        return list(lookups)

    @staticmethod
    def _ordered(transfers: Iterable[TransferEvent]) -> Sequence[TransferEvent]:
        try:
            return sorted(transfers, key=lambda transfer: transfer.timestamp)
        except TypeError as exc:
            msg = "Transfers have timestamps that cannot be ordered"
            raise ValueError(msg) from exc
