from __future__ import annotations

import argparse
import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Sequence

from pydantic import TypeAdapter

from config import config
from domain.direction import DirectionClassifier, SelfTransferDirectionClassifier, WalletDirectionClassifier
from domain.holding_period import ConsumedLotsPolicy, HoldingPeriodPolicy, RemainingOldestLotPolicy
from domain.ledger import TransferEvent
from domain.lot_selection import CostBasisMethod
from domain.tax_calculator import TaxCalculation, TaxCalculator
from services.price_service import build_price_service
from utils.formatting import format_amount, format_currency

logger = logging.getLogger(__name__)

_TRANSFERS_ADAPTER = TypeAdapter(list[TransferEvent])


def load_transfers(path: Path) -> list[TransferEvent]:
    return _TRANSFERS_ADAPTER.validate_python(json.loads(path.read_text(encoding="utf-8")))


def run(
    transfers_path: Path,
    *,
    wallets: Sequence[str],
    method: CostBasisMethod,
    currency: str,
    consumed_lot_terms: bool,
    self_transfer_direction: bool,
    cache_dir: Path | None,
    prefetch: bool,
) -> TaxCalculation:
    settings = config()
    transfers = load_transfers(transfers_path)
    logger.info("Loaded %d transfers from %s", len(transfers), transfers_path)

    classifier: DirectionClassifier
    if self_transfer_direction:
        classifier = SelfTransferDirectionClassifier()
    else:
        classifier = WalletDirectionClassifier(wallets)

    policy: HoldingPeriodPolicy
    if consumed_lot_terms:
        policy = ConsumedLotsPolicy(long_term_days=settings.long_term_days)
    else:
        policy = RemainingOldestLotPolicy(long_term_days=settings.long_term_days)

    price_service = build_price_service(cache_dir=cache_dir)
    calculator = TaxCalculator(
        price_provider=price_service,
        direction_classifier=classifier,
        method=method,
        holding_period_policy=policy,
        supported_currencies=price_service.supported_currencies,
    )
    if prefetch:
        price_service.prefetch(calculator.price_lookups(transfers), currency)

    return calculator.run(transfers, currency)


def print_calculation(calculation: TaxCalculation) -> None:
    summary = calculation.summary
    currency = calculation.currency
    print(f"Cost basis method: {calculation.method}")
    print(f"  Acquisitions:            {calculation.acquisitions}")
    print(f"  Taxable events:          {len(summary.taxable_events)}")
    print(f"  Disposals without lots:  {calculation.disposals_without_lots}")
    print(f"  Skipped transfers:       {calculation.skipped_transfers}")
    print(f"  Total gains:             {format_currency(summary.total_gains, currency)}")
    print(f"    long-term:             {format_currency(summary.long_term_gains, currency)}")
    print(f"    short-term:            {format_currency(summary.short_term_gains, currency)}")
    print(f"  Total losses:            {format_currency(summary.total_losses, currency)}")
    print(f"  Net gain or loss:        {format_currency(summary.net_gain_or_loss, currency)}")
    for year, events in sorted(summary.taxable_events_by_year.items()):
        net = sum((event.gain_or_loss for event in events), start=Decimal(0))
        print(f"  {year}: {len(events)} events, net {format_currency(net, currency)}")
    if calculation.open_lots:
        print("Open lots:")
        for lot in calculation.open_lots:
            print(
                f"  {format_amount(lot.quantity_remaining, lot.asset_id)} @ "
                f"{format_currency(lot.cost_per_unit, currency)} since {lot.acquired_on}"
            )


def main(argv: Sequence[str] | None = None) -> None:
    settings = config()
    parser = argparse.ArgumentParser(description="Compute realized gains from a JSON list of transfers.")
    parser.add_argument("transfers", type=Path)
    parser.add_argument("--wallet", action="append", default=[], help="Owned address (repeatable)")
    parser.add_argument(
        "--method", type=CostBasisMethod, choices=list(CostBasisMethod), default=settings.cost_basis_method
    )
    parser.add_argument("--currency", default=settings.default_currency)
    parser.add_argument("--consumed-lot-terms", action="store_true", help="Classify terms by the lots sold")
    parser.add_argument("--self-transfer-direction", action="store_true", help="Legacy direction detection")
    parser.add_argument("--price-cache-dir", type=Path, default=None)
    parser.add_argument("--prefetch", action="store_true")
    args = parser.parse_args(argv)
    if not args.wallet and not args.self_transfer_direction:
        parser.error("at least one --wallet is required")

    calculation = run(
        args.transfers,
        wallets=args.wallet,
        method=CostBasisMethod(args.method),
        currency=args.currency,
        consumed_lot_terms=args.consumed_lot_terms,
        self_transfer_direction=args.self_transfer_direction,
        cache_dir=args.price_cache_dir,
        prefetch=args.prefetch,
    )
    print_calculation(calculation)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    main()
