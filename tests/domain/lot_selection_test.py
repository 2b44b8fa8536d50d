from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from domain.inventory import CostBasisLedger, CostBasisLot
from domain.lot_selection import (
    CostBasisMethod,
    FifoStrategy,
    HifoStrategy,
    LifoStrategy,
    WeightedAverageStrategy,
    strategy_for,
)
from tests.constants import TOK
from tests.helpers.time_utils import utc


def _lots() -> list[CostBasisLot]:
    return [
        CostBasisLot.acquired(amount=Decimal("1"), unit_price=Decimal("150"), acquired_at=utc(2023, 3, 1)),
        CostBasisLot.acquired(amount=Decimal("2"), unit_price=Decimal("300"), acquired_at=utc(2023, 1, 1)),
        CostBasisLot.acquired(amount=Decimal("3"), unit_price=Decimal("100"), acquired_at=utc(2023, 2, 1)),
    ]


def test_fifo_orders_oldest_first() -> None:
    ordered = FifoStrategy().reorder(_lots())
    assert [lot.date for lot in ordered] == [date(2023, 1, 1), date(2023, 2, 1), date(2023, 3, 1)]


def test_lifo_orders_newest_first() -> None:
    ordered = LifoStrategy().reorder(_lots())
    assert [lot.date for lot in ordered] == [date(2023, 3, 1), date(2023, 2, 1), date(2023, 1, 1)]


def test_hifo_orders_most_expensive_first() -> None:
    ordered = HifoStrategy().reorder(_lots())
    assert [lot.unit_price for lot in ordered] == [Decimal("300"), Decimal("150"), Decimal("100")]


def test_weighted_average_collapses_into_oldest_lot() -> None:
    (merged,) = WeightedAverageStrategy().reorder(_lots())

    assert merged.amount == Decimal("6")
    assert merged.unit_price == (Decimal("150") + Decimal("600") + Decimal("300")) / Decimal("6")
    assert merged.date == date(2023, 1, 1)
    assert merged.timestamp == int(utc(2023, 1, 1).timestamp())


def test_weighted_average_keeps_single_lot_untouched() -> None:
    lot = _lots()[0]
    assert WeightedAverageStrategy().reorder([lot]) == [lot]
    assert WeightedAverageStrategy().reorder([]) == []


def test_weighted_average_ledger_converges_after_every_acquisition() -> None:
    ledger = CostBasisLedger(strategy=WeightedAverageStrategy())
    purchases = [
        (Decimal("1"), Decimal("100"), utc(2023, 1, 1)),
        (Decimal("3"), Decimal("200"), utc(2023, 2, 1)),
        (Decimal("0.5"), Decimal("1000"), utc(2023, 3, 1)),
    ]
    for amount, price, at in purchases:
        ledger.record_acquisition(TOK, amount, price, at)
        assert len(ledger.select_for_consumption(TOK)) == 1

    (lot,) = ledger.select_for_consumption(TOK)
    total_amount = sum(amount for amount, _, _ in purchases)
    total_cost = sum(amount * price for amount, price, _ in purchases)
    assert lot.amount == total_amount
    assert lot.unit_price == total_cost / total_amount
    assert lot.date == date(2023, 1, 1)


def test_hifo_ledger_consumes_highest_price_regardless_of_date() -> None:
    ledger = CostBasisLedger(strategy=HifoStrategy())
    ledger.record_acquisition(TOK, Decimal("1"), Decimal("500"), utc(2023, 6, 1))
    ledger.record_acquisition(TOK, Decimal("1"), Decimal("100"), utc(2023, 1, 1))
    ledger.record_acquisition(TOK, Decimal("1"), Decimal("900"), utc(2023, 9, 1))

    consumption = ledger.consume(TOK, Decimal("1.5"))

    assert consumption.acquisition_cost == Decimal("900") + Decimal("250")


@pytest.mark.parametrize(
    ("method", "expected"),
    [
        ("fifo", FifoStrategy),
        (CostBasisMethod.LIFO, LifoStrategy),
        ("HIFO", HifoStrategy),
        ("wac", WeightedAverageStrategy),
    ],
)
def test_strategy_for_resolves_methods(method: str, expected: type) -> None:
    strategy = strategy_for(method)
    assert isinstance(strategy, expected)
    assert strategy.method == CostBasisMethod(str(method).upper())


def test_strategy_for_rejects_unknown_method() -> None:
    with pytest.raises(ValueError):
        strategy_for("average")
