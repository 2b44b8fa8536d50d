from __future__ import annotations

from decimal import Decimal

from domain.tax_event import TaxableEvent
from tests.constants import ETH, TOK
from tests.helpers.time_utils import send, utc
from utils.formatting import format_amount, format_currency
from utils.tax_summary import compute_tax_summary


def _event(asset_id: str, year: int, gain: str, *, long_term: bool = False) -> TaxableEvent:
    transfer = send(asset_id, "1", utc(year, 3, 1))
    proceeds = Decimal("1000")
    return TaxableEvent(
        source_transfer=transfer,
        asset_id=transfer.asset_id,
        date=transfer.day,
        disposed_amount=Decimal("1"),
        matched_amount=Decimal("1"),
        unit_price=proceeds,
        acquisition_cost=proceeds - Decimal(gain),
        proceeds=proceeds,
        gain_or_loss=Decimal(gain),
        is_long_term=long_term,
    )


def test_totals_split_gains_by_term() -> None:
    events = [
        _event(TOK, 2023, "250"),
        _event(ETH, 2023, "100", long_term=True),
        _event(ETH, 2024, "-80", long_term=True),
        _event(TOK, 2024, "-20"),
    ]

    summary = compute_tax_summary(events)

    assert summary.total_gains == Decimal("350")
    assert summary.total_losses == Decimal("100")
    assert summary.net_gain_or_loss == Decimal("250")
    assert summary.long_term_gains == Decimal("100")
    assert summary.short_term_gains == Decimal("250")
    assert summary.taxable_events == events


def test_groupings_keep_event_order() -> None:
    first = _event(TOK, 2023, "1")
    second = _event(ETH, 2023, "2")
    third = _event(TOK, 2024, "3")

    summary = compute_tax_summary([first, second, third])

    assert summary.taxable_events_by_year == {"2023": [first, second], "2024": [third]}
    assert summary.taxable_events_by_asset == {TOK: [first, third], ETH: [second]}


def test_empty_summary() -> None:
    summary = compute_tax_summary([])

    assert summary.total_gains == Decimal(0)
    assert summary.total_losses == Decimal(0)
    assert summary.net_gain_or_loss == Decimal(0)
    assert summary.taxable_events_by_year == {}
    assert summary.taxable_events_by_asset == {}


def test_summary_is_idempotent() -> None:
    events = [_event(TOK, 2023, "12.5"), _event(ETH, 2024, "-3.25")]

    assert compute_tax_summary(events) == compute_tax_summary(events)
    assert compute_tax_summary(iter(events)) == compute_tax_summary(events)


def test_zero_result_counts_as_neither_gain_nor_loss() -> None:
    summary = compute_tax_summary([_event(TOK, 2023, "0")])

    assert summary.total_gains == Decimal(0)
    assert summary.total_losses == Decimal(0)
    assert len(summary.taxable_events) == 1


def test_formatting() -> None:
    assert format_amount(Decimal("1.50000"), "ETH") == "1.5 ETH"
    assert format_amount(Decimal("1E+3")) == "1000"
    assert format_amount(Decimal("0.000000000000000001")) == "0.000000000000000001"
    assert format_currency(Decimal("12.345"), "eur") == "12.35 EUR"
    assert format_currency(Decimal("1234567.891")) == "1,234,567.89"
    assert format_currency(Decimal("-0.5")) == "-0.50"
