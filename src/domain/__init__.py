"""Domain models and the cost-basis engine.

This package holds the transfer and lot models, lot selection strategies and the
disposal matching logic. Price lookups go through the `PriceProvider` protocol so
the engine stays independent from any price source.
"""

__all__ = [
    "direction",
    "disposals",
    "holding_period",
    "inventory",
    "ledger",
    "lot_selection",
    "pricing",
    "tax_calculator",
    "tax_event",
]
