from __future__ import annotations

import json
import logging
import threading
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Protocol

from .price_types import PriceKey, PriceQuote

logger = logging.getLogger(__name__)


class PriceStore(Protocol):
    def write(self, quote: PriceQuote) -> None: ...

    def read(self, key: PriceKey) -> PriceQuote | None: ...

    def nearest(self, asset_id: str, currency: str, day: date) -> PriceQuote | None: ...


def _closest(quotes: Iterable[PriceQuote], day: date) -> PriceQuote | None:
    # Earlier day wins when two cached days are equally far away.
    best: PriceQuote | None = None
    best_distance: int | None = None
    for quote in sorted(quotes, key=lambda q: q.day):
        distance = abs((quote.day - day).days)
        if best_distance is None or distance < best_distance:
            best = quote
            best_distance = distance
    return best


class InMemoryPriceStore(PriceStore):
    """Price cache living as long as the service that owns it.

    Historical prices never change, so entries are never evicted.
    """

    def __init__(self) -> None:
        self._quotes: dict[PriceKey, PriceQuote] = {}
        self._lock = threading.Lock()

    def write(self, quote: PriceQuote) -> None:
        with self._lock:
            self._quotes[quote.key] = quote

    def read(self, key: PriceKey) -> PriceQuote | None:
        with self._lock:
            return self._quotes.get(key)

    def nearest(self, asset_id: str, currency: str, day: date) -> PriceQuote | None:
        asset = asset_id.lower()
        quote_currency = currency.lower()
        with self._lock:
            candidates = [
                quote
                for key, quote in self._quotes.items()
                if key.asset_id == asset and key.currency == quote_currency
            ]
        return _closest(candidates, day)

    def __len__(self) -> int:
        return len(self._quotes)


class JsonlPriceStore(PriceStore):
    """Append-only price cache on disk, one JSONL file per asset/currency pair."""

    def __init__(self, *, root_dir: Path) -> None:
        self.root_dir = root_dir
        self._lock = threading.Lock()

    def write(self, quote: PriceQuote) -> None:
        path = self._file_path(quote.asset_id, quote.currency)
        path.parent.mkdir(parents=True, exist_ok=True)
        record = {
            "day": quote.day.isoformat(),
            "asset_id": quote.asset_id,
            "currency": quote.currency,
            "rate": str(quote.rate),
            "source": quote.source,
        }
        with self._lock:
            prefix = "" if self._ends_with_newline(path) else "\n"
            with path.open("a", encoding="utf-8") as handle:
                handle.write(prefix + json.dumps(record))
                handle.write("\n")

    def read(self, key: PriceKey) -> PriceQuote | None:
        for quote in self._load(key.asset_id, key.currency):
            if quote.day == key.day:
                return quote
        return None

    def nearest(self, asset_id: str, currency: str, day: date) -> PriceQuote | None:
        return _closest(self._load(asset_id, currency), day)

    def _load(self, asset_id: str, currency: str) -> list[PriceQuote]:
        path = self._file_path(asset_id, currency)
        if not path.exists():
            return []

        quotes: list[PriceQuote] = []
        with self._lock, path.open("r", encoding="utf-8") as handle:
            for line_number, line in enumerate(handle, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    record = json.loads(line)
                except json.JSONDecodeError:
                    logger.warning("Skipping unreadable price record %s:%d", path, line_number)
                    continue
                quotes.append(
                    PriceQuote(
                        day=date.fromisoformat(record["day"]),
                        asset_id=record["asset_id"],
                        currency=record["currency"],
                        rate=Decimal(record["rate"]),
                        source=record["source"],
                    )
                )
        return quotes

    @staticmethod
    def _ends_with_newline(path: Path) -> bool:
        # An interrupted write can leave a partial last line behind.
        if not path.exists() or path.stat().st_size == 0:
            return True
        with path.open("rb") as handle:
            handle.seek(-1, 2)
            return handle.read(1) == b"\n"

    def _file_path(self, asset_id: str, currency: str) -> Path:
        return self.root_dir / "prices" / f"{asset_id.lower()}-{currency.lower()}.jsonl"


__all__ = ["InMemoryPriceStore", "JsonlPriceStore", "PriceStore"]
