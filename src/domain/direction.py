from __future__ import annotations

from enum import StrEnum
from typing import Iterable, Protocol

from .ledger import TransferEvent


class TransferDirection(StrEnum):
    ACQUISITION = "ACQUISITION"
    DISPOSAL = "DISPOSAL"
    IGNORED = "IGNORED"


class DirectionClassifier(Protocol):
    def classify(self, transfer: TransferEvent) -> TransferDirection: ...


class WalletDirectionClassifier:
    """Decide direction from the owner's addresses.

    Incoming when the destination is owned and the source is not, outgoing for the
    reverse. Moves between two owned addresses and transfers that do not touch the
    owner at all are ignored. Addresses are compared case-insensitively.
    """

    def __init__(self, wallet_addresses: Iterable[str]) -> None:
        addresses = {address.lower() for address in wallet_addresses if address}
        if not addresses:
            msg = "wallet_addresses must contain at least one address"
            raise ValueError(msg)
        self._addresses = frozenset(addresses)

    def classify(self, transfer: TransferEvent) -> TransferDirection:
        from_owned = transfer.from_address.lower() in self._addresses
        to_owned = transfer.to_address.lower() in self._addresses
        if to_owned and not from_owned:
            return TransferDirection.ACQUISITION
        if from_owned and not to_owned:
            return TransferDirection.DISPOSAL
        return TransferDirection.IGNORED


class SelfTransferDirectionClassifier:
    """Direction rule used by the first dashboard release.

    A transfer counts as outgoing only when it was sent to the address it came
    from; everything else is treated as incoming. Almost every real transfer is
    therefore booked as an acquisition. Only use this to reproduce old reports.
    """

    def classify(self, transfer: TransferEvent) -> TransferDirection:
        if transfer.from_address.lower() == transfer.to_address.lower():
            return TransferDirection.DISPOSAL
        return TransferDirection.ACQUISITION


__all__ = [
    "DirectionClassifier",
    "SelfTransferDirectionClassifier",
    "TransferDirection",
    "WalletDirectionClassifier",
]
