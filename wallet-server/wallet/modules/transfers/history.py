"""Read-side view over an account's transaction history."""

from __future__ import annotations

from enum import Enum
from typing import Callable, Iterator, Sequence, overload

from wallet.modules.accounts import TransactionRecord


class HistoryOrder(str, Enum):
    DATE_DESC = "date_desc"
    DATE_ASC = "date_asc"
    AMOUNT_DESC = "amount_desc"
    AMOUNT_ASC = "amount_asc"


def _sort_key(order: HistoryOrder) -> tuple[Callable[[TransactionRecord], tuple], bool]:
    if order in (HistoryOrder.DATE_DESC, HistoryOrder.DATE_ASC):
        return (lambda r: (r.timestamp, r.transaction_id)), order is HistoryOrder.DATE_DESC
    # Amount orders compare magnitudes so debits and credits rank by size.
    return (
        lambda r: (abs(r.amount), r.timestamp, r.transaction_id)
    ), order is HistoryOrder.AMOUNT_DESC


class TransactionHistory(Sequence[TransactionRecord]):
    """Finite, restartable sequence of records, sorted on first access.

    The underlying store keeps history as a map keyed by transaction ID, so no
    ordering is assumed from it; the requested order is applied here.
    """

    def __init__(self, records: Sequence[TransactionRecord], order: HistoryOrder = HistoryOrder.DATE_DESC) -> None:
        self._records = records
        self._order = order
        self._sorted: list[TransactionRecord] | None = None

    @property
    def order(self) -> HistoryOrder:
        return self._order

    def _materialize(self) -> list[TransactionRecord]:
        if self._sorted is None:
            key, reverse = _sort_key(self._order)
            self._sorted = sorted(self._records, key=key, reverse=reverse)
        return self._sorted

    def __iter__(self) -> Iterator[TransactionRecord]:
        return iter(self._materialize())

    def __len__(self) -> int:
        return len(self._records)

    @overload
    def __getitem__(self, index: int) -> TransactionRecord:
        ...

    @overload
    def __getitem__(self, index: slice) -> list[TransactionRecord]:
        ...

    def __getitem__(self, index):
        return self._materialize()[index]

    def get(self, transaction_id: str) -> TransactionRecord | None:
        for record in self._records:
            if record.transaction_id == transaction_id:
                return record
        return None

    def __repr__(self) -> str:
        return f"TransactionHistory(order={self._order.value!r}, size={len(self)})"
