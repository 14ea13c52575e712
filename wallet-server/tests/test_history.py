"""History ordering and sequence behaviour."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from wallet.infrastructure.memory import InMemoryUserDirectory
from wallet.modules.accounts import Direction, TransactionRecord
from wallet.modules.transfers import HistoryOrder, LedgerTransferService, TransactionHistory

from conftest import FAST_RETRIES

BASE = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def _record(transaction_id, amount, minutes):
    return TransactionRecord(
        transaction_id=transaction_id,
        account_id="alice",
        amount=Decimal(amount),
        direction=Direction.CREDIT if Decimal(amount) > 0 else Direction.DEBIT,
        counterparty_id="bob",
        counterparty_name="Bob",
        timestamp=BASE + timedelta(minutes=minutes),
    )


RECORDS = [
    _record("t2", "-5.00", 2),
    _record("t1", "40.00", 1),
    _record("t4", "12.00", 3),
    _record("t3", "-80.00", 3),
]


class TestTransactionHistory:
    def test_default_order_is_most_recent_first_with_id_tie_break(self):
        history = TransactionHistory(RECORDS)

        assert [r.transaction_id for r in history] == ["t4", "t3", "t2", "t1"]

    def test_date_ascending(self):
        history = TransactionHistory(RECORDS, HistoryOrder.DATE_ASC)

        assert [r.transaction_id for r in history] == ["t1", "t2", "t3", "t4"]

    def test_amount_orders_rank_by_magnitude(self):
        desc = TransactionHistory(RECORDS, HistoryOrder.AMOUNT_DESC)
        asc = TransactionHistory(RECORDS, HistoryOrder.AMOUNT_ASC)

        assert [r.transaction_id for r in desc] == ["t3", "t1", "t4", "t2"]
        assert [r.transaction_id for r in asc] == ["t2", "t4", "t1", "t3"]

    def test_iteration_is_restartable(self):
        history = TransactionHistory(RECORDS)

        assert list(history) == list(history)
        assert len(history) == 4
        assert history[0].transaction_id == "t4"
        assert [r.transaction_id for r in history[1:3]] == ["t3", "t2"]

    def test_point_lookup(self):
        history = TransactionHistory(RECORDS)

        assert history.get("t3").amount == Decimal("-80.00")
        assert history.get("missing") is None

    def test_empty_history(self):
        history = TransactionHistory([])

        assert list(history) == []
        assert len(history) == 0


@pytest.mark.asyncio
async def test_service_history_uses_store_timestamps():
    ticks = iter(BASE + timedelta(seconds=n) for n in range(100))
    directory = InMemoryUserDirectory(clock=lambda: next(ticks))
    service = LedgerTransferService(directory, FAST_RETRIES)
    await service.register_account("alice", "Alice")
    await service.register_account("bob", "Bob")

    topup = await service.top_up("alice", "100")
    first = await service.transfer("alice", "bob", "10")
    second = await service.transfer("alice", "bob", "20")

    history = await service.list_history("alice")
    assert [r.transaction_id for r in history] == [second, first, topup]
    assert [r.amount for r in history] == [Decimal("-20.00"), Decimal("-10.00"), Decimal("100.00")]

    by_amount = await service.list_history("alice", order=HistoryOrder.AMOUNT_DESC)
    assert [r.transaction_id for r in by_amount] == [topup, second, first]
