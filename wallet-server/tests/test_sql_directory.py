"""Transfer protocol against the SQLAlchemy directory (aiosqlite)."""

import asyncio
from dataclasses import replace
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from wallet.infrastructure.database.models import UserAccount as UserAccountModel
from wallet.infrastructure.database.repositories import SqlUserDirectory
from wallet.modules.accounts import (
    BillRequestClosedError,
    ConcurrentConflictError,
    Direction,
    InsufficientBalanceError,
    InvalidAmountError,
    RecipientNotFoundError,
    StoreUnavailableError,
)
from wallet.modules.requests import BillShareRef, BillStatus
from wallet.modules.transfers import TransferRequest, new_transaction_id
from wallet.modules.transfers.models import build_transfer_legs


class TestSqlTransfers:
    @pytest.mark.asyncio
    async def test_transfer_commits_both_legs(self, sql_service, open_account):
        await open_account(sql_service, "alice", "Alice", "100.00")
        await open_account(sql_service, "bob", "Bob", "50.00")

        transaction_id = await sql_service.transfer("alice", "bob", "30.00")

        assert await sql_service.get_balance("alice") == Decimal("70.00")
        assert await sql_service.get_balance("bob") == Decimal("80.00")
        debit = await sql_service.get_transaction("alice", transaction_id)
        credit = await sql_service.get_transaction("bob", transaction_id)
        assert (debit.amount, debit.direction, debit.counterparty_name) == (Decimal("-30.00"), Direction.DEBIT, "Bob")
        assert (credit.amount, credit.direction, credit.counterparty_name) == (Decimal("30.00"), Direction.CREDIT, "Alice")

    @pytest.mark.asyncio
    async def test_rejections_leave_rows_untouched(self, sql_service, open_account):
        await open_account(sql_service, "alice", "Alice", "10.00")
        await open_account(sql_service, "bob", "Bob")
        version_before = (await sql_service.get_account("alice")).version

        with pytest.raises(InsufficientBalanceError):
            await sql_service.transfer("alice", "bob", "10.01")
        with pytest.raises(RecipientNotFoundError):
            await sql_service.transfer("alice", "ghost", "1.00")

        alice = await sql_service.get_account("alice")
        assert alice.balance == Decimal("10.00")
        assert alice.version == version_before
        assert len(await sql_service.list_history("bob")) == 0

    @pytest.mark.asyncio
    async def test_idempotent_retry(self, sql_service, open_account):
        await open_account(sql_service, "alice", "Alice", "100.00")
        await open_account(sql_service, "bob", "Bob")

        first = await sql_service.transfer("alice", "bob", "25.00", idempotency_key="req-9")
        second = await sql_service.transfer("alice", "bob", "25.00", idempotency_key="req-9")

        assert first == second
        assert await sql_service.get_balance("alice") == Decimal("75.00")

    @pytest.mark.asyncio
    async def test_history_is_most_recent_first(self, sql_service, open_account):
        await open_account(sql_service, "alice", "Alice", "100.00")
        await open_account(sql_service, "bob", "Bob")

        first = await sql_service.transfer("alice", "bob", "1.00")
        second = await sql_service.transfer("alice", "bob", "2.00")

        history = await sql_service.list_history("alice")
        assert [r.transaction_id for r in history][:2] == [second, first]
        assert len(history) == 3

    @pytest.mark.asyncio
    async def test_create_account_is_idempotent(self, sql_directory):
        created = await sql_directory.create_account("alice", "Alice")
        again = await sql_directory.create_account("alice", "Other")

        assert created.balance == Decimal("0.00")
        assert again.display_name == "Alice"


class TestSqlAtomicity:
    @pytest.mark.asyncio
    async def test_failure_between_legs_rolls_back(self, sql_service, sql_engine, open_account, monkeypatch):
        await open_account(sql_service, "alice", "Alice", "100.00")
        await open_account(sql_service, "bob", "Bob", "50.00")
        original = SqlUserDirectory._write_leg

        async def failing_write_leg(self, session, entry, committed_at):
            if entry.direction is Direction.CREDIT:
                raise OperationalError("INSERT INTO wallet_transactions", {}, Exception("disk I/O error"))
            return await original(self, session, entry, committed_at)

        monkeypatch.setattr(SqlUserDirectory, "_write_leg", failing_write_leg)

        with pytest.raises(StoreUnavailableError):
            await sql_service.transfer("alice", "bob", "30.00")

        monkeypatch.undo()
        assert await sql_service.get_balance("alice") == Decimal("100.00")
        assert await sql_service.get_balance("bob") == Decimal("50.00")
        assert len(await sql_service.list_history("alice")) == 1
        assert len(await sql_service.list_history("bob")) == 1

    @pytest.mark.asyncio
    async def test_stale_snapshot_is_a_conflict(self, sql_directory, sql_service, open_account, monkeypatch):
        await open_account(sql_service, "alice", "Alice", "100.00")
        await open_account(sql_service, "bob", "Bob")
        original = SqlUserDirectory._load_snapshots

        async def stale_snapshots(self, session, user_ids):
            snapshots = await original(self, session, user_ids)
            return {
                user_id: replace(account, version=account.version - 1) if user_id == "alice" else account
                for user_id, account in snapshots.items()
            }

        monkeypatch.setattr(SqlUserDirectory, "_load_snapshots", stale_snapshots)

        with pytest.raises(ConcurrentConflictError):
            await sql_service.transfer("alice", "bob", "10.00")

        monkeypatch.undo()
        assert await sql_service.get_balance("alice") == Decimal("100.00")
        assert await sql_service.get_balance("bob") == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_balance_column_never_negative(self, sql_directory, sql_engine, open_account, sql_service):
        await open_account(sql_service, "alice", "Alice", "5.00")
        await open_account(sql_service, "bob", "Bob")

        with pytest.raises(InsufficientBalanceError):
            await sql_service.transfer("alice", "bob", "5.01")

        async with sql_engine.connect() as conn:
            rows = (await conn.execute(select(UserAccountModel.balance_paise))).scalars().all()
        assert all(value >= 0 for value in rows)
        assert sorted(rows) == [0, 500]

    @pytest.mark.asyncio
    async def test_oversized_amount_is_rejected_before_the_store(self, sql_service, sql_engine, open_account):
        await open_account(sql_service, "alice", "Alice", "10.00")

        with pytest.raises(InvalidAmountError):
            await sql_service.top_up("alice", "100000000000000000")

        assert await sql_service.get_balance("alice") == Decimal("10.00")
        async with sql_engine.connect() as conn:
            rows = (await conn.execute(select(UserAccountModel.balance_paise))).scalars().all()
        assert rows == [1000]


class TestSqlConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_overdraft_admits_exactly_one(self, file_sql_service, open_account):
        """Two concurrent 60.00 transfers from 100.00 on separate connections."""
        await open_account(file_sql_service, "alice", "Alice", "100.00")
        await open_account(file_sql_service, "bob", "Bob")
        await open_account(file_sql_service, "carol", "Carol")

        results = await asyncio.gather(
            file_sql_service.transfer("alice", "bob", "60.00"),
            file_sql_service.transfer("alice", "carol", "60.00"),
            return_exceptions=True,
        )

        committed = [r for r in results if isinstance(r, str)]
        failed = [r for r in results if isinstance(r, Exception)]
        assert len(committed) == 1
        assert len(failed) == 1
        assert isinstance(failed[0], (InsufficientBalanceError, ConcurrentConflictError))
        assert await file_sql_service.get_balance("alice") == Decimal("40.00")
        bob = await file_sql_service.get_balance("bob")
        carol = await file_sql_service.get_balance("carol")
        assert sorted([bob, carol]) == [Decimal("0.00"), Decimal("60.00")]
        history = await file_sql_service.list_history("alice")
        assert sum(record.amount for record in history) == Decimal("40.00")


class TestSqlBillRequests:
    @pytest.mark.asyncio
    async def test_paying_a_share_marks_it_paid_with_the_transfer(self, sql_service, sql_bill_service, open_account):
        await open_account(sql_service, "alice", "Alice")
        await open_account(sql_service, "bob", "Bob", "50.00")
        await open_account(sql_service, "carol", "Carol", "50.00")
        bill = await sql_bill_service.split_bill("alice", ["bob", "carol"], "30.01", "Dinner")

        transaction_id = await sql_service.transfer("bob", "alice", "15.01", bill_id=bill.bill_id)

        stored = await sql_bill_service.get_request("alice", bill.bill_id)
        assert stored.share_for("bob").status is BillStatus.PAID
        assert stored.share_for("bob").transaction_id == transaction_id
        assert stored.share_for("carol").status is BillStatus.PENDING
        assert await sql_service.get_balance("alice") == Decimal("15.01")

        with pytest.raises(BillRequestClosedError):
            await sql_service.transfer("bob", "alice", "15.01", bill_id=bill.bill_id)
        assert await sql_service.get_balance("bob") == Decimal("34.99")

    @pytest.mark.asyncio
    async def test_declined_share_refuses_settlement_and_rolls_back(
        self, sql_service, sql_bill_service, sql_directory, open_account
    ):
        await open_account(sql_service, "alice", "Alice")
        await open_account(sql_service, "bob", "Bob", "50.00")
        bill = await sql_bill_service.request_money("alice", {"bob": "20.00"}, "Tickets")
        await sql_bill_service.decline("bob", bill.bill_id)
        request = TransferRequest(sender_id="bob", recipient_id="alice", amount=Decimal("20.00"))

        def pay(accounts):
            return build_transfer_legs(request, new_transaction_id(), accounts["bob"], accounts["alice"])

        with pytest.raises(BillRequestClosedError):
            await sql_directory.atomic_update(
                ("bob", "alice"),
                pay,
                settles=BillShareRef(bill_id=bill.bill_id, participant_id="bob"),
            )

        assert await sql_service.get_balance("bob") == Decimal("50.00")
        assert len(await sql_service.list_history("alice")) == 0
        stored = await sql_bill_service.get_request("bob", bill.bill_id)
        assert stored.share_for("bob").status is BillStatus.DECLINED
