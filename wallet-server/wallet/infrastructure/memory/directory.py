"""In-process implementation of the user directory."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Sequence

from wallet.modules.accounts import (
    BillRequestClosedError,
    BillRequestNotFoundError,
    ConcurrentConflictError,
    LedgerEntry,
    Mutation,
    StoreUnavailableError,
    TransactionRecord,
    UserAccount,
    UserDirectory,
)
from wallet.modules.requests.models import BillRequest, BillShareRef, BillStatus

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryUserDirectory(UserDirectory):
    """Dictionary-backed directory with optimistic versioning.

    Snapshots are taken at the start of ``atomic_update``; the mutation result
    is staged on copies and published in a single step that never awaits, so
    no other coroutine can observe one leg without the other.
    """

    def __init__(self, clock: Clock = _utcnow) -> None:
        self._clock = clock
        self._accounts: dict[str, UserAccount] = {}
        self._history: dict[str, dict[str, TransactionRecord]] = {}
        self._bills: dict[str, BillRequest] = {}

    async def get_account(self, user_id: str) -> UserAccount | None:
        return self._accounts.get(user_id)

    async def create_account(self, user_id: str, display_name: str) -> UserAccount:
        existing = self._accounts.get(user_id)
        if existing is not None:
            return existing
        now = self._clock()
        account = UserAccount(
            id=user_id,
            display_name=display_name,
            balance=Decimal("0.00"),
            version=0,
            created_at=now,
            updated_at=now,
        )
        self._accounts[user_id] = account
        self._history[user_id] = {}
        return account

    async def get_transaction(self, user_id: str, transaction_id: str) -> TransactionRecord | None:
        return self._history.get(user_id, {}).get(transaction_id)

    async def find_by_idempotency_key(self, user_id: str, key: str) -> TransactionRecord | None:
        for record in self._history.get(user_id, {}).values():
            if record.idempotency_key == key:
                return record
        return None

    async def list_transactions(self, user_id: str) -> Sequence[TransactionRecord]:
        return list(self._history.get(user_id, {}).values())

    async def atomic_update(
        self,
        user_ids: Sequence[str],
        mutation: Mutation,
        *,
        settles: BillShareRef | None = None,
    ) -> list[TransactionRecord]:
        snapshots = {user_id: self._accounts.get(user_id) for user_id in user_ids}
        entries = mutation(snapshots)
        # Suspension point: concurrent updates may commit between snapshot and publish.
        await self._commit_boundary()

        for user_id, snapshot in snapshots.items():
            current = self._accounts.get(user_id)
            if snapshot is not None and (current is None or current.version != snapshot.version):
                raise ConcurrentConflictError(f"Account {user_id} changed since it was read.")

        accounts = dict(self._accounts)
        history = {user_id: dict(records) for user_id, records in self._history.items()}
        bills = dict(self._bills)
        committed_at = self._clock()
        records: list[TransactionRecord] = []
        touched: set[str] = set()
        try:
            for entry in entries:
                bump = entry.account_id not in touched
                records.append(self._write_leg(accounts, history, entry, committed_at, bump=bump))
                touched.add(entry.account_id)
        except OSError as exc:
            logger.error("Atomic update on %s failed: %s", list(user_ids), exc)
            raise StoreUnavailableError() from exc

        if settles is not None:
            transaction_id = records[0].transaction_id if records else None
            bills[settles.bill_id] = self._settle_share(
                bills, settles, BillStatus.PAID, committed_at, transaction_id=transaction_id
            )

        self._accounts = accounts
        self._history = history
        self._bills = bills
        return records

    async def create_bill_request(self, bill: BillRequest) -> BillRequest:
        if bill.bill_id in self._bills:
            raise ConcurrentConflictError(f"Bill request {bill.bill_id} already exists.")
        stored = replace(bill, created_at=bill.created_at or self._clock())
        self._bills[bill.bill_id] = stored
        return stored

    async def get_bill_request(self, bill_id: str) -> BillRequest | None:
        return self._bills.get(bill_id)

    async def list_bill_requests(self, user_id: str) -> Sequence[BillRequest]:
        return [bill for bill in self._bills.values() if bill.involves(user_id)]

    async def update_bill_share(self, ref: BillShareRef, status: BillStatus) -> BillRequest:
        bill = self._settle_share(self._bills, ref, status, self._clock())
        self._bills[ref.bill_id] = bill
        return bill

    async def _commit_boundary(self) -> None:
        """Yield to the event loop as a real store's commit round-trip would."""
        await asyncio.sleep(0)

    def _write_leg(
        self,
        accounts: dict[str, UserAccount],
        history: dict[str, dict[str, TransactionRecord]],
        entry: LedgerEntry,
        committed_at: datetime,
        *,
        bump: bool,
    ) -> TransactionRecord:
        account = accounts.get(entry.account_id)
        if account is None:
            raise ConcurrentConflictError(f"Account {entry.account_id} was not part of the snapshot.")
        ledger = history.setdefault(entry.account_id, {})
        if entry.transaction_id in ledger:
            raise ConcurrentConflictError(f"Transaction {entry.transaction_id} already recorded.")
        if entry.idempotency_key and any(r.idempotency_key == entry.idempotency_key for r in ledger.values()):
            raise ConcurrentConflictError(f"Idempotency key {entry.idempotency_key} already recorded.")

        balance = account.balance + entry.amount
        if balance < 0:
            raise ConcurrentConflictError(f"Account {entry.account_id} would go negative.")
        accounts[entry.account_id] = replace(
            account,
            balance=balance,
            version=account.version + 1 if bump else account.version,
            updated_at=committed_at,
        )
        record = TransactionRecord(
            transaction_id=entry.transaction_id,
            account_id=entry.account_id,
            amount=entry.amount,
            direction=entry.direction,
            counterparty_id=entry.counterparty_id,
            counterparty_name=entry.counterparty_name,
            timestamp=committed_at,
            idempotency_key=entry.idempotency_key,
        )
        ledger[entry.transaction_id] = record
        return record

    @staticmethod
    def _settle_share(
        bills: dict[str, BillRequest],
        ref: BillShareRef,
        status: BillStatus,
        settled_at: datetime,
        *,
        transaction_id: str | None = None,
    ) -> BillRequest:
        bill = bills.get(ref.bill_id)
        share = bill.share_for(ref.participant_id) if bill is not None else None
        if bill is None or share is None:
            raise BillRequestNotFoundError()
        if share.status is not BillStatus.PENDING:
            raise BillRequestClosedError(f"Bill request {ref.bill_id} is already {share.status.value}.")
        settled = replace(share, status=status, transaction_id=transaction_id, updated_at=settled_at)
        return replace(
            bill,
            shares=tuple(settled if s.participant_id == ref.participant_id else s for s in bill.shares),
        )

