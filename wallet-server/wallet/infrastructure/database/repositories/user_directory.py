"""SQLAlchemy implementation of the user directory."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import or_, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wallet.infrastructure.database.models import BillRequest as BillRequestModel
from wallet.infrastructure.database.models import BillShare as BillShareModel
from wallet.infrastructure.database.models import UserAccount as UserAccountModel
from wallet.infrastructure.database.models import WalletTransaction as WalletTransactionModel
from wallet.modules.accounts import (
    BillRequestClosedError,
    BillRequestNotFoundError,
    ConcurrentConflictError,
    Direction,
    LedgerEntry,
    Mutation,
    StoreUnavailableError,
    TransactionRecord,
    UserAccount,
    UserDirectory,
)
from wallet.modules.accounts.models import from_minor_units, to_minor_units
from wallet.modules.requests.models import BillRequest, BillShare, BillShareRef, BillStatus

logger = logging.getLogger(__name__)

# Dialects that honour SELECT ... FOR UPDATE.
_ROW_LOCKING_DIALECTS = {"postgresql", "mysql", "mariadb", "oracle"}


class SqlUserDirectory(UserDirectory):
    """User directory backed by SQLAlchemy models.

    Each call runs in its own session. ``atomic_update`` combines a row lock
    (where the backend supports one) with a version check on every touched
    account, so a stale snapshot can never be committed.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_account(self, user_id: str) -> UserAccount | None:
        async with self._session_factory() as session:
            model = await session.get(UserAccountModel, user_id)
            return self._to_account(model) if model else None

    async def create_account(self, user_id: str, display_name: str) -> UserAccount:
        async with self._session_factory() as session:
            model = UserAccountModel(id=user_id, display_name=display_name, balance_paise=0, version=0)
            session.add(model)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                existing = await session.get(UserAccountModel, user_id)
                if existing is None:
                    raise
                return self._to_account(existing)
            await session.refresh(model)
            return self._to_account(model)

    async def get_transaction(self, user_id: str, transaction_id: str) -> TransactionRecord | None:
        async with self._session_factory() as session:
            model = await session.get(WalletTransactionModel, (user_id, transaction_id))
            return self._to_record(model) if model else None

    async def find_by_idempotency_key(self, user_id: str, key: str) -> TransactionRecord | None:
        stmt = select(WalletTransactionModel).where(
            WalletTransactionModel.account_id == user_id,
            WalletTransactionModel.idempotency_key == key,
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            model = result.scalars().first()
            return self._to_record(model) if model else None

    async def list_transactions(self, user_id: str) -> Sequence[TransactionRecord]:
        stmt = select(WalletTransactionModel).where(WalletTransactionModel.account_id == user_id)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [self._to_record(model) for model in result.scalars().all()]

    async def atomic_update(
        self,
        user_ids: Sequence[str],
        mutation: Mutation,
        *,
        settles: BillShareRef | None = None,
    ) -> list[TransactionRecord]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    snapshots = await self._load_snapshots(session, user_ids)
                    entries = mutation(snapshots)
                    committed_at = datetime.now(timezone.utc)

                    deltas: dict[str, int] = defaultdict(int)
                    for entry in entries:
                        deltas[entry.account_id] += to_minor_units(entry.amount)
                    for account_id, delta in deltas.items():
                        snapshot = snapshots.get(account_id)
                        if snapshot is None:
                            raise ConcurrentConflictError(f"Account {account_id} was not part of the snapshot.")
                        await self._apply_delta(session, snapshot, delta)

                    models = []
                    for entry in entries:
                        models.append(await self._write_leg(session, entry, committed_at))
                    await session.flush()
                    records = [self._to_record(model) for model in models]
                    if settles is not None:
                        await self._settle_share(
                            session,
                            settles,
                            BillStatus.PAID,
                            committed_at,
                            transaction_id=records[0].transaction_id if records else None,
                        )
        except IntegrityError as exc:
            logger.warning("Atomic update on %s hit a constraint: %s", list(user_ids), exc.orig)
            raise ConcurrentConflictError() from exc
        except DBAPIError as exc:
            logger.error("Atomic update on %s failed: %s", list(user_ids), exc)
            raise StoreUnavailableError() from exc
        return records

    async def create_bill_request(self, bill: BillRequest) -> BillRequest:
        model = BillRequestModel(
            id=bill.bill_id,
            requester_id=bill.requester_id,
            requester_name=bill.requester_name,
            description=bill.description,
            total_paise=to_minor_units(bill.total),
            created_at=bill.created_at or datetime.now(timezone.utc),
            shares=[
                BillShareModel(
                    participant_id=share.participant_id,
                    position=position,
                    participant_name=share.participant_name,
                    amount_paise=to_minor_units(share.amount),
                    status=share.status.value,
                )
                for position, share in enumerate(bill.shares)
            ],
        )
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(model)
                stored = self._to_bill(model)
        except IntegrityError as exc:
            logger.warning("Bill request %s hit a constraint: %s", bill.bill_id, exc.orig)
            raise ConcurrentConflictError() from exc
        except DBAPIError as exc:
            logger.error("Bill request %s could not be stored: %s", bill.bill_id, exc)
            raise StoreUnavailableError() from exc
        return stored

    async def get_bill_request(self, bill_id: str) -> BillRequest | None:
        async with self._session_factory() as session:
            model = await session.get(BillRequestModel, bill_id)
            return self._to_bill(model) if model else None

    async def list_bill_requests(self, user_id: str) -> Sequence[BillRequest]:
        participating = select(BillShareModel.bill_id).where(BillShareModel.participant_id == user_id)
        stmt = select(BillRequestModel).where(
            or_(BillRequestModel.requester_id == user_id, BillRequestModel.id.in_(participating))
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [self._to_bill(model) for model in result.scalars().all()]

    async def update_bill_share(self, ref: BillShareRef, status: BillStatus) -> BillRequest:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await self._settle_share(session, ref, status, datetime.now(timezone.utc))
        except DBAPIError as exc:
            logger.error("Bill request %s could not be updated: %s", ref.bill_id, exc)
            raise StoreUnavailableError() from exc
        bill = await self.get_bill_request(ref.bill_id)
        assert bill is not None
        return bill

    async def _settle_share(
        self,
        session: AsyncSession,
        ref: BillShareRef,
        status: BillStatus,
        settled_at: datetime,
        *,
        transaction_id: str | None = None,
    ) -> None:
        stmt = (
            update(BillShareModel)
            .where(
                BillShareModel.bill_id == ref.bill_id,
                BillShareModel.participant_id == ref.participant_id,
                BillShareModel.status == BillStatus.PENDING.value,
            )
            .values(status=status.value, transaction_id=transaction_id, updated_at=settled_at)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        if result.rowcount == 1:
            return
        current = await session.get(BillShareModel, (ref.bill_id, ref.participant_id))
        if current is None:
            raise BillRequestNotFoundError()
        raise BillRequestClosedError(f"Bill request {ref.bill_id} is already {current.status}.")

    async def _load_snapshots(self, session: AsyncSession, user_ids: Sequence[str]) -> dict[str, UserAccount | None]:
        stmt = select(UserAccountModel).where(UserAccountModel.id.in_(list(user_ids)))
        if session.bind.dialect.name in _ROW_LOCKING_DIALECTS:
            stmt = stmt.with_for_update()
        result = await session.execute(stmt)
        found = {model.id: self._to_account(model) for model in result.scalars().all()}
        return {user_id: found.get(user_id) for user_id in user_ids}

    async def _apply_delta(self, session: AsyncSession, snapshot: UserAccount, delta: int) -> None:
        stmt = (
            update(UserAccountModel)
            .where(
                UserAccountModel.id == snapshot.id,
                UserAccountModel.version == snapshot.version,
            )
            .values(
                balance_paise=UserAccountModel.balance_paise + delta,
                version=UserAccountModel.version + 1,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        if result.rowcount != 1:
            raise ConcurrentConflictError(f"Account {snapshot.id} changed since it was read.")

    async def _write_leg(self, session: AsyncSession, entry: LedgerEntry, committed_at: datetime) -> WalletTransactionModel:
        model = WalletTransactionModel(
            account_id=entry.account_id,
            transaction_id=entry.transaction_id,
            amount_paise=to_minor_units(entry.amount),
            direction=entry.direction.value,
            counterparty_id=entry.counterparty_id,
            counterparty_name=entry.counterparty_name,
            idempotency_key=entry.idempotency_key,
            created_at=committed_at,
        )
        session.add(model)
        await session.flush()
        return model

    @staticmethod
    def _to_account(model: UserAccountModel) -> UserAccount:
        return UserAccount(
            id=model.id,
            display_name=model.display_name or "",
            balance=from_minor_units(model.balance_paise),
            version=model.version,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    @staticmethod
    def _to_record(model: WalletTransactionModel) -> TransactionRecord:
        return TransactionRecord(
            transaction_id=model.transaction_id,
            account_id=model.account_id,
            amount=from_minor_units(model.amount_paise),
            direction=Direction(model.direction),
            counterparty_id=model.counterparty_id,
            counterparty_name=model.counterparty_name,
            timestamp=model.created_at,
            idempotency_key=model.idempotency_key,
        )

    @staticmethod
    def _to_bill(model: BillRequestModel) -> BillRequest:
        return BillRequest(
            bill_id=model.id,
            requester_id=model.requester_id,
            requester_name=model.requester_name,
            description=model.description,
            total=from_minor_units(model.total_paise),
            shares=tuple(
                BillShare(
                    participant_id=share.participant_id,
                    participant_name=share.participant_name,
                    amount=from_minor_units(share.amount_paise),
                    status=BillStatus(share.status),
                    transaction_id=share.transaction_id,
                    updated_at=share.updated_at,
                )
                for share in model.shares
            ),
            created_at=model.created_at,
        )
