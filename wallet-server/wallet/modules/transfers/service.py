"""Ledger transfer service: validated, atomic balance transfers between two accounts."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Awaitable, Callable, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from wallet.core.config import TransferSettings
from wallet.modules.accounts import (
    BalanceLimitExceededError,
    ConcurrentConflictError,
    Direction,
    IdempotencyKeyReusedError,
    InsufficientBalanceError,
    LedgerEntry,
    RecipientNotFoundError,
    SenderNotFoundError,
    StoreUnavailableError,
    TransactionRecord,
    UserAccount,
    UserDirectory,
    UserNotFoundError,
    WalletError,
)
from wallet.modules.requests.models import BillShareRef
from wallet.modules.requests.validation import settlement_for

from .history import HistoryOrder, TransactionHistory
from .models import (
    TransferRequest,
    TransferState,
    build_topup_leg,
    build_transfer_legs,
    new_transaction_id,
)
from .validation import AmountInput, ensure_distinct_parties, parse_amount

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class LedgerTransferService:
    directory: UserDirectory
    settings: TransferSettings = field(default_factory=TransferSettings)

    @classmethod
    def with_session_factory(
        cls,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Optional[TransferSettings] = None,
    ) -> "LedgerTransferService":
        from wallet.infrastructure.database.repositories.user_directory import SqlUserDirectory

        return cls(SqlUserDirectory(session_factory), settings or TransferSettings())

    async def register_account(self, user_id: str, display_name: str) -> UserAccount:
        account = await self.directory.get_account(user_id)
        if account is None:
            account = await self.directory.create_account(user_id, display_name)
            logger.info("Registered account %s", user_id)
        return account

    async def get_account(self, user_id: str) -> UserAccount:
        account = await self.directory.get_account(user_id)
        if account is None:
            raise UserNotFoundError()
        return account

    async def get_balance(self, user_id: str) -> Decimal:
        account = await self.get_account(user_id)
        return account.balance

    async def list_history(
        self,
        user_id: str,
        *,
        order: HistoryOrder = HistoryOrder.DATE_DESC,
    ) -> TransactionHistory:
        await self.get_account(user_id)
        records = await self.directory.list_transactions(user_id)
        return TransactionHistory(records, order)

    async def get_transaction(self, user_id: str, transaction_id: str) -> TransactionRecord | None:
        """Point lookup used to settle an in-doubt transfer before retrying it."""
        await self.get_account(user_id)
        return await self.directory.get_transaction(user_id, transaction_id)

    async def transfer(
        self,
        sender_id: str,
        recipient_id: str,
        amount: AmountInput,
        *,
        idempotency_key: str | None = None,
        bill_id: str | None = None,
    ) -> str:
        """Move ``amount`` from ``sender_id`` to ``recipient_id``.

        Returns the transaction ID shared by the debit and credit records. The
        balance check runs inside the atomic update against the same snapshot
        the commit is version-checked against; a concurrent modification of
        either account restarts the whole unit, up to ``max_attempts`` times.

        With ``bill_id`` the transfer pays the sender's share of that bill
        request; the share is marked paid in the same atomic update.
        """
        self._log_state(TransferState.VALIDATING, sender_id, recipient_id)
        try:
            value = parse_amount(amount, self.settings.max_amount)
            ensure_distinct_parties(sender_id, recipient_id)
        except WalletError as exc:
            self._log_rejected(exc, sender_id, recipient_id)
            raise

        request = TransferRequest(
            sender_id=sender_id,
            recipient_id=recipient_id,
            amount=value,
            idempotency_key=idempotency_key,
            bill_id=bill_id,
        )
        return await self._with_retries(lambda: self._apply_transfer(request))

    async def top_up(
        self,
        user_id: str,
        amount: AmountInput,
        *,
        idempotency_key: str | None = None,
    ) -> str:
        value = parse_amount(amount, self.settings.max_amount)
        return await self._with_retries(lambda: self._apply_topup(user_id, value, idempotency_key))

    async def _with_retries(self, operation: Callable[[], Awaitable[str]]) -> str:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.settings.max_attempts),
            wait=wait_exponential(
                multiplier=self.settings.backoff_multiplier,
                min=self.settings.backoff_min,
                max=self.settings.backoff_max,
            ),
            retry=retry_if_exception_type(ConcurrentConflictError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                transaction_id = await operation()
        return transaction_id

    async def _apply_transfer(self, request: TransferRequest) -> str:
        if request.idempotency_key:
            replayed = await self._replayed_transaction(
                request.sender_id,
                request.idempotency_key,
                lambda record: record.direction is Direction.DEBIT
                and record.counterparty_id == request.recipient_id
                and record.amount == -request.amount,
            )
            if replayed is not None:
                logger.info(
                    "Transfer %s replayed for idempotency key %s",
                    replayed,
                    request.idempotency_key,
                )
                return replayed

        settles: BillShareRef | None = None
        if request.bill_id:
            try:
                bill = await self.directory.get_bill_request(request.bill_id)
                settles = settlement_for(bill, request.sender_id, request.recipient_id, request.amount)
            except WalletError as exc:
                self._log_rejected(exc, request.sender_id, request.recipient_id)
                raise

        transaction_id = new_transaction_id()

        def mutation(accounts: Mapping[str, Optional[UserAccount]]) -> list[LedgerEntry]:
            sender = accounts.get(request.sender_id)
            if sender is None:
                raise SenderNotFoundError()
            recipient = accounts.get(request.recipient_id)
            if recipient is None:
                raise RecipientNotFoundError()
            if sender.balance < request.amount:
                raise InsufficientBalanceError()
            self._ensure_within_ceiling(recipient, request.amount)
            return build_transfer_legs(request, transaction_id, sender, recipient)

        self._log_state(TransferState.APPLYING, request.sender_id, request.recipient_id, transaction_id)
        try:
            await self.directory.atomic_update(
                (request.sender_id, request.recipient_id),
                mutation,
                settles=settles,
            )
        except (ConcurrentConflictError, StoreUnavailableError) as exc:
            logger.warning("Transfer %s %s: %s", transaction_id, TransferState.ROLLED_BACK.value, exc.code)
            raise
        except WalletError as exc:
            self._log_rejected(exc, request.sender_id, request.recipient_id)
            raise

        logger.info(
            "Transfer %s %s: %s -> %s amount=%s",
            transaction_id,
            TransferState.COMMITTED.value,
            request.sender_id,
            request.recipient_id,
            request.amount,
        )
        return transaction_id

    async def _apply_topup(self, user_id: str, amount: Decimal, idempotency_key: str | None) -> str:
        if idempotency_key:
            replayed = await self._replayed_transaction(
                user_id,
                idempotency_key,
                lambda record: record.direction is Direction.CREDIT
                and record.counterparty_id is None
                and record.amount == amount,
            )
            if replayed is not None:
                return replayed

        transaction_id = new_transaction_id()

        def mutation(accounts: Mapping[str, Optional[UserAccount]]) -> list[LedgerEntry]:
            account = accounts.get(user_id)
            if account is None:
                raise UserNotFoundError()
            self._ensure_within_ceiling(account, amount)
            return [build_topup_leg(account, transaction_id, amount, idempotency_key)]

        await self.directory.atomic_update((user_id,), mutation)
        logger.info("Top-up %s committed for %s amount=%s", transaction_id, user_id, amount)
        return transaction_id

    async def _replayed_transaction(
        self,
        user_id: str,
        key: str,
        matches: Callable[[TransactionRecord], bool],
    ) -> str | None:
        record = await self.directory.find_by_idempotency_key(user_id, key)
        if record is None:
            return None
        if not matches(record):
            raise IdempotencyKeyReusedError()
        return record.transaction_id

    def _ensure_within_ceiling(self, account: UserAccount, credit: Decimal) -> None:
        if account.balance + credit > self.settings.max_balance:
            raise BalanceLimitExceededError()

    @staticmethod
    def _log_state(state: TransferState, sender_id: str, recipient_id: str, transaction_id: str | None = None) -> None:
        logger.debug("Transfer %s -> %s [%s] %s", sender_id, recipient_id, transaction_id or "-", state.value)

    @staticmethod
    def _log_rejected(exc: WalletError, sender_id: str, recipient_id: str) -> None:
        logger.info(
            "Transfer %s -> %s %s: %s",
            sender_id,
            recipient_id,
            TransferState.REJECTED.value,
            exc.code,
        )
