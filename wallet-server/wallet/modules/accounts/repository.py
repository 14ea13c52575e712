"""Repository protocol for the user directory."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Mapping, Optional, Protocol, Sequence

from .models import LedgerEntry, TransactionRecord, UserAccount

if TYPE_CHECKING:
    from wallet.modules.requests.models import BillRequest, BillShareRef, BillStatus

Mutation = Callable[[Mapping[str, Optional[UserAccount]]], Sequence[LedgerEntry]]


class UserDirectory(Protocol):
    """Key-value store of user accounts keyed by user ID.

    ``atomic_update`` is the only write path for balances and history. It loads
    snapshots of the named accounts, hands them to ``mutation`` (which may raise
    a domain error to abort), and commits every returned entry as one unit. The
    commit fails with ``ConcurrentConflictError`` if any touched account changed
    after its snapshot was taken, and leaves no partial state behind on any
    failure. When ``settles`` names a bill share, that share moves from pending
    to paid in the same unit, or the whole unit fails with
    ``BillRequestClosedError``.
    """

    async def get_account(self, user_id: str) -> UserAccount | None:
        ...

    async def create_account(self, user_id: str, display_name: str) -> UserAccount:
        ...

    async def get_transaction(self, user_id: str, transaction_id: str) -> TransactionRecord | None:
        ...

    async def find_by_idempotency_key(self, user_id: str, key: str) -> TransactionRecord | None:
        ...

    async def list_transactions(self, user_id: str) -> Sequence[TransactionRecord]:
        ...

    async def atomic_update(
        self,
        user_ids: Sequence[str],
        mutation: Mutation,
        *,
        settles: BillShareRef | None = None,
    ) -> list[TransactionRecord]:
        ...

    async def create_bill_request(self, bill: BillRequest) -> BillRequest:
        ...

    async def get_bill_request(self, bill_id: str) -> BillRequest | None:
        ...

    async def list_bill_requests(self, user_id: str) -> Sequence[BillRequest]:
        """Bills the user either sent or holds a share of."""
        ...

    async def update_bill_share(self, ref: BillShareRef, status: BillStatus) -> BillRequest:
        """Move a pending share to ``status``; settled shares raise ``BillRequestClosedError``."""
        ...
