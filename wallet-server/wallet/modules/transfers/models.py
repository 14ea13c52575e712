"""Domain models for peer-to-peer transfers."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from wallet.modules.accounts import Direction, LedgerEntry, UserAccount

UNKNOWN_RECIPIENT = "Unknown Recipient"
UNKNOWN_SENDER = "Unknown Sender"
TOPUP_COUNTERPARTY = "Wallet top-up"


class TransferState(str, Enum):
    VALIDATING = "validating"
    APPLYING = "applying"
    COMMITTED = "committed"
    REJECTED = "rejected"
    ROLLED_BACK = "rolled_back"


@dataclass(slots=True, frozen=True)
class TransferRequest:
    sender_id: str
    recipient_id: str
    amount: Decimal
    idempotency_key: Optional[str] = None
    bill_id: Optional[str] = None


def new_transaction_id(now: datetime | None = None) -> str:
    """Time-ordered ID: UTC timestamp down to microseconds plus a random suffix."""
    moment = now or datetime.now(timezone.utc)
    return f"{moment:%Y%m%d%H%M%S%f}{secrets.token_hex(3)}"


def build_transfer_legs(
    request: TransferRequest,
    transaction_id: str,
    sender: UserAccount,
    recipient: UserAccount,
) -> list[LedgerEntry]:
    debit = LedgerEntry(
        account_id=sender.id,
        transaction_id=transaction_id,
        amount=-request.amount,
        direction=Direction.DEBIT,
        counterparty_id=recipient.id,
        counterparty_name=recipient.display_name or UNKNOWN_RECIPIENT,
        idempotency_key=request.idempotency_key,
    )
    credit = LedgerEntry(
        account_id=recipient.id,
        transaction_id=transaction_id,
        amount=request.amount,
        direction=Direction.CREDIT,
        counterparty_id=sender.id,
        counterparty_name=sender.display_name or UNKNOWN_SENDER,
    )
    return [debit, credit]


def build_topup_leg(
    account: UserAccount,
    transaction_id: str,
    amount: Decimal,
    idempotency_key: str | None = None,
) -> LedgerEntry:
    return LedgerEntry(
        account_id=account.id,
        transaction_id=transaction_id,
        amount=amount,
        direction=Direction.CREDIT,
        counterparty_id=None,
        counterparty_name=TOPUP_COUNTERPARTY,
        idempotency_key=idempotency_key,
    )
