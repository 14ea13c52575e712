"""Domain models for wallet accounts and their transaction history."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

CENT = Decimal("0.01")


class Direction(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


@dataclass(slots=True, frozen=True)
class UserAccount:
    id: str
    display_name: str
    balance: Decimal
    version: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(slots=True, frozen=True)
class TransactionRecord:
    transaction_id: str
    account_id: str
    amount: Decimal
    direction: Direction
    counterparty_id: Optional[str]
    counterparty_name: str
    timestamp: datetime
    idempotency_key: Optional[str] = None


@dataclass(slots=True, frozen=True)
class LedgerEntry:
    """One leg to be written by an atomic update: a balance delta plus its history record."""

    account_id: str
    transaction_id: str
    amount: Decimal
    direction: Direction
    counterparty_id: Optional[str]
    counterparty_name: str
    idempotency_key: Optional[str] = None


def to_minor_units(amount: Decimal) -> int:
    return int((amount * 100).to_integral_value())


def from_minor_units(value: int) -> Decimal:
    return (Decimal(value) / 100).quantize(CENT)
