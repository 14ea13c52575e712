"""Domain models for bill requests."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_DOWN, Decimal
from enum import Enum
from typing import Optional

from wallet.modules.accounts.models import CENT


class BillStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    DECLINED = "declined"


@dataclass(slots=True, frozen=True)
class BillShare:
    """The part of a bill owed by one participant."""

    participant_id: str
    participant_name: str
    amount: Decimal
    status: BillStatus = BillStatus.PENDING
    transaction_id: Optional[str] = None
    updated_at: Optional[datetime] = None


@dataclass(slots=True, frozen=True)
class BillShareRef:
    bill_id: str
    participant_id: str


@dataclass(slots=True, frozen=True)
class BillRequest:
    bill_id: str
    requester_id: str
    requester_name: str
    description: str
    total: Decimal
    shares: tuple[BillShare, ...]
    created_at: Optional[datetime] = None

    @property
    def status(self) -> BillStatus:
        """Pending while any share is open, paid once one share was paid, else declined."""
        statuses = {share.status for share in self.shares}
        if BillStatus.PENDING in statuses:
            return BillStatus.PENDING
        if BillStatus.PAID in statuses:
            return BillStatus.PAID
        return BillStatus.DECLINED

    def share_for(self, participant_id: str) -> BillShare | None:
        for share in self.shares:
            if share.participant_id == participant_id:
                return share
        return None

    def involves(self, user_id: str) -> bool:
        return user_id == self.requester_id or self.share_for(user_id) is not None

    def status_for(self, user_id: str) -> BillStatus:
        """The requester sees the overall status; a participant sees their own share."""
        share = self.share_for(user_id)
        return share.status if share is not None else self.status


def new_bill_id(now: datetime | None = None) -> str:
    moment = now or datetime.now(timezone.utc)
    return f"bill-{moment:%Y%m%d%H%M%S%f}{secrets.token_hex(3)}"


def split_evenly(total: Decimal, count: int) -> list[Decimal]:
    """Split ``total`` into ``count`` shares that add back up to it exactly.

    Every share gets the total divided evenly, rounded down to the paisa; the
    leftover paise go one each to the first shares.
    """
    base = (total / count).quantize(CENT, rounding=ROUND_DOWN)
    leftover = int((total - base * count) / CENT)
    return [base + CENT if index < leftover else base for index in range(count)]
