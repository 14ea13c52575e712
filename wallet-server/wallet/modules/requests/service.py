"""Bill request service: ask other users for money and track each share."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping, Optional, Sequence

from wallet.core.config import TransferSettings
from wallet.modules.accounts import (
    BillRequestClosedError,
    BillRequestNotFoundError,
    InvalidBillRequestError,
    RecipientNotFoundError,
    UserDirectory,
    UserNotFoundError,
)
from wallet.modules.accounts.models import CENT
from wallet.modules.transfers.validation import AmountInput, parse_amount

from .models import BillRequest, BillShare, BillShareRef, BillStatus, new_bill_id, split_evenly

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BillRequestService:
    """Creates, lists and declines bill requests.

    Paying a share is a transfer: ``LedgerTransferService.transfer`` with a
    ``bill_id`` marks the share paid in the same atomic update that moves the
    money.
    """

    directory: UserDirectory
    settings: TransferSettings = field(default_factory=TransferSettings)

    async def request_money(
        self,
        requester_id: str,
        shares: Mapping[str, AmountInput],
        description: str,
    ) -> BillRequest:
        """Ask each participant for their own amount."""
        amounts = {participant_id: parse_amount(raw, self.settings.max_amount) for participant_id, raw in shares.items()}
        total = sum(amounts.values(), Decimal("0.00"))
        if total > self.settings.max_amount:
            raise InvalidBillRequestError(f"Bill total must not exceed {self.settings.max_amount}.")
        return await self._create(requester_id, amounts, total, description)

    async def split_bill(
        self,
        requester_id: str,
        participant_ids: Sequence[str],
        total: AmountInput,
        description: str,
    ) -> BillRequest:
        """Split ``total`` evenly between the participants; the requester's own part is not requested."""
        value = parse_amount(total, self.settings.max_amount)
        if not participant_ids:
            raise InvalidBillRequestError()
        if len(set(participant_ids)) != len(participant_ids):
            raise InvalidBillRequestError("Each participant may appear only once.")
        if value < CENT * len(participant_ids):
            raise InvalidBillRequestError("Bill total is too small to split between the participants.")
        amounts = dict(zip(participant_ids, split_evenly(value, len(participant_ids))))
        return await self._create(requester_id, amounts, value, description)

    async def list_requests(
        self,
        user_id: str,
        *,
        status: Optional[BillStatus] = None,
    ) -> list[BillRequest]:
        """Requests the user sent or received, newest first."""
        await self._require_account(user_id)
        bills = await self.directory.list_bill_requests(user_id)
        if status is not None:
            bills = [bill for bill in bills if bill.status_for(user_id) is status]
        return sorted(bills, key=lambda bill: (bill.created_at, bill.bill_id), reverse=True)

    async def get_request(self, user_id: str, bill_id: str) -> BillRequest:
        bill = await self.directory.get_bill_request(bill_id)
        if bill is None or not bill.involves(user_id):
            raise BillRequestNotFoundError()
        return bill

    async def decline(self, participant_id: str, bill_id: str) -> BillRequest:
        bill = await self.directory.get_bill_request(bill_id)
        share = bill.share_for(participant_id) if bill is not None else None
        if share is None:
            raise BillRequestNotFoundError()
        if share.status is not BillStatus.PENDING:
            raise BillRequestClosedError(f"Bill request {bill_id} is already {share.status.value}.")
        updated = await self.directory.update_bill_share(
            BillShareRef(bill_id=bill_id, participant_id=participant_id),
            BillStatus.DECLINED,
        )
        logger.info("Bill request %s declined by %s", bill_id, participant_id)
        return updated

    async def _create(
        self,
        requester_id: str,
        amounts: Mapping[str, Decimal],
        total: Decimal,
        description: str,
    ) -> BillRequest:
        description = description.strip()
        if not description or not amounts:
            raise InvalidBillRequestError()
        if requester_id in amounts:
            raise InvalidBillRequestError("The requester cannot be asked to pay their own bill.")

        requester = await self._require_account(requester_id)
        shares = []
        for participant_id, amount in amounts.items():
            participant = await self.directory.get_account(participant_id)
            if participant is None:
                raise RecipientNotFoundError(f"Participant {participant_id} not found.")
            shares.append(
                BillShare(
                    participant_id=participant.id,
                    participant_name=participant.display_name or participant.id,
                    amount=amount,
                )
            )

        bill = await self.directory.create_bill_request(
            BillRequest(
                bill_id=new_bill_id(),
                requester_id=requester.id,
                requester_name=requester.display_name or requester.id,
                description=description,
                total=total,
                shares=tuple(shares),
            )
        )
        logger.info(
            "Bill request %s created by %s for %s across %d participant(s)",
            bill.bill_id,
            requester_id,
            total,
            len(shares),
        )
        return bill

    async def _require_account(self, user_id: str):
        account = await self.directory.get_account(user_id)
        if account is None:
            raise UserNotFoundError()
        return account
