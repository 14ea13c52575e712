"""Checks that tie a transfer to the bill share it pays."""

from __future__ import annotations

from decimal import Decimal

from wallet.modules.accounts import (
    BillRequestClosedError,
    BillRequestMismatchError,
    BillRequestNotFoundError,
)

from .models import BillRequest, BillShareRef, BillStatus


def settlement_for(
    bill: BillRequest | None,
    payer_id: str,
    payee_id: str,
    amount: Decimal,
) -> BillShareRef:
    """Return the share ``payer_id`` settles by paying ``amount`` to ``payee_id``.

    The payee must be the requester and the amount must match the share
    exactly. Only pending shares can be paid.
    """
    share = bill.share_for(payer_id) if bill is not None else None
    if bill is None or share is None:
        raise BillRequestNotFoundError()
    if payee_id != bill.requester_id or amount != share.amount:
        raise BillRequestMismatchError()
    if share.status is not BillStatus.PENDING:
        raise BillRequestClosedError(f"Bill request {bill.bill_id} is already {share.status.value}.")
    return BillShareRef(bill_id=bill.bill_id, participant_id=payer_id)
