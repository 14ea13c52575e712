"""Bill request endpoints: request money, split a bill, list and decline requests.

A request is paid through ``POST /wallet/transfers`` with its ``bill_id``.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status

from wallet.api.deps import get_bill_request_service
from wallet.core.security import get_current_user_id
from wallet.modules.requests import BillRequest, BillRequestService, BillStatus
from wallet.schemas import (
    BillRequestListResponse,
    BillRequestResponse,
    BillShareResponse,
    MoneyRequestCreateRequest,
    SplitBillCreateRequest,
)

from .wallet import ERROR_RESPONSES

router = APIRouter()


def _to_response(bill: BillRequest, user_id: str) -> BillRequestResponse:
    return BillRequestResponse(
        bill_id=bill.bill_id,
        requester_id=bill.requester_id,
        requester_name=bill.requester_name,
        description=bill.description,
        total=bill.total,
        status=bill.status_for(user_id).value,
        shares=[
            BillShareResponse(
                participant_id=share.participant_id,
                participant_name=share.participant_name,
                amount=share.amount,
                status=share.status.value,
                transaction_id=share.transaction_id,
                updated_at=share.updated_at,
            )
            for share in bill.shares
        ],
        created_at=bill.created_at,
    )


@router.post(
    "",
    response_model=BillRequestResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    summary="Request money from one or more users",
)
async def request_money(
    payload: MoneyRequestCreateRequest,
    user_id: str = Depends(get_current_user_id),
    service: BillRequestService = Depends(get_bill_request_service),
) -> BillRequestResponse:
    bill = await service.request_money(user_id, payload.shares, payload.description)
    return _to_response(bill, user_id)


@router.post(
    "/split",
    response_model=BillRequestResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    summary="Split a bill evenly between participants",
)
async def split_bill(
    payload: SplitBillCreateRequest,
    user_id: str = Depends(get_current_user_id),
    service: BillRequestService = Depends(get_bill_request_service),
) -> BillRequestResponse:
    bill = await service.split_bill(user_id, payload.participant_ids, payload.total, payload.description)
    return _to_response(bill, user_id)


@router.get("", response_model=BillRequestListResponse, responses=ERROR_RESPONSES, summary="List sent and received requests")
async def list_requests(
    status_filter: Optional[BillStatus] = Query(default=None, alias="status"),
    user_id: str = Depends(get_current_user_id),
    service: BillRequestService = Depends(get_bill_request_service),
) -> BillRequestListResponse:
    bills = await service.list_requests(user_id, status=status_filter)
    return BillRequestListResponse(total=len(bills), requests=[_to_response(bill, user_id) for bill in bills])


@router.get("/{bill_id}", response_model=BillRequestResponse, responses=ERROR_RESPONSES, summary="Get one bill request")
async def get_request(
    bill_id: str = Path(..., min_length=1, max_length=64),
    user_id: str = Depends(get_current_user_id),
    service: BillRequestService = Depends(get_bill_request_service),
) -> BillRequestResponse:
    bill = await service.get_request(user_id, bill_id)
    return _to_response(bill, user_id)


@router.post(
    "/{bill_id}/decline",
    response_model=BillRequestResponse,
    responses=ERROR_RESPONSES,
    summary="Decline the caller's share of a bill request",
)
async def decline_request(
    bill_id: str = Path(..., min_length=1, max_length=64),
    user_id: str = Depends(get_current_user_id),
    service: BillRequestService = Depends(get_bill_request_service),
) -> BillRequestResponse:
    bill = await service.decline(user_id, bill_id)
    return _to_response(bill, user_id)
