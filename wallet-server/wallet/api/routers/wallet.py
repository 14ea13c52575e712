"""Wallet endpoints: account registration, balance, history, transfers and top-ups."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Path, Query, status

from wallet.core.config import Settings, get_settings
from wallet.core.security import get_current_user_id
from wallet.api.deps import get_transfer_service, require_direct_topups
from wallet.modules.accounts import TransactionRecord
from wallet.modules.transfers import HistoryOrder, LedgerTransferService
from wallet.schemas import (
    AccountRegisterRequest,
    AccountResponse,
    BalanceResponse,
    ErrorResponse,
    TopupCreateRequest,
    TransactionCreatedResponse,
    TransactionHistoryResponse,
    TransactionRecordResponse,
    TransferCreateRequest,
)

router = APIRouter()

ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    status.HTTP_409_CONFLICT: {"model": ErrorResponse},
    status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
}


def _to_record_response(record: TransactionRecord) -> TransactionRecordResponse:
    return TransactionRecordResponse(
        transaction_id=record.transaction_id,
        amount=record.amount,
        direction=record.direction.value,
        counterparty_id=record.counterparty_id,
        counterparty_name=record.counterparty_name,
        timestamp=record.timestamp,
    )


@router.put("/account", response_model=AccountResponse, summary="Register the caller's wallet account")
async def register_account(
    payload: AccountRegisterRequest,
    user_id: str = Depends(get_current_user_id),
    service: LedgerTransferService = Depends(get_transfer_service),
    settings: Settings = Depends(get_settings),
) -> AccountResponse:
    account = await service.register_account(user_id, payload.display_name)
    return AccountResponse(
        id=account.id,
        display_name=account.display_name,
        balance=account.balance,
        currency=settings.transfer.currency,
        created_at=account.created_at,
    )


@router.get("/account", response_model=AccountResponse, responses=ERROR_RESPONSES, summary="Get the caller's account")
async def get_account(
    user_id: str = Depends(get_current_user_id),
    service: LedgerTransferService = Depends(get_transfer_service),
    settings: Settings = Depends(get_settings),
) -> AccountResponse:
    account = await service.get_account(user_id)
    return AccountResponse(
        id=account.id,
        display_name=account.display_name,
        balance=account.balance,
        currency=settings.transfer.currency,
        created_at=account.created_at,
    )


@router.get("/balance", response_model=BalanceResponse, responses=ERROR_RESPONSES, summary="Get the committed balance")
async def get_balance(
    user_id: str = Depends(get_current_user_id),
    service: LedgerTransferService = Depends(get_transfer_service),
    settings: Settings = Depends(get_settings),
) -> BalanceResponse:
    balance = await service.get_balance(user_id)
    return BalanceResponse(balance=balance, currency=settings.transfer.currency)


@router.get(
    "/history",
    response_model=TransactionHistoryResponse,
    responses=ERROR_RESPONSES,
    summary="List transaction history",
)
async def list_history(
    order: HistoryOrder = Query(default=HistoryOrder.DATE_DESC),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    user_id: str = Depends(get_current_user_id),
    service: LedgerTransferService = Depends(get_transfer_service),
) -> TransactionHistoryResponse:
    history = await service.list_history(user_id, order=order)
    page = history[offset:offset + limit]
    return TransactionHistoryResponse(
        total=len(history),
        order=history.order.value,
        transactions=[_to_record_response(record) for record in page],
    )


@router.get(
    "/history/{transaction_id}",
    response_model=TransactionRecordResponse,
    responses=ERROR_RESPONSES,
    summary="Look up one transaction, e.g. to settle a timed-out transfer",
)
async def get_transaction(
    transaction_id: str = Path(..., min_length=1, max_length=64),
    user_id: str = Depends(get_current_user_id),
    service: LedgerTransferService = Depends(get_transfer_service),
) -> TransactionRecordResponse:
    record = await service.get_transaction(user_id, transaction_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found")
    return _to_record_response(record)


@router.post(
    "/transfers",
    response_model=TransactionCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    summary="Transfer money to another user",
)
async def create_transfer(
    payload: TransferCreateRequest,
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key", max_length=128),
    user_id: str = Depends(get_current_user_id),
    service: LedgerTransferService = Depends(get_transfer_service),
    settings: Settings = Depends(get_settings),
) -> TransactionCreatedResponse:
    transaction_id = await service.transfer(
        user_id,
        payload.recipient_id,
        payload.amount,
        idempotency_key=payload.idempotency_key or idempotency_key,
        bill_id=payload.bill_id,
    )
    balance = await service.get_balance(user_id)
    return TransactionCreatedResponse(
        transaction_id=transaction_id,
        balance=balance,
        currency=settings.transfer.currency,
    )


@router.post(
    "/topups",
    response_model=TransactionCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(require_direct_topups)],
    summary="Add money to the caller's wallet (development only, no payment step)",
)
async def create_topup(
    payload: TopupCreateRequest,
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key", max_length=128),
    user_id: str = Depends(get_current_user_id),
    service: LedgerTransferService = Depends(get_transfer_service),
    settings: Settings = Depends(get_settings),
) -> TransactionCreatedResponse:
    transaction_id = await service.top_up(
        user_id,
        payload.amount,
        idempotency_key=payload.idempotency_key or idempotency_key,
    )
    balance = await service.get_balance(user_id)
    return TransactionCreatedResponse(
        transaction_id=transaction_id,
        balance=balance,
        currency=settings.transfer.currency,
    )
