"""Translate wallet domain errors into HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from wallet.modules.accounts import (
    BalanceLimitExceededError,
    BillRequestClosedError,
    BillRequestMismatchError,
    BillRequestNotFoundError,
    ConcurrentConflictError,
    IdempotencyKeyReusedError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidBillRequestError,
    SelfTransferNotAllowedError,
    StoreUnavailableError,
    UserNotFoundError,
    WalletError,
)
from wallet.schemas import ErrorResponse

logger = logging.getLogger(__name__)

# Most specific classes first; SenderNotFoundError and RecipientNotFoundError
# are covered by UserNotFoundError.
STATUS_CODES: list[tuple[type[WalletError], int]] = [
    (InvalidAmountError, status.HTTP_400_BAD_REQUEST),
    (SelfTransferNotAllowedError, status.HTTP_400_BAD_REQUEST),
    (InvalidBillRequestError, status.HTTP_400_BAD_REQUEST),
    (BillRequestMismatchError, status.HTTP_400_BAD_REQUEST),
    (UserNotFoundError, status.HTTP_404_NOT_FOUND),
    (BillRequestNotFoundError, status.HTTP_404_NOT_FOUND),
    (InsufficientBalanceError, status.HTTP_409_CONFLICT),
    (BalanceLimitExceededError, status.HTTP_409_CONFLICT),
    (BillRequestClosedError, status.HTTP_409_CONFLICT),
    (IdempotencyKeyReusedError, status.HTTP_409_CONFLICT),
    (ConcurrentConflictError, status.HTTP_409_CONFLICT),
    (StoreUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
]

# A store fault may have happened after the commit was sent, so the caller
# must check the history before retrying. Every other error left nothing applied.
OUTCOME_UNKNOWN = "unknown"
OUTCOME_NOT_APPLIED = "not_applied"


def status_for(exc: WalletError) -> int:
    for error_type, code in STATUS_CODES:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


def to_error_response(exc: WalletError) -> ErrorResponse:
    outcome = OUTCOME_UNKNOWN if isinstance(exc, StoreUnavailableError) else OUTCOME_NOT_APPLIED
    return ErrorResponse(code=exc.code, detail=exc.detail, retryable=exc.retryable, outcome=outcome)


async def wallet_error_handler(request: Request, exc: WalletError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.code)
    headers = {"Retry-After": "1"} if exc.retryable else None
    return JSONResponse(
        status_code=status_code,
        content=to_error_response(exc).model_dump(),
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(WalletError, wallet_error_handler)
