"""Account domain models, errors and the directory contract."""

from .models import CENT, Direction, LedgerEntry, TransactionRecord, UserAccount
from .repository import Mutation, UserDirectory
from .exceptions import (
    BalanceLimitExceededError,
    BillRequestClosedError,
    BillRequestMismatchError,
    BillRequestNotFoundError,
    ConcurrentConflictError,
    IdempotencyKeyReusedError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidBillRequestError,
    RecipientNotFoundError,
    SelfTransferNotAllowedError,
    SenderNotFoundError,
    StoreUnavailableError,
    UserNotFoundError,
    WalletError,
)

__all__ = [
    "CENT",
    "Direction",
    "LedgerEntry",
    "TransactionRecord",
    "UserAccount",
    "Mutation",
    "UserDirectory",
    "WalletError",
    "InvalidAmountError",
    "SelfTransferNotAllowedError",
    "UserNotFoundError",
    "SenderNotFoundError",
    "RecipientNotFoundError",
    "InsufficientBalanceError",
    "IdempotencyKeyReusedError",
    "ConcurrentConflictError",
    "StoreUnavailableError",
    "BalanceLimitExceededError",
    "InvalidBillRequestError",
    "BillRequestNotFoundError",
    "BillRequestClosedError",
    "BillRequestMismatchError",
]
