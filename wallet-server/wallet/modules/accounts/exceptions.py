"""Wallet domain exceptions.

Every error raised by the ledger carries a stable ``code`` and a ``retryable``
flag so that callers can decide between surfacing the failure and retrying it.
"""


class WalletError(Exception):
    """Base class for wallet domain errors."""

    code = "wallet_error"
    retryable = False
    default_detail = "Wallet operation failed."

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class InvalidAmountError(WalletError):
    """Raised when an amount is not a positive decimal with at most two fractional digits."""

    code = "invalid_amount"
    default_detail = "Amount must be a positive number with at most two decimal places."


class SelfTransferNotAllowedError(WalletError):
    code = "self_transfer_not_allowed"
    default_detail = "Sender and recipient must be different accounts."


class UserNotFoundError(WalletError):
    code = "user_not_found"
    default_detail = "Account not found."


class SenderNotFoundError(UserNotFoundError):
    code = "sender_not_found"
    default_detail = "Sender's account does not exist."


class RecipientNotFoundError(UserNotFoundError):
    code = "recipient_not_found"
    default_detail = "Recipient account not found for the provided ID."


class InsufficientBalanceError(WalletError):
    code = "insufficient_balance"
    default_detail = "Insufficient balance."


class IdempotencyKeyReusedError(WalletError):
    """Raised when an idempotency key is replayed with different transfer parameters."""

    code = "idempotency_key_reused"
    default_detail = "Idempotency key was already used for a different transfer."


class ConcurrentConflictError(WalletError):
    """Raised when an account changed between snapshot and commit."""

    code = "concurrent_conflict"
    retryable = True
    default_detail = "The account was modified concurrently, please retry."


class StoreUnavailableError(WalletError):
    """Raised when the backing store failed; the commit outcome may be unknown."""

    code = "store_unavailable"
    retryable = True
    default_detail = "The wallet store is temporarily unavailable."


class BalanceLimitExceededError(WalletError):
    """Raised when a credit would take an account past the configured balance ceiling."""

    code = "balance_limit_exceeded"
    default_detail = "The receiving account cannot hold this amount."


class InvalidBillRequestError(WalletError):
    code = "invalid_bill_request"
    default_detail = "A bill request needs a description and at least one other participant."


class BillRequestNotFoundError(WalletError):
    code = "bill_request_not_found"
    default_detail = "Bill request not found."


class BillRequestClosedError(WalletError):
    """Raised when a bill share that is already paid or declined is acted on again."""

    code = "bill_request_closed"
    default_detail = "This bill request has already been settled."


class BillRequestMismatchError(WalletError):
    """Raised when a payment does not match the bill share it claims to settle."""

    code = "bill_request_mismatch"
    default_detail = "Payment does not match the requested amount or requester."
