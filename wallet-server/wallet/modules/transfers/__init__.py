"""Peer-to-peer transfer protocol."""

from .history import HistoryOrder, TransactionHistory
from .models import TransferRequest, TransferState, new_transaction_id
from .service import LedgerTransferService
from .validation import parse_amount

__all__ = [
    "HistoryOrder",
    "LedgerTransferService",
    "TransactionHistory",
    "TransferRequest",
    "TransferState",
    "new_transaction_id",
    "parse_amount",
]
