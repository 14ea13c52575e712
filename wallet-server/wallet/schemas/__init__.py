"""Pydantic schemas used across the project."""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TokenData(BaseModel):
    user_id: str


class AccountRegisterRequest(BaseModel):
    display_name: str = Field(..., min_length=1, max_length=100)


class AccountResponse(BaseModel):
    id: str
    display_name: str
    balance: Decimal
    currency: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BalanceResponse(BaseModel):
    balance: Decimal
    currency: str


class TransactionRecordResponse(BaseModel):
    transaction_id: str
    amount: Decimal
    direction: str
    counterparty_id: Optional[str] = None
    counterparty_name: str
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class TransactionHistoryResponse(BaseModel):
    total: int
    order: str
    transactions: list[TransactionRecordResponse] = Field(default_factory=list)


class TransferCreateRequest(BaseModel):
    recipient_id: str = Field(..., min_length=1, max_length=128)
    # Kept as a string so the ledger applies its own two-decimal rule.
    amount: str = Field(..., min_length=1, max_length=32)
    idempotency_key: Optional[str] = Field(default=None, max_length=128)
    bill_id: Optional[str] = Field(default=None, max_length=64)


class TopupCreateRequest(BaseModel):
    amount: str = Field(..., min_length=1, max_length=32)
    idempotency_key: Optional[str] = Field(default=None, max_length=128)


class TransactionCreatedResponse(BaseModel):
    transaction_id: str
    balance: Decimal
    currency: str


class ErrorResponse(BaseModel):
    code: str
    detail: str
    retryable: bool
    outcome: str


class BillShareResponse(BaseModel):
    participant_id: str
    participant_name: str
    amount: Decimal
    status: str
    transaction_id: Optional[str] = None
    updated_at: Optional[datetime] = None


class BillRequestResponse(BaseModel):
    bill_id: str
    requester_id: str
    requester_name: str
    description: str
    total: Decimal
    status: str
    shares: list[BillShareResponse] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class BillRequestListResponse(BaseModel):
    total: int
    requests: list[BillRequestResponse] = Field(default_factory=list)


class MoneyRequestCreateRequest(BaseModel):
    """Ask one or more users for a specific amount each."""

    description: str = Field(..., min_length=1, max_length=200)
    shares: dict[str, str] = Field(..., min_length=1)


class SplitBillCreateRequest(BaseModel):
    description: str = Field(..., min_length=1, max_length=200)
    total: str = Field(..., min_length=1, max_length=32)
    participant_ids: list[str] = Field(..., min_length=1)
