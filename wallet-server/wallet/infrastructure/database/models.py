"""SQLAlchemy ORM models."""

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from wallet.infrastructure.database.base import Base


class UserAccount(Base):
    __tablename__ = "user_accounts"
    __table_args__ = (CheckConstraint("balance_paise >= 0", name="ck_user_accounts_balance_non_negative"),)

    id = Column(String(128), primary_key=True)
    display_name = Column(String(100), nullable=False, default="")
    balance_paise = Column(BigInteger, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    transactions = relationship("WalletTransaction", back_populates="account", cascade="all, delete-orphan")


class WalletTransaction(Base):
    __tablename__ = "wallet_transactions"
    __table_args__ = (
        UniqueConstraint("account_id", "idempotency_key", name="uq_wallet_transactions_idempotency_key"),
        Index("ix_wallet_transactions_created_at", "account_id", "created_at"),
    )

    account_id = Column(String(128), ForeignKey("user_accounts.id"), primary_key=True)
    transaction_id = Column(String(64), primary_key=True)
    amount_paise = Column(BigInteger, nullable=False)
    direction = Column(String(10), nullable=False)  # debit, credit
    counterparty_id = Column(String(128), nullable=True)
    counterparty_name = Column(String(100), nullable=False)
    idempotency_key = Column(String(128), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    account = relationship("UserAccount", back_populates="transactions")


class BillRequest(Base):
    __tablename__ = "bill_requests"

    id = Column(String(64), primary_key=True)
    requester_id = Column(String(128), ForeignKey("user_accounts.id"), nullable=False, index=True)
    requester_name = Column(String(100), nullable=False)
    description = Column(String(200), nullable=False)
    total_paise = Column(BigInteger, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    shares = relationship(
        "BillShare",
        back_populates="bill",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="BillShare.position",
    )


class BillShare(Base):
    __tablename__ = "bill_shares"
    __table_args__ = (CheckConstraint("amount_paise > 0", name="ck_bill_shares_amount_positive"),)

    bill_id = Column(String(64), ForeignKey("bill_requests.id"), primary_key=True)
    participant_id = Column(String(128), ForeignKey("user_accounts.id"), primary_key=True, index=True)
    position = Column(Integer, nullable=False, default=0)
    participant_name = Column(String(100), nullable=False)
    amount_paise = Column(BigInteger, nullable=False)
    status = Column(String(10), nullable=False, default="pending")  # pending, paid, declined
    transaction_id = Column(String(64), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    bill = relationship("BillRequest", back_populates="shares")
