from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# Reference: lr_accounts
# ---------------------------


class LrAccount(Base):
    __tablename__ = "lr_accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    bank_id: Mapped[str] = mapped_column(String, nullable=False)
    account_number: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("bank_id", "account_number", name="uq_lr_accounts_bank_account"),
    )


# ---------------------------
# Reference: lr_categories
# ---------------------------


class LrCategory(Base):
    __tablename__ = "lr_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Stored trimmed and upper-cased; uniqueness is therefore case-insensitive.
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


# ---------------------------
# Core: lr_transactions
# ---------------------------


class LrTransaction(Base):
    __tablename__ = "lr_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("lr_accounts.id"), nullable=False
    )
    # Every persisted transaction carries exactly one category.
    category_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("lr_categories.id"), nullable=False
    )
    fit_id: Mapped[str | None] = mapped_column(String, nullable=True)
    type: Mapped[str] = mapped_column(String, nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    balance: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        # Duplicate detection key: (account, date, amount, description)
        Index("ix_lr_tx_dupe_key", "account_id", "date", "amount", "description"),
        Index("ix_lr_tx_category", "category_id"),
    )


# ---------------------------
# Token index: lr_transaction_tokens
# ---------------------------


class LrTransactionToken(Base):
    __tablename__ = "lr_transaction_tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    transaction_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("lr_transactions.id", ondelete="CASCADE"), nullable=False
    )
    token: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint("transaction_id", "token", name="uq_lr_tx_tokens_tx_token"),
        Index("ix_lr_tx_tokens_token", "token"),
    )


# ---------------------------
# Links: lr_transfers
# ---------------------------


class LrTransfer(Base):
    __tablename__ = "lr_transfers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("lr_transactions.id"), nullable=False, unique=True
    )
    sink_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("lr_transactions.id"), nullable=False, unique=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


__all__ = [
    "Base",
    "LrAccount",
    "LrCategory",
    "LrTransaction",
    "LrTransactionToken",
    "LrTransfer",
]
