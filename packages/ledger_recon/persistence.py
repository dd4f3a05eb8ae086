# ruff: noqa: I001
"""Persistence integration for ledger_recon.

Functions here read and write accounts, categorized transactions and transfer
links in the shared database owned by ``libs/db``. They convert between ORM
rows (``db.models.ledger``) and the immutable domain models in
``ledger_recon.models``. Every function takes the caller's ``Session`` and
never commits; the unit of work belongs to the caller.

Scope:
- Accounts: resolve-or-create by ``(bank_id, account_number)``.
- Transactions: insert, fetch, recategorize, and the "missing tokens" query
  used by token migration.
- Transfers: insert, link checks, and lookup of unlinked transfer legs.
"""

from __future__ import annotations

import datetime
from collections.abc import Sequence
from decimal import Decimal

from sqlalchemy import exists, func, or_, select, update
from sqlalchemy.orm import Session

from db.models.ledger import LrAccount, LrCategory, LrTransaction, LrTransactionToken, LrTransfer
from .models import (
    Account,
    Category,
    CategorizedTransaction,
    Transaction,
    TransactionType,
    Transfer,
    to_cents,
)

# ---------------------------
# Accounts
# ---------------------------


def _to_account(row: LrAccount) -> Account:
    return Account(bank_id=row.bank_id, account_number=row.account_number, name=row.name, id=row.id)


def find_account(session: Session, *, bank_id: str, account_number: str) -> Account | None:
    row = (
        session.execute(
            select(LrAccount).where(
                LrAccount.bank_id == bank_id, LrAccount.account_number == account_number
            )
        )
        .scalars()
        .first()
    )
    return _to_account(row) if row is not None else None


def get_or_create_account(session: Session, account: Account) -> Account:
    """Return the persisted account matching ``account``'s identity, inserting it if new."""

    existing = find_account(
        session, bank_id=account.bank_id, account_number=account.account_number
    )
    if existing is not None:
        return existing
    row = LrAccount(
        bank_id=account.bank_id, account_number=account.account_number, name=account.name
    )
    session.add(row)
    session.flush()
    return _to_account(row)


# ---------------------------
# Transactions
# ---------------------------


def _to_categorized(
    row: LrTransaction, account_row: LrAccount, category_row: LrCategory
) -> CategorizedTransaction:
    tx = Transaction(
        account=_to_account(account_row),
        date=row.date,
        amount=to_cents(row.amount),
        description=row.description,
        type=TransactionType.parse(row.type),
        fit_id=row.fit_id,
        balance=to_cents(row.balance),
    )
    return CategorizedTransaction(
        transaction=tx, category=Category(name=category_row.name, id=category_row.id), id=row.id
    )


def _select_categorized():
    return (
        select(LrTransaction, LrAccount, LrCategory)
        .join(LrAccount, LrAccount.id == LrTransaction.account_id)
        .join(LrCategory, LrCategory.id == LrTransaction.category_id)
    )


def insert_transaction(session: Session, item: CategorizedTransaction) -> CategorizedTransaction:
    """Insert ``item`` and return it with its new ``id``.

    Both the account and the category must already be persisted.
    """

    tx = item.transaction
    if tx.account.id is None:
        raise ValueError("transaction account must be persisted before inserting transactions")
    if item.category.id is None:
        raise ValueError("category must be persisted before inserting transactions")

    row = LrTransaction(
        account_id=tx.account.id,
        category_id=item.category.id,
        fit_id=tx.fit_id,
        type=tx.type.value,
        date=tx.date,
        amount=to_cents(tx.amount),
        balance=to_cents(tx.balance),
        description=tx.description,
    )
    session.add(row)
    session.flush()
    return CategorizedTransaction(transaction=tx, category=item.category, id=row.id)


def get_transaction(session: Session, transaction_id: int) -> CategorizedTransaction | None:
    found = session.execute(
        _select_categorized().where(LrTransaction.id == transaction_id)
    ).first()
    if found is None:
        return None
    return _to_categorized(*found)


def find_transaction(
    session: Session,
    *,
    account_id: int,
    date: datetime.date,
    amount: Decimal,
    description: str,
) -> CategorizedTransaction | None:
    """Return the first persisted transaction with this exact identity, if any."""

    found = session.execute(
        _select_categorized()
        .where(
            LrTransaction.account_id == account_id,
            LrTransaction.date == date,
            LrTransaction.amount == to_cents(amount),
            LrTransaction.description == description,
        )
        .order_by(LrTransaction.id)
        .limit(1)
    ).first()
    if found is None:
        return None
    return _to_categorized(*found)


def update_category(session: Session, transaction_id: int, category: Category) -> None:
    if category.id is None:
        raise ValueError("category must be persisted before assignment")
    session.execute(
        update(LrTransaction)
        .where(LrTransaction.id == transaction_id)
        .values(category_id=category.id, updated_at=func.now())
    )


def count_transactions(session: Session) -> int:
    return session.execute(select(func.count()).select_from(LrTransaction)).scalar_one()


def _missing_tokens_clause():
    return ~exists().where(LrTransactionToken.transaction_id == LrTransaction.id)


def select_without_tokens(
    session: Session, *, after_id: int = 0, limit: int | None = None
) -> list[CategorizedTransaction]:
    """Return transactions with no token index entry, oldest id first.

    ``after_id`` pages by id so callers can step past rows that legitimately
    stay token-less (descriptions that normalize to nothing).
    """

    stmt = (
        _select_categorized()
        .where(_missing_tokens_clause(), LrTransaction.id > after_id)
        .order_by(LrTransaction.id)
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    return [_to_categorized(*found) for found in session.execute(stmt).all()]


def count_without_tokens(session: Session) -> int:
    stmt = select(func.count()).select_from(LrTransaction).where(_missing_tokens_clause())
    return session.execute(stmt).scalar_one()


# ---------------------------
# Transfers
# ---------------------------


def is_in_any_transfer(session: Session, transaction_id: int) -> bool:
    stmt = select(
        exists().where(
            or_(LrTransfer.source_id == transaction_id, LrTransfer.sink_id == transaction_id)
        )
    )
    return bool(session.execute(stmt).scalar_one())


def insert_transfer(session: Session, transfer: Transfer) -> Transfer:
    if transfer.source.id is None or transfer.sink.id is None:
        raise ValueError("both transfer legs must be persisted before linking")
    row = LrTransfer(source_id=transfer.source.id, sink_id=transfer.sink.id)
    session.add(row)
    session.flush()
    return Transfer(source=transfer.source, sink=transfer.sink, id=row.id)


def find_unlinked_transfer_legs(session: Session) -> list[CategorizedTransaction]:
    """Return XFER-typed transactions that are not part of any transfer link."""

    linked = select(LrTransfer.source_id).union(select(LrTransfer.sink_id))
    stmt = (
        _select_categorized()
        .where(
            LrTransaction.type == TransactionType.XFER.value,
            LrTransaction.id.not_in(linked),
        )
        .order_by(LrTransaction.date, LrTransaction.id)
    )
    return [_to_categorized(*found) for found in session.execute(stmt).all()]


def select_transfers(session: Session) -> Sequence[tuple[int, int]]:
    """Return ``(source_id, sink_id)`` for every stored transfer link."""

    rows = session.execute(
        select(LrTransfer.source_id, LrTransfer.sink_id).order_by(LrTransfer.id)
    ).all()
    return [(r[0], r[1]) for r in rows]


__all__ = [
    "find_account",
    "get_or_create_account",
    "insert_transaction",
    "get_transaction",
    "find_transaction",
    "update_category",
    "count_transactions",
    "select_without_tokens",
    "count_without_tokens",
    "is_in_any_transfer",
    "insert_transfer",
    "find_unlinked_transfer_legs",
    "select_transfers",
]
