"""Per-transaction token index backed by ``lr_transaction_tokens``.

Each persisted transaction owns the token set derived from its description.
The overlap matcher only needs :func:`find_transactions_with_matching_tokens`;
the remaining helpers maintain the index as transactions are inserted,
recategorized, or re-migrated. Callers own the unit of work.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from db.models.ledger import LrTransaction, LrTransactionToken
from sqlalchemy import delete, distinct, exists, func, select
from sqlalchemy.orm import Session


@dataclass(frozen=True, slots=True)
class TokenMatchResult:
    transaction_id: int
    category_id: int
    matching_count: int
    total_count: int


def insert_tokens(session: Session, transaction_id: int, tokens: Iterable[str]) -> int:
    """Store ``tokens`` for ``transaction_id``; returns the number of rows written."""

    unique = sorted(set(tokens))
    if unique:
        session.add_all(LrTransactionToken(transaction_id=transaction_id, token=t) for t in unique)
        session.flush()
    return len(unique)


def get_tokens(session: Session, transaction_id: int) -> frozenset[str]:
    rows = session.execute(
        select(LrTransactionToken.token).where(LrTransactionToken.transaction_id == transaction_id)
    ).scalars()
    return frozenset(rows)


def has_tokens(session: Session, transaction_id: int) -> bool:
    stmt = select(exists().where(LrTransactionToken.transaction_id == transaction_id))
    return bool(session.execute(stmt).scalar_one())


def delete_tokens(session: Session, transaction_id: int) -> int:
    result = session.execute(
        delete(LrTransactionToken).where(LrTransactionToken.transaction_id == transaction_id)
    )
    return result.rowcount or 0


def delete_all_tokens(session: Session) -> int:
    result = session.execute(delete(LrTransactionToken))
    return result.rowcount or 0


def find_transactions_with_matching_tokens(
    session: Session,
    tokens: Iterable[str],
    *,
    exclude_category_id: int | None = None,
) -> list[TokenMatchResult]:
    """Return every indexed transaction sharing at least one of ``tokens``.

    For each hit: the transaction's category, how many distinct search tokens
    it shares, and how many tokens it has in total. Transactions currently in
    ``exclude_category_id`` are left out.
    """

    search = sorted(set(tokens))
    if not search:
        return []

    totals = (
        select(
            LrTransactionToken.transaction_id.label("transaction_id"),
            func.count().label("total_count"),
        )
        .group_by(LrTransactionToken.transaction_id)
        .subquery()
    )
    stmt = (
        select(
            LrTransactionToken.transaction_id,
            LrTransaction.category_id,
            func.count(distinct(LrTransactionToken.token)).label("matching_count"),
            totals.c.total_count,
        )
        .join(LrTransaction, LrTransaction.id == LrTransactionToken.transaction_id)
        .join(totals, totals.c.transaction_id == LrTransactionToken.transaction_id)
        .where(LrTransactionToken.token.in_(search))
        .group_by(
            LrTransactionToken.transaction_id,
            LrTransaction.category_id,
            totals.c.total_count,
        )
    )
    if exclude_category_id is not None:
        stmt = stmt.where(LrTransaction.category_id != exclude_category_id)

    return [
        TokenMatchResult(
            transaction_id=row[0],
            category_id=row[1],
            matching_count=int(row[2]),
            total_count=int(row[3]),
        )
        for row in session.execute(stmt).all()
    ]


__all__ = [
    "TokenMatchResult",
    "insert_tokens",
    "get_tokens",
    "has_tokens",
    "delete_tokens",
    "delete_all_tokens",
    "find_transactions_with_matching_tokens",
]
