"""Duplicate lookup shared by the importer and the transfer-linking paths.

A freshly parsed transaction duplicates a persisted one when the account,
date, amount and description are all exactly equal. Re-importing the same
statement therefore writes nothing new.

``find_duplicate`` returns the persisted twin of a transaction, or ``None``.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from .models import CategorizedTransaction, Transaction
from .persistence import find_transaction


def find_duplicate(session: Session, transaction: Transaction) -> CategorizedTransaction | None:
    if transaction.account.id is None:
        # An account that was never persisted cannot own persisted rows.
        return None
    return find_transaction(
        session,
        account_id=transaction.account.id,
        date=transaction.date,
        amount=transaction.amount,
        description=transaction.description,
    )


__all__ = ["find_duplicate"]
