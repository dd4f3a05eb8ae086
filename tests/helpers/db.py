"""DB helpers for tests: bootstrap a temporary SQLite DB and seed ledger rows."""

from __future__ import annotations

import os
from datetime import date
from decimal import Decimal
from pathlib import Path

from db import Base
from db.client import get_engine, session_scope

from ledger_recon import token_index
from ledger_recon.categories import ensure_reserved_categories, get_or_create_category
from ledger_recon.models import (
    Account,
    CategorizedTransaction,
    Transaction,
    TransactionType,
)
from ledger_recon.persistence import get_or_create_account, insert_transaction
from ledger_recon.tokens import TokenNormalizer


def bootstrap_sqlite_db(db_file: Path, *, set_default_env: bool = False) -> str:
    """Create a SQLite database file, initialize schema, and return the URL.

    Using a file-backed SQLite DB ensures multiple SQLAlchemy connections share
    the same state (in-memory DBs are per-connection by default).
    """

    url = f"sqlite+pysqlite:///{db_file}"
    db_file.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(database_url=url)
    Base.metadata.create_all(bind=engine)

    with session_scope(database_url=url) as session:
        ensure_reserved_categories(session)

    if set_default_env:
        os.environ.setdefault("DATABASE_URL", url)
    return url


def seed_transaction(
    database_url: str,
    *,
    description: str,
    category: str,
    amount: str = "-10.00",
    on: date = date(2024, 1, 15),
    account: Account | None = None,
    type_: TransactionType = TransactionType.DEBIT,
    with_tokens: bool = True,
) -> CategorizedTransaction:
    """Insert one categorized transaction (and, by default, its tokens)."""

    acct = account or Account("bank-1", "chequing")
    with session_scope(database_url=database_url) as session:
        persisted_account = get_or_create_account(session, acct)
        cat = get_or_create_category(session, category)
        tx = Transaction(
            account=persisted_account,
            date=on,
            amount=Decimal(amount),
            description=description,
            type=type_,
        )
        stored = insert_transaction(session, CategorizedTransaction(tx, cat))
        if with_tokens:
            token_index.insert_tokens(session, stored.id, TokenNormalizer().normalize(description))
    return stored
