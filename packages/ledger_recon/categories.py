"""Category store helpers and service operations.

Categories are named buckets stored upper-cased and unique by name. Two
reserved categories always exist: ``UNKNOWN`` (nothing could be determined)
and ``TRANSFER`` (one leg of an inter-account transfer).

Session-level helpers take a ``Session`` first and leave commit/rollback to
the caller's unit of work. :func:`combine_categories` is a service operation
that opens its own units of work through ``db.client.session_scope``.

Exports
-------
- ``validate_name(...)``: client/server validation shared with the terminal UI.
- ``get_category``, ``get_category_by_id``, ``list_categories``.
- ``get_or_create_category(...)``: idempotent, case-insensitive creation.
- ``ensure_reserved_categories(...)``, ``unknown_category``, ``transfer_category``.
- ``delete_category(...)`` and ``combine_categories(...)``.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from db.client import session_scope
from db.models.ledger import LrCategory, LrTransaction
from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from .logging_setup import get_logger
from .models import (
    RESERVED_CATEGORY_NAMES,
    TRANSFER,
    UNKNOWN,
    Category,
    CombineResult,
    normalize_category_name,
)

_logger = get_logger("ledger_recon.categories")

COMBINE_BATCH_SIZE = 100

# ---------------------------
# Name validation
# ---------------------------

_ALLOWED_RE = re.compile(r"^[A-Za-z0-9 &\-/_'.,]+$")


@dataclass(frozen=True, slots=True)
class NameValidation:
    ok: bool
    reason: str | None = None


def validate_name(name: str, *, min_len: int = 1, max_len: int = 64) -> NameValidation:
    """Lightweight validation for category names.

    Rules
    -----
    - Trim whitespace; enforce length bounds 1..64.
    - Allowed characters: letters, numbers, spaces, and ``& - / _ ' . ,``.
    """

    n = normalize_category_name(name)
    if len(n) < min_len:
        return NameValidation(False, "Name cannot be empty")
    if len(n) > max_len:
        return NameValidation(False, f"Name must be at most {max_len} characters")
    if not _ALLOWED_RE.match(n):
        return NameValidation(False, "Only letters, numbers, spaces, and & - / _ ' . , are allowed")
    return NameValidation(True, None)


# ---------------------------
# Lookups
# ---------------------------


def _to_category(row: LrCategory) -> Category:
    return Category(name=row.name, id=row.id)


def _select_row(session: Session, name: str) -> LrCategory | None:
    return (
        session.execute(select(LrCategory).where(LrCategory.name == normalize_category_name(name)))
        .scalars()
        .first()
    )


def get_category(session: Session, name: str) -> Category | None:
    row = _select_row(session, name)
    return _to_category(row) if row is not None else None


def get_category_by_id(session: Session, category_id: int) -> Category | None:
    row = session.get(LrCategory, category_id)
    return _to_category(row) if row is not None else None


def list_categories(session: Session) -> list[Category]:
    rows = session.execute(select(LrCategory).order_by(LrCategory.name)).scalars().all()
    return [_to_category(r) for r in rows]


# ---------------------------
# Creation
# ---------------------------


def _get_or_create_row(session: Session, name: str) -> tuple[LrCategory, bool]:
    n = normalize_category_name(name)
    if not n:
        raise ValueError("Category name cannot be empty")

    existing = _select_row(session, n)
    if existing is not None:
        return existing, False

    row = LrCategory(name=n)
    session.add(row)
    session.flush()
    _logger.info("categories:created name=%s id=%d", n, row.id)
    return row, True


def _get_or_create(session: Session, name: str) -> tuple[Category, bool]:
    row, created = _get_or_create_row(session, name)
    return _to_category(row), created


def get_or_create_category(session: Session, name: str) -> Category:
    """Return the category named ``name`` (case-insensitive), creating it if needed."""

    category, _created = _get_or_create(session, name)
    return category


def ensure_reserved_categories(session: Session) -> None:
    for name in RESERVED_CATEGORY_NAMES:
        _get_or_create(session, name)


def unknown_category(session: Session) -> Category:
    return get_or_create_category(session, UNKNOWN)


def transfer_category(session: Session) -> Category:
    return get_or_create_category(session, TRANSFER)


def delete_category(session: Session, category_id: int) -> None:
    """Delete a category row; fails at the database if transactions still reference it."""

    session.execute(delete(LrCategory).where(LrCategory.id == category_id))


def count_transactions_in_category(session: Session, category_id: int) -> int:
    stmt = select(func.count()).select_from(LrTransaction).where(
        LrTransaction.category_id == category_id
    )
    return session.execute(stmt).scalar_one()


# ---------------------------
# Combine
# ---------------------------


def _move_batch(session: Session, *, source_id: int, target_id: int, limit: int) -> int:
    ids = (
        session.execute(
            select(LrTransaction.id)
            .where(LrTransaction.category_id == source_id)
            .order_by(LrTransaction.id)
            .limit(limit)
        )
        .scalars()
        .all()
    )
    if not ids:
        return 0
    session.execute(
        update(LrTransaction)
        .where(LrTransaction.id.in_(ids))
        .values(category_id=target_id, updated_at=func.now())
    )
    return len(ids)


def combine_categories(
    source_name: str,
    target_name: str,
    *,
    database_url: str | None = None,
    batch_size: int = COMBINE_BATCH_SIZE,
    on_progress: Callable[[int, int], None] | None = None,
) -> CombineResult:
    """Move every transaction from ``source_name`` to ``target_name``, then delete the source.

    The target is created when missing. Transactions move in batches of
    ``batch_size``, each batch in its own unit of work; ``on_progress`` is
    called with ``(moved_so_far, total)`` after each batch. Token entries are
    untouched: they depend on descriptions, not categories.

    Raises
    ------
    ValueError
        When the source does not exist, is a reserved category, or names the
        same category as the target.
    """

    src_n = normalize_category_name(source_name)
    tgt_n = normalize_category_name(target_name)

    with session_scope(database_url=database_url) as session:
        source_row = _select_row(session, src_n)
        if source_row is None:
            raise ValueError(f"Source category not found: {source_name!r}")
        source = _to_category(source_row)
        if source.is_reserved:
            raise ValueError(f"Reserved category cannot be combined away: {source.name}")
        if src_n == tgt_n:
            raise ValueError("Source and target categories are the same")
        target_row, created = _get_or_create_row(session, tgt_n)
        target = _to_category(target_row)
        source_id, target_id = source_row.id, target_row.id
        total = count_transactions_in_category(session, source_id)

    _logger.info(
        "combine:start source=%s target=%s total=%d target_created=%s",
        source.name,
        target.name,
        total,
        created,
    )

    moved = 0
    while True:
        with session_scope(database_url=database_url) as session:
            n = _move_batch(session, source_id=source_id, target_id=target_id, limit=batch_size)
        if n == 0:
            break
        moved += n
        if on_progress is not None:
            on_progress(moved, total)

    with session_scope(database_url=database_url) as session:
        delete_category(session, source_id)

    _logger.info("combine:done source=%s target=%s moved=%d", source.name, target.name, moved)
    return CombineResult(
        source_name=source.name,
        target_name=target.name,
        transactions_moved=moved,
        target_created=created,
    )


__all__ = [
    "COMBINE_BATCH_SIZE",
    "NameValidation",
    "validate_name",
    "get_category",
    "get_category_by_id",
    "list_categories",
    "get_or_create_category",
    "ensure_reserved_categories",
    "unknown_category",
    "transfer_category",
    "delete_category",
    "count_transactions_in_category",
    "combine_categories",
]
