"""Assign a category to one transaction.

The chain, first answer wins:

1. keyword rules, when auto-categorize is enabled;
2. token-overlap matches against history: a single candidate is taken as-is,
   several go to the chooser to pick from;
3. the chooser picking from every known category or naming a new one.

A chooser that declines at the last step leaves the transaction in
``UNKNOWN``. Categories named by rules or by the chooser are created on
demand.

:func:`recategorize` changes the category of an already persisted transaction
and rebuilds its token index entry.
"""

from __future__ import annotations

from collections.abc import Sequence, Set
from typing import Protocol

from sqlalchemy.orm import Session

from . import token_index
from .categories import get_or_create_category, list_categories, unknown_category
from .keyword_rules import KeywordRulesConfig
from .logging_setup import get_logger
from .models import CategorizedTransaction, Category, Transaction
from .persistence import get_transaction, update_category
from .token_matching import TokenMatchingService
from .tokens import TokenNormalizer

_logger = get_logger("ledger_recon.categorize")


class CategoryChooser(Protocol):
    """Interactive fallback used when rules and history are not conclusive.

    Both calls block until an answer is available. Returning ``None`` means
    "none of these" for :meth:`choose_category` and "leave uncategorized" for
    :meth:`choose_or_create_category`. A returned category may be new (no
    ``id``); it is created on demand.
    """

    def choose_category(
        self, transaction: Transaction, candidates: Sequence[Category]
    ) -> Category | None: ...

    def choose_or_create_category(
        self, transaction: Transaction, categories: Sequence[Category]
    ) -> Category | None: ...


class DeclineChooser:
    """Non-interactive chooser: never picks, so unresolved transactions stay UNKNOWN."""

    def choose_category(
        self, transaction: Transaction, candidates: Sequence[Category]
    ) -> Category | None:
        return None

    def choose_or_create_category(
        self, transaction: Transaction, categories: Sequence[Category]
    ) -> Category | None:
        return None


class TransactionCategorizer:
    def __init__(
        self,
        session: Session,
        *,
        keyword_rules: KeywordRulesConfig | None = None,
        matcher: TokenMatchingService | None = None,
        chooser: CategoryChooser | None = None,
        normalizer: TokenNormalizer | None = None,
    ) -> None:
        self._session = session
        self._normalizer = normalizer or TokenNormalizer()
        self._rules = keyword_rules or KeywordRulesConfig.empty()
        self._matcher = matcher or TokenMatchingService(session, self._normalizer)
        self._chooser: CategoryChooser = chooser or DeclineChooser()

    def categorize(
        self, transaction: Transaction, tokens: Set[str] | None = None
    ) -> CategorizedTransaction:
        if tokens is None:
            tokens = self._normalizer.normalize(transaction.description)
        category = self._resolve(transaction, tokens)
        return CategorizedTransaction(transaction=transaction, category=category)

    def _resolve(self, transaction: Transaction, tokens: Set[str]) -> Category:
        if self._rules.auto_categorize_enabled:
            name = self._rules.find_matching_category(tokens)
            if name is not None:
                _logger.debug("categorize:keyword_rule category=%s", name)
                return get_or_create_category(self._session, name)

        matches = self._matcher.find_matching_categories(tokens)
        if len(matches) == 1:
            _logger.debug(
                "categorize:overlap_single category=%s ratio=%.2f",
                matches[0].category.name,
                matches[0].overlap_ratio,
            )
            return matches[0].category
        if matches:
            chosen = self._chooser.choose_category(transaction, [m.category for m in matches])
            if chosen is not None:
                return self._persisted(chosen)

        chosen = self._chooser.choose_or_create_category(
            transaction, list_categories(self._session)
        )
        if chosen is not None:
            return self._persisted(chosen)
        _logger.info("categorize:left_unknown description=%r", transaction.description)
        return unknown_category(self._session)

    def _persisted(self, category: Category) -> Category:
        if category.id is not None:
            return category
        return get_or_create_category(self._session, category.name)


def recategorize(
    session: Session,
    transaction_id: int,
    category_name: str,
    *,
    normalizer: TokenNormalizer | None = None,
) -> CategorizedTransaction:
    """Move a persisted transaction to ``category_name`` and rebuild its tokens.

    Raises ``LookupError`` when the transaction does not exist.
    """

    current = get_transaction(session, transaction_id)
    if current is None:
        raise LookupError(f"Transaction not found: {transaction_id}")
    category = get_or_create_category(session, category_name)
    update_category(session, transaction_id, category)

    tokens = (normalizer or TokenNormalizer()).normalize(current.transaction.description)
    token_index.delete_tokens(session, transaction_id)
    token_index.insert_tokens(session, transaction_id, tokens)

    _logger.info(
        "categorize:recategorized id=%d old=%s new=%s",
        transaction_id,
        current.category.name,
        category.name,
    )
    return current.with_category(category)


__all__ = [
    "CategoryChooser",
    "DeclineChooser",
    "TransactionCategorizer",
    "recategorize",
]
