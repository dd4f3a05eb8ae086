"""Rank categories for a description by token overlap with history.

Every persisted transaction has an entry in the token index. To suggest a
category for a new description, :class:`TokenMatchingService` finds indexed
transactions sharing at least one token with it and scores each by::

    overlap = matching / min(len(search_tokens), stored_token_count)

Dividing by the smaller set lets "shoppers drug" match a stored "shoppers
drug mart" (and vice versa) as long as the smaller side is fully covered.
Scores under the configured threshold are dropped, the remaining ones are
folded per category keeping the best score, and categories come back best
first. Transactions in ``UNKNOWN`` never vote.

Matching is an optimization: a failed index read is logged and treated as "no
matches" so categorization falls through to the interactive chooser. Reads run
under a savepoint, so the failure leaves the surrounding unit of work usable.
"""

from __future__ import annotations

from collections.abc import Set
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import token_index
from .categories import get_category, get_category_by_id
from .logging_setup import get_logger
from .models import UNKNOWN, Category, CategoryMatch
from .tokens import TokenNormalizer

_logger = get_logger("ledger_recon.token_matching")

DEFAULT_OVERLAP_THRESHOLD = 0.8


@dataclass(frozen=True, slots=True)
class TokenMatchingConfig:
    overlap_threshold: float = DEFAULT_OVERLAP_THRESHOLD

    def __post_init__(self) -> None:
        if not 0.0 <= self.overlap_threshold <= 1.0:
            raise ValueError("overlap_threshold must be within [0, 1]")


def overlap_ratio(matching: int, search_size: int, stored_size: int) -> float:
    smaller = min(search_size, stored_size)
    if smaller <= 0:
        return 0.0
    return matching / smaller


class TokenMatchingService:
    def __init__(
        self,
        session: Session,
        normalizer: TokenNormalizer | None = None,
        config: TokenMatchingConfig | None = None,
    ) -> None:
        self._session = session
        self._normalizer = normalizer or TokenNormalizer()
        self._config = config or TokenMatchingConfig()

    @property
    def config(self) -> TokenMatchingConfig:
        return self._config

    def find_matching_categories_for_description(
        self, description: str | None
    ) -> list[CategoryMatch]:
        return self.find_matching_categories(self._normalizer.normalize(description))

    def find_matching_categories(self, search_tokens: Set[str]) -> list[CategoryMatch]:
        """Return categories whose history overlaps ``search_tokens``, best first.

        Ties keep no particular order.
        """

        if not search_tokens:
            return []

        try:
            # A failed read must not abort the caller's transaction.
            with self._session.begin_nested():
                unknown = get_category(self._session, UNKNOWN)
                hits = token_index.find_transactions_with_matching_tokens(
                    self._session,
                    search_tokens,
                    exclude_category_id=unknown.id if unknown is not None else None,
                )
        except SQLAlchemyError:
            _logger.exception("token_matching:index_read_failed tokens=%d", len(search_tokens))
            return []

        best: dict[int, float] = {}
        for hit in hits:
            ratio = overlap_ratio(hit.matching_count, len(search_tokens), hit.total_count)
            if ratio < self._config.overlap_threshold:
                continue
            if ratio > best.get(hit.category_id, -1.0):
                best[hit.category_id] = ratio

        matches: list[CategoryMatch] = []
        for category_id, ratio in best.items():
            category = self._load_category(category_id)
            if category is not None:
                matches.append(CategoryMatch(category=category, overlap_ratio=ratio))
        matches.sort(key=lambda m: m.overlap_ratio, reverse=True)

        _logger.debug(
            "token_matching:ranked tokens=%d hits=%d categories=%d",
            len(search_tokens),
            len(hits),
            len(matches),
        )
        return matches

    def _load_category(self, category_id: int) -> Category | None:
        try:
            with self._session.begin_nested():
                return get_category_by_id(self._session, category_id)
        except SQLAlchemyError:
            _logger.exception("token_matching:category_read_failed category_id=%d", category_id)
            return None


__all__ = [
    "DEFAULT_OVERLAP_THRESHOLD",
    "TokenMatchingConfig",
    "TokenMatchingService",
    "overlap_ratio",
]
