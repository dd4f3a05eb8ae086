"""Backfill the token index for stored transactions.

Transactions stored before the token index existed, or after the
normalization settings changed, have no token entries and are invisible to
overlap matching. :class:`TokenMigrationService` computes their tokens in
batches (one unit of work each) and, when keyword auto-categorization is on,
moves them to the category a keyword rule names.

Transactions whose description normalizes to nothing are counted as skipped;
they keep no tokens and are stepped over by id, so a migration always ends.
"""

from __future__ import annotations

from db.client import session_scope
from sqlalchemy.orm import Session

from . import token_index
from .categories import get_or_create_category
from .config import DEFAULT_BATCH_SIZE
from .exceptions import TokenMigrationError
from .keyword_rules import KeywordRulesConfig
from .logging_setup import get_logger
from .models import (
    CategorizedTransaction,
    MigrationReport,
    Recategorization,
    normalize_category_name,
)
from .persistence import count_without_tokens, select_without_tokens, update_category
from .tokens import TokenNormalizer

_logger = get_logger("ledger_recon.migration")


class TokenMigrationService:
    def __init__(
        self,
        *,
        database_url: str | None = None,
        normalizer: TokenNormalizer | None = None,
        keyword_rules: KeywordRulesConfig | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._database_url = database_url
        self._normalizer = normalizer or TokenNormalizer()
        self._rules = keyword_rules or KeywordRulesConfig.empty()
        self._batch_size = batch_size

    def is_migration_needed(self) -> bool:
        """True when any stored transaction has no token entries."""

        with session_scope(database_url=self._database_url) as session:
            return count_without_tokens(session) > 0

    def migrate_existing_transactions(self) -> MigrationReport:
        report = MigrationReport()
        after_id = 0
        batch_index = 0
        while True:
            try:
                with session_scope(database_url=self._database_url) as session:
                    batch = select_without_tokens(
                        session, after_id=after_id, limit=self._batch_size
                    )
                    for item in batch:
                        self._migrate_one(session, item, report)
            except Exception as e:
                _logger.error("migration:batch_failed batch=%d after_id=%d", batch_index, after_id)
                raise TokenMigrationError(
                    f"token migration failed in batch {batch_index}: {e}"
                ) from e
            if not batch:
                break
            after_id = batch[-1].id
            batch_index += 1

        _logger.info(
            "migration:done processed=%d recategorized=%d skipped=%d",
            report.processed,
            report.recategorized,
            report.skipped,
        )
        return report

    def remigrate_all(self) -> MigrationReport:
        """Drop every token entry, then rebuild the index from scratch.

        Used after normalization settings or keyword rules change.
        """

        with session_scope(database_url=self._database_url) as session:
            removed = token_index.delete_all_tokens(session)
        _logger.info("migration:tokens_cleared rows=%d", removed)
        return self.migrate_existing_transactions()

    def _migrate_one(
        self, session: Session, item: CategorizedTransaction, report: MigrationReport
    ) -> None:
        description = item.transaction.description
        tokens = self._normalizer.normalize(description)
        if not tokens:
            report.skipped += 1
            _logger.debug("migration:skipped_no_tokens id=%d", item.id)
            return

        token_index.insert_tokens(session, item.id, tokens)
        report.processed += 1

        if not self._rules.auto_categorize_enabled:
            return
        name = self._rules.find_matching_category(tokens)
        if name is None or normalize_category_name(name) == item.category.name:
            return
        category = get_or_create_category(session, name)
        update_category(session, item.id, category)
        report.recategorizations.append(
            Recategorization(
                description=description,
                old_category=item.category.name,
                new_category=category.name,
            )
        )
        _logger.debug(
            "migration:recategorized id=%d old=%s new=%s",
            item.id,
            item.category.name,
            category.name,
        )


__all__ = ["TokenMigrationService"]
