"""Public API and service wiring for the ``ledger_recon`` package.

Each function builds its service from an :class:`~ledger_recon.config.AppConfig`
(plus the keyword rules it points at) and runs one operation. The database is
addressed by ``database_url`` or, when omitted, by ``DATABASE_URL`` as resolved
by ``db.client``.

Callers that need more control construct the services directly:
:class:`~ledger_recon.importer.TransactionImporter`,
:class:`~ledger_recon.migration.TokenMigrationService` and
:class:`~ledger_recon.categorize.TransactionCategorizer`.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from os import PathLike

from sqlalchemy.orm import Session

from .categories import combine_categories as _combine_categories
from .categorize import CategoryChooser, TransactionCategorizer
from .config import AppConfig, default_config_dir
from .importer import TransactionImporter
from .keyword_rules import KeywordRulesConfig
from .migration import TokenMigrationService
from .models import AccountStatement, CombineResult, ImportReport, MigrationReport
from .token_matching import TokenMatchingService
from .tokens import TokenNormalizer


def _rules_for(
    config: AppConfig,
    config_dir: str | PathLike[str] | None,
    keyword_rules: KeywordRulesConfig | None,
) -> KeywordRulesConfig:
    if keyword_rules is not None:
        return keyword_rules
    return config.load_keyword_rules(config_dir if config_dir is not None else default_config_dir())


def build_importer(
    *,
    config: AppConfig | None = None,
    config_dir: str | PathLike[str] | None = None,
    database_url: str | None = None,
    chooser: CategoryChooser | None = None,
    keyword_rules: KeywordRulesConfig | None = None,
) -> TransactionImporter:
    """Wire a :class:`TransactionImporter` from configuration.

    ``keyword_rules`` overrides the rules file named by ``config``.
    """

    cfg = config or AppConfig()
    rules = _rules_for(cfg, config_dir, keyword_rules)
    normalizer = TokenNormalizer(cfg.normalization.to_normalization_config())
    matching = cfg.token_matching.to_token_matching_config()

    def categorizer_factory(session: Session) -> TransactionCategorizer:
        return TransactionCategorizer(
            session,
            keyword_rules=rules,
            matcher=TokenMatchingService(session, normalizer, matching),
            chooser=chooser,
            normalizer=normalizer,
        )

    return TransactionImporter(
        database_url=database_url,
        categorizer_factory=categorizer_factory,
        normalizer=normalizer,
        batch_size=cfg.import_batch_size,
    )


def import_statements(
    statements: Sequence[AccountStatement],
    *,
    config: AppConfig | None = None,
    config_dir: str | PathLike[str] | None = None,
    database_url: str | None = None,
    chooser: CategoryChooser | None = None,
    keyword_rules: KeywordRulesConfig | None = None,
) -> ImportReport:
    importer = build_importer(
        config=config,
        config_dir=config_dir,
        database_url=database_url,
        chooser=chooser,
        keyword_rules=keyword_rules,
    )
    return importer.import_statements(statements)


def build_migration_service(
    *,
    config: AppConfig | None = None,
    config_dir: str | PathLike[str] | None = None,
    database_url: str | None = None,
    keyword_rules: KeywordRulesConfig | None = None,
) -> TokenMigrationService:
    cfg = config or AppConfig()
    return TokenMigrationService(
        database_url=database_url,
        normalizer=TokenNormalizer(cfg.normalization.to_normalization_config()),
        keyword_rules=_rules_for(cfg, config_dir, keyword_rules),
        batch_size=cfg.import_batch_size,
    )


def migrate_tokens(
    *,
    config: AppConfig | None = None,
    config_dir: str | PathLike[str] | None = None,
    database_url: str | None = None,
    keyword_rules: KeywordRulesConfig | None = None,
    rebuild: bool = False,
) -> MigrationReport:
    """Backfill missing token entries; ``rebuild`` clears the whole index first."""

    service = build_migration_service(
        config=config, config_dir=config_dir, database_url=database_url, keyword_rules=keyword_rules
    )
    return service.remigrate_all() if rebuild else service.migrate_existing_transactions()


def combine_categories(
    source_name: str,
    target_name: str,
    *,
    database_url: str | None = None,
    on_progress: Callable[[int, int], None] | None = None,
) -> CombineResult:
    return _combine_categories(
        source_name, target_name, database_url=database_url, on_progress=on_progress
    )


__all__ = [
    "build_importer",
    "import_statements",
    "build_migration_service",
    "migrate_tokens",
    "combine_categories",
]
