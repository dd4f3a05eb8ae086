"""Public interface for the ``ledger_recon`` package.

This module exposes the package's API functions and public models/types as the
stable import surface. There is no runtime logic here, only symbol re-exports.
"""

from .api import (
    build_importer,
    build_migration_service,
    combine_categories,
    import_statements,
    migrate_tokens,
)
from .categorize import CategoryChooser, DeclineChooser, TransactionCategorizer, recategorize
from .exceptions import LedgerReconError, TokenMigrationError, TransactionImportError
from .importer import TransactionImporter
from .keyword_rules import KeywordRule, KeywordRulesConfig
from .migration import TokenMigrationService
from .models import (
    Account,
    AccountStatement,
    CategorizedTransaction,
    Category,
    CategoryMatch,
    CombineResult,
    ImportReport,
    MigrationReport,
    RawTransaction,
    Transaction,
    TransactionType,
    Transfer,
)
from .token_matching import TokenMatchingService
from .tokens import TokenNormalizer
from .transfers import TransferMatcher

__all__ = [
    # API
    "import_statements",
    "migrate_tokens",
    "combine_categories",
    "build_importer",
    "build_migration_service",
    # Services
    "TokenNormalizer",
    "TokenMatchingService",
    "TransferMatcher",
    "TransactionCategorizer",
    "TransactionImporter",
    "TokenMigrationService",
    "CategoryChooser",
    "DeclineChooser",
    "recategorize",
    "KeywordRule",
    "KeywordRulesConfig",
    # Models / types
    "Account",
    "AccountStatement",
    "RawTransaction",
    "Transaction",
    "TransactionType",
    "Category",
    "CategorizedTransaction",
    "CategoryMatch",
    "Transfer",
    "ImportReport",
    "MigrationReport",
    "CombineResult",
    # Errors
    "LedgerReconError",
    "TransactionImportError",
    "TokenMigrationError",
]
