# ruff: noqa: I001
"""CLI for the ``ledger_recon`` package.

This module exposes callable command handlers (``cmd_import`` and friends)
and a Typer-based console interface. Environment variables (notably
``DATABASE_URL``) are loaded from a local ``.env`` using ``python-dotenv``
before delegating to command logic. Business logic lives in
``ledger_recon.api`` and related modules.

Handlers print results to stdout, print ``Error: ...`` to stderr on failure,
and return a process exit code.
"""

from __future__ import annotations

import sys
from collections.abc import Sequence
from decimal import Decimal, InvalidOperation
from pathlib import Path

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .config import load_or_create_config
from .logging_setup import configure_logging


# ---- Small module-level helpers used by CLI commands -------------------------


def parse_ending_balances(values: Sequence[str]) -> dict[str, Decimal]:
    """Parse ``ACCOUNT=AMOUNT`` pairs into a mapping keyed by account number."""

    out: dict[str, Decimal] = {}
    for raw in values:
        account, sep, amount = raw.partition("=")
        if not sep or not account.strip():
            raise ValueError(f"expected ACCOUNT=AMOUNT, got {raw!r}")
        try:
            out[account.strip()] = Decimal(amount.strip().replace(",", ""))
        except InvalidOperation as e:
            raise ValueError(f"invalid amount for account {account.strip()!r}: {amount!r}") from e
    return out


def _err(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


# ---- Command handlers ---------------------------------------------------------


def cmd_import(
    csv_path: str | Path,
    ending_balances: Sequence[str],
    *,
    database_url: str | None = None,
    config_dir: str | Path | None = None,
    interactive: bool = True,
) -> int:
    """Import a statement CSV, categorizing and linking transfers as it goes.

    With ``interactive`` the terminal chooser is consulted when keyword rules
    and transaction history are not conclusive; otherwise such transactions
    are filed under ``UNKNOWN``.
    """

    import csv

    from .api import import_statements
    from .exceptions import TransactionImportError
    from .ingest.statement_csv import load_statements

    try:
        balances = parse_ending_balances(ending_balances)
    except ValueError as e:
        return _err(str(e))

    try:
        statements = load_statements(csv_path, balances)
    except FileNotFoundError:
        return _err(f"File not found: {csv_path}")
    except PermissionError:
        return _err(f"Permission denied: {csv_path}")
    except (csv.Error, ValueError) as e:
        return _err(f"Failed to parse CSV: {e}")

    chooser = None
    if interactive:
        from .term_ui import PromptCategoryChooser

        chooser = PromptCategoryChooser()

    config = load_or_create_config(config_dir)
    try:
        report = import_statements(
            statements,
            config=config,
            config_dir=config_dir,
            database_url=database_url,
            chooser=chooser,
        )
    except TransactionImportError as e:
        return _err(f"import stopped: {e}")
    except RuntimeError as e:
        return _err(str(e))

    print(
        f"Imported {len(report.imported)} transaction(s), "
        f"linked {len(report.transfers)} transfer(s), "
        f"skipped {report.duplicates} duplicate(s)."
    )
    return 0


def cmd_migrate_tokens(
    *,
    database_url: str | None = None,
    config_dir: str | Path | None = None,
    rebuild: bool = False,
) -> int:
    """Backfill (or with ``rebuild``, recompute) the token index."""

    from .api import build_migration_service
    from .exceptions import TokenMigrationError

    config = load_or_create_config(config_dir)
    try:
        service = build_migration_service(
            config=config, config_dir=config_dir, database_url=database_url
        )
        if not rebuild and not service.is_migration_needed():
            print("Token index is up to date.")
            return 0
        report = service.remigrate_all() if rebuild else service.migrate_existing_transactions()
    except TokenMigrationError as e:
        return _err(f"migration stopped: {e}")
    except RuntimeError as e:
        return _err(str(e))

    print(
        f"Processed {report.processed}, recategorized {report.recategorized}, "
        f"skipped {report.skipped}."
    )
    for r in report.recategorizations:
        print(f"  {r.description}: {r.old_category} -> {r.new_category}")
    return 0


def cmd_combine_categories(
    source: str, target: str, *, database_url: str | None = None
) -> int:
    """Move all transactions from ``source`` into ``target`` and delete ``source``."""

    from .api import combine_categories

    def _progress(moved: int, total: int) -> None:
        print(f"Moved {moved}/{total}")

    try:
        result = combine_categories(
            source, target, database_url=database_url, on_progress=_progress
        )
    except (ValueError, RuntimeError) as e:
        return _err(str(e))

    created = " (created)" if result.target_created else ""
    print(
        f"Combined {result.source_name} into {result.target_name}{created}: "
        f"{result.transactions_moved} transaction(s) moved."
    )
    return 0


def cmd_recategorize(
    transaction_id: int,
    category: str,
    *,
    database_url: str | None = None,
    config_dir: str | Path | None = None,
) -> int:
    """Assign ``category`` to one stored transaction and rebuild its tokens."""

    from db.client import session_scope

    from .categorize import recategorize
    from .tokens import TokenNormalizer

    config = load_or_create_config(config_dir)
    normalizer = TokenNormalizer(config.normalization.to_normalization_config())
    try:
        with session_scope(database_url=database_url) as session:
            updated = recategorize(session, transaction_id, category, normalizer=normalizer)
    except (LookupError, ValueError, RuntimeError) as e:
        return _err(str(e))

    print(f"Transaction {transaction_id} -> {updated.category.name}")
    return 0


def cmd_match(
    description: str,
    *,
    database_url: str | None = None,
    config_dir: str | Path | None = None,
) -> int:
    """Show how ``description`` would be categorized, without writing anything."""

    from db.client import session_scope

    from .config import default_config_dir
    from .token_matching import TokenMatchingService
    from .tokens import TokenNormalizer

    config = load_or_create_config(config_dir)
    rules = config.load_keyword_rules(
        config_dir if config_dir is not None else default_config_dir()
    )
    normalizer = TokenNormalizer(config.normalization.to_normalization_config())
    tokens = normalizer.normalize(description)

    print("Tokens: " + (", ".join(sorted(tokens)) if tokens else "(none)"))
    rule_category = rules.find_matching_category(tokens) if rules.auto_categorize_enabled else None
    print(f"Keyword rule: {rule_category or '(no match)'}")

    try:
        with session_scope(database_url=database_url) as session:
            matcher = TokenMatchingService(
                session, normalizer, config.token_matching.to_token_matching_config()
            )
            matches = matcher.find_matching_categories(tokens)
    except RuntimeError as e:
        return _err(str(e))

    if not matches:
        print("Similar transactions: (none)")
        return 0
    print("Similar transactions:")
    for m in matches:
        print(f"  {m.category.name}\t{m.overlap_ratio:.2f}")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import bank statements, categorize transactions and reconcile transfers. "
        "Loads DATABASE_URL from a local .env before running."
    ),
)

# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults). Typer will inspect these when used as default values below.
DATABASE_URL_OPTION: OptionInfo = typer.Option(
    None, "--database-url", help="Override DATABASE_URL (falls back to env var)."
)
CONFIG_DIR_OPTION: OptionInfo = typer.Option(
    None,
    "--config-dir",
    help="Directory holding config.yaml and keyword rules (default ~/.ledger_recon).",
    file_okay=False,
)


def _exit(code: int) -> None:
    if code:
        raise typer.Exit(code)


@app.command("import")
def import_cmd(
    csv_path: Path = typer.Argument(..., dir_okay=False, help="Statement CSV to import."),
    ending_balance: list[str] = typer.Option(
        ...,
        "--ending-balance",
        "-b",
        help="Ending balance per account as ACCOUNT=AMOUNT; repeat for each account.",
    ),
    interactive: bool = typer.Option(
        True, help="Ask at the terminal when a category cannot be determined."
    ),
    database_url: str | None = DATABASE_URL_OPTION,
    config_dir: Path | None = CONFIG_DIR_OPTION,
) -> None:
    """Import a statement CSV."""

    _exit(
        cmd_import(
            csv_path,
            ending_balance,
            database_url=database_url,
            config_dir=config_dir,
            interactive=interactive,
        )
    )


@app.command("migrate-tokens")
def migrate_tokens_cmd(
    rebuild: bool = typer.Option(
        False, help="Clear the whole token index and rebuild it (after rule/normalization changes)."
    ),
    database_url: str | None = DATABASE_URL_OPTION,
    config_dir: Path | None = CONFIG_DIR_OPTION,
) -> None:
    """Compute tokens for stored transactions that have none."""

    _exit(cmd_migrate_tokens(database_url=database_url, config_dir=config_dir, rebuild=rebuild))


@app.command("combine-categories")
def combine_categories_cmd(
    source: str = typer.Argument(..., help="Category to fold away."),
    target: str = typer.Argument(..., help="Category receiving the transactions."),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Move every transaction from SOURCE to TARGET, then delete SOURCE."""

    _exit(cmd_combine_categories(source, target, database_url=database_url))


@app.command("recategorize")
def recategorize_cmd(
    transaction_id: int = typer.Argument(..., help="Stored transaction id."),
    category: str = typer.Argument(..., help="New category name (created if missing)."),
    database_url: str | None = DATABASE_URL_OPTION,
    config_dir: Path | None = CONFIG_DIR_OPTION,
) -> None:
    """Change the category of one stored transaction."""

    _exit(
        cmd_recategorize(
            transaction_id, category, database_url=database_url, config_dir=config_dir
        )
    )


@app.command("match")
def match_cmd(
    description: str = typer.Argument(..., help="Transaction description to analyse."),
    database_url: str | None = DATABASE_URL_OPTION,
    config_dir: Path | None = CONFIG_DIR_OPTION,
) -> None:
    """Show tokens, keyword rule and similar-transaction categories for DESCRIPTION."""

    _exit(cmd_match(description, database_url=database_url, config_dir=config_dir))


@app.callback(invoke_without_command=True)
def _root(ctx: typer.Context) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and installs logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    # Central logging setup so child loggers inherit configuration
    configure_logging()

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover
    app()
