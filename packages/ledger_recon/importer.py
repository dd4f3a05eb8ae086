"""Import bank statements into the ledger.

:class:`TransactionImporter` drives one import end to end:

1. resolve (or create) each statement's account and rebuild running balances
   from the statement's ending balance;
2. clean every raw record with the bank's cleaner;
3. pair transfer legs across accounts and persist each pair in its own unit
   of work;
4. categorize and persist the remaining transactions in sub-batches, each a
   single unit of work, skipping duplicates;
5. link transfer legs that are already stored but were never paired.

A failing unit of work is rolled back and surfaces as
:class:`~ledger_recon.exceptions.TransactionImportError`; units committed
before it stay in place and the import stops. Re-importing a statement is a
no-op apart from the duplicate count.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping, Sequence
from decimal import Decimal

from db.client import session_scope
from sqlalchemy.orm import Session

from . import token_index
from .categories import ensure_reserved_categories, transfer_category
from .categorize import TransactionCategorizer, recategorize
from .cleaners import CLEANERS, BankCleaner, get_cleaner
from .config import DEFAULT_BATCH_SIZE
from .duplicates import find_duplicate
from .exceptions import TransactionImportError
from .logging_setup import get_logger
from .models import (
    TRANSFER,
    Account,
    AccountStatement,
    CategorizedTransaction,
    Category,
    ImportReport,
    Transaction,
    Transfer,
    to_cents,
)
from .persistence import (
    find_unlinked_transfer_legs,
    get_or_create_account,
    insert_transaction,
    insert_transfer,
    is_in_any_transfer,
)
from .tokens import TokenNormalizer
from .transfers import TransferMatcher, match_transfer_pairs

_logger = get_logger("ledger_recon.importer")

CategorizerFactory = Callable[[Session], TransactionCategorizer]


def build_transactions(
    account: Account, statement: AccountStatement, cleaner: BankCleaner
) -> list[Transaction]:
    """Clean ``statement``'s records and assign post-transaction balances.

    Records are ordered by date (stable for same-day records). The opening
    balance is ``ending_balance - sum(amounts)``, so the last transaction's
    balance equals the statement's ending balance.
    """

    raws = sorted(statement.transactions, key=lambda r: r.date)
    total = sum((to_cents(r.amount) for r in raws), Decimal("0.00"))
    balance = to_cents(statement.ending_balance) - total

    out: list[Transaction] = []
    for raw in raws:
        amount = to_cents(raw.amount)
        balance += amount
        cleaned = cleaner.clean(raw)
        out.append(
            Transaction(
                account=account,
                date=raw.date,
                amount=amount,
                description=cleaned.description,
                type=cleaned.type,
                fit_id=raw.fit_id,
                balance=balance,
            )
        )
    return out


def _chunks(items: Sequence[Transaction], size: int) -> Iterator[Sequence[Transaction]]:
    for i in range(0, len(items), size):
        yield items[i : i + size]


class TransactionImporter:
    def __init__(
        self,
        *,
        database_url: str | None = None,
        categorizer_factory: CategorizerFactory | None = None,
        cleaners: Mapping[str, BankCleaner] | None = None,
        transfer_matcher: TransferMatcher | None = None,
        normalizer: TokenNormalizer | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._database_url = database_url
        self._normalizer = normalizer or TokenNormalizer()
        self._categorizer_factory = categorizer_factory or (
            lambda session: TransactionCategorizer(session, normalizer=self._normalizer)
        )
        self._cleaners = CLEANERS if cleaners is None else cleaners
        self._transfer_matcher = transfer_matcher or TransferMatcher()
        self._batch_size = batch_size

    def import_statements(self, statements: Sequence[AccountStatement]) -> ImportReport:
        report = ImportReport()
        by_account = self._prepare(statements)
        fresh = sum(len(v) for v in by_account.values())
        _logger.info("import:start accounts=%d transactions=%d", len(by_account), fresh)

        matched = self._transfer_matcher.match(by_account, transfer_category=Category(TRANSFER))
        for i, transfer in enumerate(matched.transfers):
            self._run_unit("transfers", i, self._store_transfer, transfer, report)

        remaining = [t for txs in matched.remaining.values() for t in txs]
        for i, batch in enumerate(_chunks(remaining, self._batch_size)):
            self._run_unit("transactions", i, self._store_batch, batch, report)

        self._run_unit("link", 0, self._link_stored_transfers, None, report)

        _logger.info(
            "import:done imported=%d transfers=%d duplicates=%d",
            len(report.imported),
            len(report.transfers),
            report.duplicates,
        )
        return report

    # ---- steps -------------------------------------------------------------

    def _prepare(self, statements: Sequence[AccountStatement]) -> dict[Account, list[Transaction]]:
        by_account: dict[Account, list[Transaction]] = {}
        with session_scope(database_url=self._database_url) as session:
            ensure_reserved_categories(session)
            for statement in statements:
                account = get_or_create_account(session, statement.account)
                cleaner = get_cleaner(statement.bank_id, self._cleaners)
                txs = build_transactions(account, statement, cleaner)
                by_account.setdefault(account, []).extend(txs)
        return by_account

    def _run_unit(self, stage: str, index: int, step, arg, report: ImportReport) -> None:
        # Results are merged into ``report`` only after the unit commits.
        partial = ImportReport()
        try:
            with session_scope(database_url=self._database_url) as session:
                step(session, arg, partial)
        except Exception as e:
            _logger.error("import:unit_failed stage=%s batch=%d", stage, index, exc_info=True)
            raise TransactionImportError(
                f"import failed in {stage} batch {index}: {e}", stage=stage, batch_index=index
            ) from e
        report.imported.extend(partial.imported)
        report.transfers.extend(partial.transfers)
        report.duplicates += partial.duplicates

    def _store_transfer(self, session: Session, transfer: Transfer, out: ImportReport) -> None:
        category = transfer_category(session)
        legs: list[CategorizedTransaction] = []
        for leg in (transfer.source, transfer.sink):
            existing = find_duplicate(session, leg.transaction)
            if existing is not None:
                out.duplicates += 1
                if existing.category.id != category.id:
                    existing = recategorize(
                        session, existing.id, TRANSFER, normalizer=self._normalizer
                    )
                legs.append(existing)
                continue
            stored = insert_transaction(session, CategorizedTransaction(leg.transaction, category))
            token_index.insert_tokens(
                session, stored.id, self._normalizer.normalize(stored.transaction.description)
            )
            out.imported.append(stored)
            legs.append(stored)

        source, sink = legs
        if is_in_any_transfer(session, source.id) or is_in_any_transfer(session, sink.id):
            _logger.info("import:transfer_already_linked source=%d sink=%d", source.id, sink.id)
            return
        out.transfers.append(insert_transfer(session, Transfer(source=source, sink=sink)))

    def _store_batch(
        self, session: Session, batch: Sequence[Transaction], out: ImportReport
    ) -> None:
        categorizer = self._categorizer_factory(session)
        for tx in batch:
            if find_duplicate(session, tx) is not None:
                _logger.info(
                    "import:duplicate date=%s amount=%s description=%r",
                    tx.date.isoformat(),
                    tx.amount,
                    tx.description,
                )
                out.duplicates += 1
                continue
            tokens = self._normalizer.normalize(tx.description)
            categorized = categorizer.categorize(tx, tokens)
            stored = insert_transaction(session, categorized)
            token_index.insert_tokens(session, stored.id, tokens)
            out.imported.append(stored)

    def _link_stored_transfers(self, session: Session, _arg: None, out: ImportReport) -> None:
        legs = find_unlinked_transfer_legs(session)
        if not legs:
            return
        category = transfer_category(session)
        for si, ki in match_transfer_pairs([leg.transaction for leg in legs]):
            pair = []
            for leg in (legs[si], legs[ki]):
                if leg.category.id != category.id:
                    leg = recategorize(session, leg.id, TRANSFER, normalizer=self._normalizer)
                pair.append(leg)
            out.transfers.append(insert_transfer(session, Transfer(source=pair[0], sink=pair[1])))
            _logger.info("import:linked_stored_transfer source=%d sink=%d", pair[0].id, pair[1].id)


__all__ = ["CategorizerFactory", "TransactionImporter", "build_transactions"]
