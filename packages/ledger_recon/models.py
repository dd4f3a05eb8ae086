"""Domain models for ``ledger_recon``.

These are plain, immutable value objects passed between the matching,
categorization and import layers. Persistence rows live in ``db.models.ledger``
and are converted at the store boundary (``ledger_recon.persistence``).

Amounts and balances are ``Decimal`` values quantized to cents; the sign
convention is the bank's: negative amounts leave an account, positive ones
enter it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum

CENTS = Decimal("0.01")


def to_cents(value: Decimal | int | str) -> Decimal:
    """Quantize ``value`` to two decimal places (half-up)."""

    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


class TransactionType(StrEnum):
    """Coarse type tag carried by statement records."""

    CREDIT = "CREDIT"
    DEBIT = "DEBIT"
    INT = "INT"
    DIV = "DIV"
    FEE = "FEE"
    SRVCHG = "SRVCHG"
    DEP = "DEP"
    ATM = "ATM"
    POS = "POS"
    XFER = "XFER"
    CHECK = "CHECK"
    PAYMENT = "PAYMENT"
    CASH = "CASH"
    DIRECTDEP = "DIRECTDEP"
    DIRECTDEBIT = "DIRECTDEBIT"
    REPEATPMT = "REPEATPMT"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, raw: str | None) -> TransactionType:
        """Map a raw statement tag to a member; unknown or missing tags are ``OTHER``."""

        if raw is None:
            return cls.OTHER
        try:
            return cls(raw.strip().upper())
        except ValueError:
            return cls.OTHER


# ---------------------------------------------------------------------------
# Ledger entities
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Account:
    """A bank account identified by ``(bank_id, account_number)``.

    Equality and hashing ignore ``id`` and ``name`` so that an account parsed
    from a statement and the persisted row compare equal.
    """

    bank_id: str
    account_number: str
    name: str | None = field(default=None, compare=False)
    id: int | None = field(default=None, compare=False)


UNKNOWN = "UNKNOWN"
TRANSFER = "TRANSFER"
RESERVED_CATEGORY_NAMES: tuple[str, ...] = (UNKNOWN, TRANSFER)


def normalize_category_name(name: str) -> str:
    """Return the canonical stored form of a category name (trimmed, upper-case)."""

    return " ".join(name.strip().split()).upper()


@dataclass(frozen=True, slots=True)
class Category:
    name: str
    id: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", normalize_category_name(self.name))

    @property
    def is_reserved(self) -> bool:
        return self.name in RESERVED_CATEGORY_NAMES


@dataclass(frozen=True, slots=True)
class Transaction:
    """A single financial event on one account.

    ``balance`` is the account balance immediately after this transaction
    posted, as reconstructed during import.
    """

    account: Account
    date: date
    amount: Decimal
    description: str
    type: TransactionType = TransactionType.OTHER
    fit_id: str | None = None
    balance: Decimal = Decimal("0.00")


@dataclass(frozen=True, slots=True)
class CategorizedTransaction:
    """A transaction bound to exactly one category."""

    transaction: Transaction
    category: Category
    id: int | None = None

    def with_category(self, category: Category) -> CategorizedTransaction:
        return replace(self, category=category)


@dataclass(frozen=True, slots=True)
class Transfer:
    """Two legs of one movement of money between accounts."""

    source: CategorizedTransaction
    sink: CategorizedTransaction
    id: int | None = None


@dataclass(frozen=True, slots=True)
class CategoryMatch:
    category: Category
    overlap_ratio: float


# ---------------------------------------------------------------------------
# Parser-facing inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RawTransaction:
    """A statement record before bank-specific cleaning."""

    fit_id: str | None
    date: date
    amount: Decimal
    type: str | None = None
    name: str | None = None
    memo: str | None = None


@dataclass(frozen=True, slots=True)
class AccountStatement:
    """One account's slice of a statement: identity, ending balance, records."""

    bank_id: str
    account_number: str
    ending_balance: Decimal
    transactions: tuple[RawTransaction, ...] = ()
    account_name: str | None = None

    @property
    def account(self) -> Account:
        return Account(self.bank_id, self.account_number, name=self.account_name)


# ---------------------------------------------------------------------------
# Service results
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class ImportReport:
    imported: list[CategorizedTransaction] = field(default_factory=list)
    transfers: list[Transfer] = field(default_factory=list)
    duplicates: int = 0


@dataclass(frozen=True, slots=True)
class Recategorization:
    description: str
    old_category: str
    new_category: str


@dataclass(slots=True)
class MigrationReport:
    processed: int = 0
    skipped: int = 0
    recategorizations: list[Recategorization] = field(default_factory=list)

    @property
    def recategorized(self) -> int:
        return len(self.recategorizations)


@dataclass(frozen=True, slots=True)
class CombineResult:
    source_name: str
    target_name: str
    transactions_moved: int
    target_created: bool


__all__ = [
    "CENTS",
    "to_cents",
    "TransactionType",
    "Account",
    "UNKNOWN",
    "TRANSFER",
    "RESERVED_CATEGORY_NAMES",
    "normalize_category_name",
    "Category",
    "Transaction",
    "CategorizedTransaction",
    "Transfer",
    "CategoryMatch",
    "RawTransaction",
    "AccountStatement",
    "ImportReport",
    "Recategorization",
    "MigrationReport",
    "CombineResult",
]
