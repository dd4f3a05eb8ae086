"""Bank-specific cleaning of raw statement records.

Statement exports carry one or two free-text fields (``name``/``memo``) and a
type tag whose quality varies by bank. A cleaner turns a
:class:`~ledger_recon.models.RawTransaction` into the single description and
type the rest of the pipeline consumes.

Cleaners form a closed set looked up by bank id (:data:`CLEANERS`); unknown
banks get the default cleaner, which joins the non-blank name and memo in
upper case. Bank variants are ordered lists of :class:`MatcherRule` objects:
the first rule whose conditions all hold transforms the record, otherwise the
default cleaning applies.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal

from .models import RawTransaction, TransactionType


@dataclass(frozen=True, slots=True)
class CleanedTransaction:
    description: str
    type: TransactionType


def _upper(value: str | None) -> str:
    return (value or "").strip().upper()


def join_name_and_memo(raw: RawTransaction) -> str:
    return " ".join(_upper(p) for p in (raw.name, raw.memo) if p is not None and p.strip())


def clean_default(raw: RawTransaction) -> CleanedTransaction:
    return CleanedTransaction(join_name_and_memo(raw), TransactionType.parse(raw.type))


# ---------------------------------------------------------------------------
# Rule-based cleaning
# ---------------------------------------------------------------------------


def negative(amount: Decimal) -> bool:
    return amount < 0


def positive(amount: Decimal) -> bool:
    return amount > 0


@dataclass(frozen=True, slots=True)
class MatcherRule:
    """All given conditions must hold; ``name``/``memo`` patterns match the whole field."""

    transform: Callable[[RawTransaction], CleanedTransaction]
    type: TransactionType | None = None
    amount: Callable[[Decimal], bool] | None = None
    name: re.Pattern[str] | None = None
    memo: re.Pattern[str] | None = None

    def matches(self, raw: RawTransaction) -> bool:
        if self.type is not None and TransactionType.parse(raw.type) is not self.type:
            return False
        if self.amount is not None and not self.amount(raw.amount):
            return False
        if self.name is not None and not self.name.fullmatch(_upper(raw.name)):
            return False
        if self.memo is not None and not self.memo.fullmatch(_upper(raw.memo)):
            return False
        return True


def _p(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


def _fixed(description: str, type_: TransactionType | None = None):
    def transform(raw: RawTransaction) -> CleanedTransaction:
        return CleanedTransaction(description, type_ or TransactionType.parse(raw.type))

    return transform


def _signed_transfer(raw: RawTransaction) -> CleanedTransaction:
    if raw.amount < 0:
        return CleanedTransaction("TRANSFER OUT OF ACCOUNT", TransactionType.XFER)
    return CleanedTransaction("TRANSFER INTO ACCOUNT", TransactionType.XFER)


def _memo_as(type_: TransactionType | None = None):
    def transform(raw: RawTransaction) -> CleanedTransaction:
        return CleanedTransaction(_upper(raw.memo), type_ or TransactionType.parse(raw.type))

    return transform


def _name_as(type_: TransactionType | None = None, suffix: str = ""):
    def transform(raw: RawTransaction) -> CleanedTransaction:
        return CleanedTransaction(
            _upper(raw.name) + suffix, type_ or TransactionType.parse(raw.type)
        )

    return transform


def _bill_payment(raw: RawTransaction) -> CleanedTransaction:
    # "WWW PAYMENT - 1234 " prefix is 19 characters; the payee follows.
    return CleanedTransaction(_upper((raw.memo or "")[19:]), TransactionType.DEBIT)


def clean_with_rules(raw: RawTransaction, rules: Sequence[MatcherRule]) -> CleanedTransaction:
    for rule in rules:
        if rule.matches(raw):
            return rule.transform(raw)
    return clean_default(raw)


_T = TransactionType

RBC_BANK_ID = "900000100"
RBC_RULES: tuple[MatcherRule, ...] = (
    # inter-account transfers
    MatcherRule(_signed_transfer, name=_p(r"^WWW TRF DDA - \d+.*$")),
    MatcherRule(_signed_transfer, memo=_p(r"^WWW TRANSFER - \d+.*$")),
    MatcherRule(_signed_transfer, name=_p(r"^WWW TFR TIN0.*$")),
    # line of credit payments, both legs
    MatcherRule(
        _fixed("LINE OF CREDIT PAYMENT", _T.XFER),
        type=_T.DEBIT,
        amount=negative,
        memo=_p(r"^WWW LOAN PMT - \d+.*$"),
    ),
    MatcherRule(
        _fixed("LINE OF CREDIT PAYMENT", _T.XFER),
        type=_T.CREDIT,
        amount=positive,
        name=_p(r"^WWW PMT TIN0.*"),
    ),
    MatcherRule(
        _fixed("CREDIT CARD PAYMENT", _T.XFER),
        type=_T.CREDIT,
        amount=positive,
        name=_p(r"^PAYMENT - THANK YOU.*"),
    ),
    # online bill payment
    MatcherRule(_bill_payment, type=_T.DEBIT, amount=negative, memo=_p(r"^WWW PAYMENT - \d+.*$")),
    MatcherRule(_fixed("WIRE TRANSFER"), name=_p(r"^FUNDS TRANSFER CR")),
    # Interac e-transfers
    MatcherRule(
        _fixed("INCOMING INTERAC E-TRANSFER AUTO-DEPOSIT", _T.CREDIT),
        type=_T.CREDIT,
        amount=positive,
        name=_p(r"^E-TRF AUTODEPOSIT$"),
    ),
    MatcherRule(
        _fixed("INCOMING INTERAC E-TRANSFER", _T.CREDIT),
        type=_T.CREDIT,
        amount=positive,
        name=_p(r"^Email Trfs Can.*$"),
        memo=_p(r"^INT E-TRF CAN.*$"),
    ),
    MatcherRule(
        _fixed("INCOMING INTERAC E-TRANSFER", _T.CREDIT),
        type=_T.CREDIT,
        amount=positive,
        name=_p(r"^Email Trfs.*$"),
        memo=_p(r"^INTERAC E-TRF-.*$"),
    ),
    MatcherRule(
        _fixed("OUTGOING INTERAC E-TRANSFER", _T.DEBIT),
        type=_T.DEBIT,
        amount=negative,
        memo=_p(r"^INTERAC E-TRF-\s\d*$"),
    ),
    MatcherRule(
        _fixed("OUTGOING INTERAC E-TRANSFER", _T.DEBIT),
        type=_T.DEBIT,
        amount=negative,
        memo=_p(r"^E-TRANSFER SENT"),
    ),
    MatcherRule(
        _fixed("INTERAC E-TRANSFER SERVICE CHARGE", _T.FEE),
        type=_T.DEBIT,
        amount=negative,
        name=_p(r"^INTERAC-SC-\d+$"),
    ),
    MatcherRule(
        _fixed("INTERAC E-TRANSFER SERVICE CHARGE", _T.FEE),
        type=_T.DEBIT,
        amount=negative,
        name=_p(r"^INT E-TRF FEE\s*$"),
    ),
    MatcherRule(
        _fixed("CANCELLED INTERAC E-TRANSFER", _T.CREDIT),
        type=_T.CREDIT,
        amount=positive,
        memo=re.compile(r"^E-TRANSFER CANCEL"),
    ),
    MatcherRule(
        _fixed("PERSONAL LOAN REPAYMENT", _T.DEBIT),
        type=_T.DEBIT,
        amount=negative,
        name=_p(r"^PERSONAL LOAN$"),
    ),
    # USD purchases carry a conversion memo like "5.00 USD @ 1.308000000000"
    MatcherRule(
        _name_as(suffix=" (USD PURCHASE)"),
        type=_T.DEBIT,
        amount=negative,
        memo=_p(r"^\d*\.\d*\sUSD*\s@\s\d*.\d*$"),
    ),
    # Interac purchases: the memo is noise, the name is the merchant
    MatcherRule(_name_as(_T.DEBIT), amount=negative, memo=_p(r"^IDP PURCHASE\s*-\s*\d+.*$")),
    MatcherRule(_memo_as(_T.DEBIT), type=_T.DEBIT, amount=negative, name=_p(r"^WWWINTERAC PUR.*$")),
    MatcherRule(
        _memo_as(), type=_T.DEBIT, amount=negative, name=_p(r"^C-IDP PURCHASE\s*-\s*\d+.*$")
    ),
    # ATM
    MatcherRule(
        _fixed("ATM WITHDRAWAL", _T.DEBIT), type=_T.ATM, amount=negative, memo=_p(r"^PTB CB WD-.*$")
    ),
    MatcherRule(
        _fixed("ATM WITHDRAWAL", _T.DEBIT), type=_T.ATM, amount=negative, memo=_p(r"^PTB WD ---.*$")
    ),
    MatcherRule(
        _fixed("ATM DEPOSIT", _T.CREDIT), type=_T.ATM, amount=positive, memo=_p(r"^PTB DEP --.*$")
    ),
    MatcherRule(_memo_as(), name=_p(r"^MISC PAYMENT$")),
)


def clean_rbc(raw: RawTransaction) -> CleanedTransaction:
    return clean_with_rules(raw, RBC_RULES)


# ---------------------------------------------------------------------------
# Lookup table
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class BankCleaner:
    bank_id: str
    institution_name: str
    clean: Callable[[RawTransaction], CleanedTransaction]


DEFAULT_CLEANER = BankCleaner("default", "default", clean_default)

CLEANERS: dict[str, BankCleaner] = {
    RBC_BANK_ID: BankCleaner(RBC_BANK_ID, "Royal Bank Canada", clean_rbc),
}


def get_cleaner(
    bank_id: str | None, cleaners: Mapping[str, BankCleaner] = CLEANERS
) -> BankCleaner:
    """Return the cleaner registered for ``bank_id`` in ``cleaners``, or the default one."""

    if bank_id is None:
        return DEFAULT_CLEANER
    return cleaners.get(bank_id.strip(), DEFAULT_CLEANER)


__all__ = [
    "CleanedTransaction",
    "MatcherRule",
    "BankCleaner",
    "DEFAULT_CLEANER",
    "CLEANERS",
    "RBC_BANK_ID",
    "RBC_RULES",
    "clean_default",
    "clean_rbc",
    "clean_with_rules",
    "join_name_and_memo",
    "get_cleaner",
]
