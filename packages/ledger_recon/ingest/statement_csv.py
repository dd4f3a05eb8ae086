"""Read bank statement exports saved as CSV.

One file may hold records for several accounts. Expected header (exact keys;
``account_name``, ``fit_id``, ``type``, ``name`` and ``memo`` may be empty or
absent)::

    bank_id, account_number, account_name, fit_id, date, amount, type, name, memo

``date`` is ``YYYY-MM-DD`` or ``MM/DD/YYYY``. ``amount`` uses the bank's sign
(negative leaves the account). CSV files carry no balances, so the ending
balance of each account is supplied by the caller, keyed by account number.
"""

from __future__ import annotations

import csv
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from os import PathLike
from pathlib import Path

from ..models import AccountStatement, RawTransaction, to_cents

REQUIRED_HEADERS = ("bank_id", "account_number", "date", "amount")


def _text(value: str | None) -> str | None:
    if value is None:
        return None
    s = " ".join(value.split())
    return s if s else None


def _parse_date(value: str | None, *, line: int) -> date:
    s = (value or "").strip()
    for fmt in ("%Y-%m-%d", "%m/%d/%Y", "%m/%d/%y"):
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"line {line}: unparseable date {value!r}")


def _parse_amount(value: str | None, *, line: int) -> Decimal:
    s = (value or "").strip().replace(",", "")
    try:
        return to_cents(Decimal(s))
    except InvalidOperation as e:
        raise ValueError(f"line {line}: unparseable amount {value!r}") from e


def to_statements(
    rows: Iterable[Mapping[str, str]], ending_balances: Mapping[str, Decimal]
) -> list[AccountStatement]:
    """Group CSV rows by account into statements, in first-seen account order.

    Raises ``ValueError`` for unparseable dates or amounts and for accounts
    with no entry in ``ending_balances``.
    """

    records: dict[tuple[str, str], list[RawTransaction]] = {}
    names: dict[tuple[str, str], str | None] = {}
    # header is line 1
    for line, row in enumerate(rows, start=2):
        bank_id = _text(row.get("bank_id"))
        account_number = _text(row.get("account_number"))
        if not bank_id or not account_number:
            raise ValueError(f"line {line}: bank_id and account_number are required")
        key = (bank_id, account_number)
        names.setdefault(key, _text(row.get("account_name")))
        records.setdefault(key, []).append(
            RawTransaction(
                fit_id=_text(row.get("fit_id")),
                date=_parse_date(row.get("date"), line=line),
                amount=_parse_amount(row.get("amount"), line=line),
                type=_text(row.get("type")),
                name=_text(row.get("name")),
                memo=_text(row.get("memo")),
            )
        )

    missing = sorted(number for _bank, number in records if number not in ending_balances)
    if missing:
        raise ValueError("missing ending balance for account(s): " + ", ".join(missing))

    return [
        AccountStatement(
            bank_id=bank_id,
            account_number=number,
            ending_balance=to_cents(ending_balances[number]),
            transactions=tuple(txs),
            account_name=names[(bank_id, number)],
        )
        for (bank_id, number), txs in records.items()
    ]


def load_statements(
    csv_path: str | PathLike[str], ending_balances: Mapping[str, Decimal]
) -> list[AccountStatement]:
    """Read ``csv_path`` and return one statement per account found in it."""

    p = Path(csv_path)
    with p.open(encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        headers = set(reader.fieldnames or [])
        if not headers:
            raise csv.Error(f"CSV appears to have no header row: {csv_path}")
        missing = [h for h in REQUIRED_HEADERS if h not in headers]
        if missing:
            raise csv.Error("CSV header mismatch. Missing columns: " + ", ".join(missing))
        return to_statements(reader, ending_balances)


__all__ = ["REQUIRED_HEADERS", "to_statements", "load_statements"]
