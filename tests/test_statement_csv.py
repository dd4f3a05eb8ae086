from __future__ import annotations

import csv
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from ledger_recon.ingest.statement_csv import load_statements

HEADER = "bank_id,account_number,account_name,fit_id,date,amount,type,name,memo\n"


def _write(tmp_path: Path, body: str, header: str = HEADER) -> Path:
    path = tmp_path / "statement.csv"
    path.write_text(header + body, encoding="utf-8")
    return path


def test_rows_are_grouped_per_account_in_first_seen_order(tmp_path):
    path = _write(
        tmp_path,
        "900000100,111,Chequing,F1,2024-03-01,-100.00,XFER,WWW TRF DDA - 1,\n"
        "900000100,222,Savings,F2,03/01/2024,100.00,XFER,WWW TRF DDA - 2,\n"
        "900000100,111,Chequing,F3,2024-03-02,\"-1,200.50\",DEBIT,  RENT  ,MARCH\n",
    )

    statements = load_statements(path, {"111": Decimal("500"), "222": Decimal("100.00")})

    assert [s.account_number for s in statements] == ["111", "222"]
    chequing = statements[0]
    assert chequing.account_name == "Chequing"
    assert chequing.ending_balance == Decimal("500.00")
    assert [t.fit_id for t in chequing.transactions] == ["F1", "F3"]
    third = chequing.transactions[1]
    assert third.date == date(2024, 3, 2)
    assert third.amount == Decimal("-1200.50")
    assert third.name == "RENT"
    assert statements[1].transactions[0].date == date(2024, 3, 1)
    assert statements[1].transactions[0].memo is None


def test_missing_ending_balance_is_an_error(tmp_path):
    path = _write(tmp_path, "b,111,,F1,2024-03-01,-1.00,DEBIT,X,\n")
    with pytest.raises(ValueError, match="111"):
        load_statements(path, {})


def test_bad_values_report_the_line(tmp_path):
    path = _write(tmp_path, "b,111,,F1,2024-03-01,-1.00,DEBIT,X,\nb,111,,F2,soon,-1.00,DEBIT,X,\n")
    with pytest.raises(ValueError, match="line 3"):
        load_statements(path, {"111": Decimal("0")})


def test_missing_required_columns(tmp_path):
    path = _write(tmp_path, "b,2024-03-01\n", header="bank_id,date\n")
    with pytest.raises(csv.Error, match="account_number"):
        load_statements(path, {})
