from __future__ import annotations

from decimal import Decimal
from pathlib import Path

from db.client import session_scope
from typer.testing import CliRunner

from ledger_recon.cli import app, parse_ending_balances
from ledger_recon.persistence import count_transactions

from tests.helpers.db import seed_transaction

runner = CliRunner()

CSV = (
    "bank_id,account_number,account_name,fit_id,date,amount,type,name,memo\n"
    "bank-1,111,Chequing,F1,2024-03-01,-100.00,XFER,TRANSFER OUT,\n"
    "bank-1,222,Savings,F2,2024-03-01,100.00,XFER,TRANSFER IN,\n"
    "bank-1,111,Chequing,F3,2024-03-02,-12.50,DEBIT,NETFLIX,\n"
)


def _csv(tmp_path: Path) -> Path:
    path = tmp_path / "statement.csv"
    path.write_text(CSV, encoding="utf-8")
    return path


def test_parse_ending_balances():
    assert parse_ending_balances(["111=1,000.50", " 222 = -3 "]) == {
        "111": Decimal("1000.50"),
        "222": Decimal("-3"),
    }


def test_import_command_reports_counts_and_is_idempotent(tmp_path, db_url):
    args = [
        "import",
        str(_csv(tmp_path)),
        "-b",
        "111=887.50",
        "-b",
        "222=100",
        "--no-interactive",
        "--database-url",
        db_url,
    ]

    first = runner.invoke(app, args)
    assert first.exit_code == 0, first.output
    assert (
        "Imported 3 transaction(s), "
        "linked 1 transfer(s), skipped 0 duplicate(s)."
    ) in first.output

    second = runner.invoke(app, args)
    assert second.exit_code == 0, second.output
    assert (
        "Imported 0 transaction(s), "
        "linked 0 transfer(s), skipped 3 duplicate(s)."
    ) in second.output

    with session_scope(database_url=db_url) as session:
        assert count_transactions(session) == 3


def test_import_command_reports_missing_file(tmp_path, db_url):
    result = runner.invoke(
        app, ["import", str(tmp_path / "nope.csv"), "-b", "111=0", "--database-url", db_url]
    )
    assert result.exit_code == 1
    assert "Error: File not found" in result.output


def test_import_command_rejects_malformed_balance(tmp_path, db_url):
    result = runner.invoke(
        app, ["import", str(_csv(tmp_path)), "-b", "111", "--database-url", db_url]
    )
    assert result.exit_code == 1
    assert "ACCOUNT=AMOUNT" in result.output


def test_match_command_shows_tokens_rule_and_history(tmp_path, db_url, monkeypatch):
    config_dir = tmp_path / "cfg"
    config_dir.mkdir()
    (config_dir / "keyword-rules.yaml").write_text(
        "rules:\n  - keywords: [netflix]\n    category: SUBSCRIPTIONS\n", encoding="utf-8"
    )
    seed_transaction(db_url, description="NETFLIX.COM", category="STREAMING")

    result = runner.invoke(
        app, ["match", "NETFLIX.COM 866", "--database-url", db_url, "--config-dir", str(config_dir)]
    )

    assert result.exit_code == 0, result.output
    assert "Tokens: com, netflix" in result.output
    assert "Keyword rule: SUBSCRIPTIONS" in result.output
    assert "STREAMING\t1.00" in result.output


def test_combine_and_recategorize_commands(db_url):
    stored = seed_transaction(db_url, description="STARBUCKS", category="CAFES")

    combined = runner.invoke(
        app, ["combine-categories", "cafes", "coffee", "--database-url", db_url]
    )
    assert combined.exit_code == 0, combined.output
    assert "Combined CAFES into COFFEE (created): 1 transaction(s) moved." in combined.output

    moved = runner.invoke(
        app, ["recategorize", str(stored.id), "treats", "--database-url", db_url]
    )
    assert moved.exit_code == 0, moved.output
    assert f"Transaction {stored.id} -> TREATS" in moved.output

    missing = runner.invoke(app, ["recategorize", "9999", "treats", "--database-url", db_url])
    assert missing.exit_code == 1
    assert "Error: Transaction not found: 9999" in missing.output


def test_combine_command_reports_invalid_source(db_url):
    result = runner.invoke(app, ["combine-categories", "UNKNOWN", "FUEL", "--database-url", db_url])
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_migrate_tokens_command(db_url):
    seed_transaction(db_url, description="TIM HORTONS", category="COFFEE", with_tokens=False)

    result = runner.invoke(app, ["migrate-tokens", "--database-url", db_url])
    assert result.exit_code == 0, result.output
    assert "Processed 1, recategorized 0, skipped 0." in result.output

    again = runner.invoke(app, ["migrate-tokens", "--database-url", db_url])
    assert "Token index is up to date." in again.output


def test_no_database_url_is_reported(tmp_path):
    result = runner.invoke(app, ["migrate-tokens"])
    assert result.exit_code == 1
    assert "DATABASE_URL is not set" in result.output
