from __future__ import annotations

import pytest
from db.client import session_scope

from ledger_recon import persistence, token_index
from ledger_recon.exceptions import TokenMigrationError
from ledger_recon.keyword_rules import load_keyword_rules_from_string
from ledger_recon.migration import TokenMigrationService
from ledger_recon.persistence import get_transaction

from tests.helpers.db import seed_transaction

RULES = load_keyword_rules_from_string(
    "rules:\n  - keywords: [spotify]\n    category: SUBSCRIPTIONS\n"
)


def test_migration_backfills_missing_tokens(db_url):
    a = seed_transaction(db_url, description="TIM HORTONS", category="COFFEE", with_tokens=False)
    b = seed_transaction(db_url, description="SHELL", category="FUEL", amount="-40.00")
    service = TokenMigrationService(database_url=db_url)

    assert service.is_migration_needed() is True
    report = service.migrate_existing_transactions()

    assert report.processed == 1
    assert report.skipped == 0
    assert report.recategorized == 0
    assert service.is_migration_needed() is False
    with session_scope(database_url=db_url) as session:
        assert token_index.get_tokens(session, a.id) == {"tim", "hortons"}
        assert token_index.get_tokens(session, b.id) == {"shell"}


def test_descriptions_without_tokens_are_skipped_and_migration_ends(db_url):
    for amount in ("-1.00", "-2.00", "-3.00"):
        seed_transaction(
            db_url, description="#1234", category="UNKNOWN", amount=amount, with_tokens=False
        )
    seed_transaction(db_url, description="COSTCO", category="GROCERIES", with_tokens=False)

    service = TokenMigrationService(database_url=db_url, batch_size=2)
    report = service.migrate_existing_transactions()

    assert report.skipped == 3
    assert report.processed == 1


def test_keyword_rules_recategorize_during_migration(db_url):
    stored = seed_transaction(
        db_url, description="SPOTIFY P1234", category="UNKNOWN", with_tokens=False
    )
    seed_transaction(
        db_url, description="SPOTIFY FAMILY", category="Subscriptions", amount="-16.99",
        with_tokens=False,
    )

    report = TokenMigrationService(
        database_url=db_url, keyword_rules=RULES
    ).migrate_existing_transactions()

    assert report.processed == 2
    assert report.recategorized == 1
    (change,) = report.recategorizations
    assert (change.description, change.old_category, change.new_category) == (
        "SPOTIFY P1234",
        "UNKNOWN",
        "SUBSCRIPTIONS",
    )
    with session_scope(database_url=db_url) as session:
        reread = get_transaction(session, stored.id)
        assert reread is not None and reread.category.name == "SUBSCRIPTIONS"


def test_remigrate_all_rebuilds_every_entry(db_url):
    seed_transaction(db_url, description="TIM HORTONS", category="COFFEE")
    seed_transaction(db_url, description="SHELL", category="FUEL", amount="-40.00")

    report = TokenMigrationService(database_url=db_url).remigrate_all()

    assert report.processed == 2


def test_failure_is_wrapped(db_url, monkeypatch):
    seed_transaction(db_url, description="TIM HORTONS", category="COFFEE", with_tokens=False)

    def _boom(*_args, **_kwargs):
        raise RuntimeError("database went away")

    monkeypatch.setattr(token_index, "insert_tokens", _boom)
    with pytest.raises(TokenMigrationError) as excinfo:
        TokenMigrationService(database_url=db_url).migrate_existing_transactions()
    assert isinstance(excinfo.value.__cause__, RuntimeError)

    with session_scope(database_url=db_url) as session:
        assert persistence.count_without_tokens(session) == 1
