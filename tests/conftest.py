"""Pytest configuration for test isolation.

The database client caches one engine per process, keyed to the first URL it
sees. Each test gets its own SQLite file, so the cached engine is disposed
around every test. The config directory is redirected to the test's temporary
directory so nothing reads or writes ``~/.ledger_recon``.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import pytest
from db.client import dispose_engine

from tests.helpers.db import bootstrap_sqlite_db


@pytest.fixture(autouse=True)
def _isolate_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    config_dir = tmp_path / "config"
    config_dir.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("LEDGER_RECON_CONFIG_DIR", os.fspath(config_dir))
    monkeypatch.delenv("DATABASE_URL", raising=False)
    dispose_engine()
    yield
    dispose_engine()


@pytest.fixture()
def db_url(tmp_path: Path) -> str:
    return bootstrap_sqlite_db(tmp_path / "ledger.sqlite3")
