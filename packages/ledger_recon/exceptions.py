"""Exception types raised by ``ledger_recon`` services."""

from __future__ import annotations


class LedgerReconError(Exception):
    """Base class for errors raised by ``ledger_recon`` services."""


class TransactionImportError(LedgerReconError):
    """An import unit of work failed and was rolled back.

    ``stage`` names the import step (``"transfers"``, ``"transactions"`` or
    ``"link"``) and ``batch_index`` the zero-based unit of work within it.
    Units committed before the failing one are kept. The underlying error is
    chained as ``__cause__``.
    """

    def __init__(self, message: str, *, stage: str, batch_index: int) -> None:
        super().__init__(message)
        self.stage = stage
        self.batch_index = batch_index


class TokenMigrationError(LedgerReconError):
    """Token migration failed; batches committed before the failure are kept."""


__all__ = ["LedgerReconError", "TransactionImportError", "TokenMigrationError"]
