"""Shared SQLAlchemy models registry for the workspace database.

Currently includes ledger domain models used by ``ledger_recon``.
"""

from .ledger import Base, LrAccount, LrCategory, LrTransaction, LrTransactionToken, LrTransfer

__all__ = [
    "Base",
    "LrAccount",
    "LrCategory",
    "LrTransaction",
    "LrTransactionToken",
    "LrTransfer",
]
