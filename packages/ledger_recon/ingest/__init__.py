"""Statement readers that produce :class:`~ledger_recon.models.AccountStatement` lists."""
