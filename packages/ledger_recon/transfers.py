"""Pair the two legs of inter-account transfers.

Only transactions typed ``XFER`` take part. A negative-amount leg (source)
pairs with a positive-amount leg (sink) when both posted on the same date,
the sink's amount is exactly the negation of the source's, and the legs
belong to different accounts. A source pairs only when exactly one sink
qualifies; zero or several candidates leave it unmatched so it is categorized
like any other transaction. A consumed sink is never offered again.

Amounts and dates must match exactly. Transfers that clear on different days,
or that lose a fee in between, are not detected.

The matcher is pure: :meth:`TransferMatcher.match` returns the transfers it
formed together with a new account map holding only the unmatched
transactions, and never mutates its input.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from .logging_setup import get_logger
from .models import (
    TRANSFER,
    Account,
    CategorizedTransaction,
    Category,
    Transaction,
    TransactionType,
    Transfer,
)

_logger = get_logger("ledger_recon.transfers")


@dataclass(frozen=True, slots=True)
class TransferMatchResult:
    transfers: list[Transfer] = field(default_factory=list)
    remaining: dict[Account, list[Transaction]] = field(default_factory=dict)


def match_transfer_pairs(transactions: Sequence[Transaction]) -> list[tuple[int, int]]:
    """Return ``(source_index, sink_index)`` pairs over ``transactions``.

    Sources are visited in sequence order, a single pass.
    """

    sources: list[int] = []
    sinks: list[int] = []
    for i, t in enumerate(transactions):
        if t.type is not TransactionType.XFER:
            continue
        if t.amount < 0:
            sources.append(i)
        elif t.amount > 0:
            sinks.append(i)

    consumed: set[int] = set()
    pairs: list[tuple[int, int]] = []
    for si in sources:
        source = transactions[si]
        candidates = [
            ki
            for ki in sinks
            if ki not in consumed
            and transactions[ki].date == source.date
            and transactions[ki].amount == -source.amount
            and transactions[ki].account != source.account
        ]
        if len(candidates) != 1:
            if candidates:
                _logger.info(
                    "transfers:ambiguous date=%s amount=%s candidates=%d",
                    source.date.isoformat(),
                    source.amount,
                    len(candidates),
                )
            continue
        consumed.add(candidates[0])
        pairs.append((si, candidates[0]))
    return pairs


class TransferMatcher:
    """Form :class:`Transfer` records from freshly imported transactions."""

    def match(
        self,
        account_transactions: Mapping[Account, Sequence[Transaction]],
        *,
        transfer_category: Category | None = None,
    ) -> TransferMatchResult:
        category = transfer_category or Category(TRANSFER)

        flat: list[Transaction] = []
        owners: list[Account] = []
        for account, txs in account_transactions.items():
            for t in txs:
                flat.append(t)
                owners.append(account)

        pairs = match_transfer_pairs(flat)
        matched = {i for pair in pairs for i in pair}

        transfers = [
            Transfer(
                source=CategorizedTransaction(flat[si], category),
                sink=CategorizedTransaction(flat[ki], category),
            )
            for si, ki in pairs
        ]
        remaining: dict[Account, list[Transaction]] = {a: [] for a in account_transactions}
        for i, t in enumerate(flat):
            if i not in matched:
                remaining[owners[i]].append(t)

        _logger.info("transfers:matched pairs=%d candidates=%d", len(transfers), len(flat))
        return TransferMatchResult(transfers=transfers, remaining=remaining)


__all__ = ["TransferMatchResult", "TransferMatcher", "match_transfer_pairs"]
