from __future__ import annotations

from datetime import date
from decimal import Decimal

from ledger_recon.models import Account, Transaction, TransactionType
from ledger_recon.transfers import TransferMatcher, match_transfer_pairs

CHEQUING = Account("bank-1", "chequing", id=1)
SAVINGS = Account("bank-1", "savings", id=2)
VISA = Account("bank-2", "visa", id=3)
D = date(2024, 3, 1)


def _tx(account, amount, *, on=D, type_=TransactionType.XFER, desc="TRANSFER"):
    return Transaction(
        account=account, date=on, amount=Decimal(amount), description=desc, type=type_
    )


def test_pairs_opposite_legs_on_same_day_across_accounts():
    out = _tx(CHEQUING, "-100.00", desc="TRANSFER OUT OF ACCOUNT")
    into = _tx(SAVINGS, "100.00", desc="TRANSFER INTO ACCOUNT")
    groceries = _tx(CHEQUING, "-45.12", type_=TransactionType.DEBIT, desc="LOBLAWS")

    result = TransferMatcher().match({CHEQUING: [out, groceries], SAVINGS: [into]})

    assert len(result.transfers) == 1
    transfer = result.transfers[0]
    assert transfer.source.transaction == out
    assert transfer.sink.transaction == into
    assert transfer.source.category.name == "TRANSFER"
    assert transfer.sink.category.name == "TRANSFER"
    assert result.remaining == {CHEQUING: [groceries], SAVINGS: []}


def test_input_mapping_is_not_mutated():
    out = _tx(CHEQUING, "-100.00")
    into = _tx(SAVINGS, "100.00")
    given = {CHEQUING: [out], SAVINGS: [into]}

    TransferMatcher().match(given)

    assert given == {CHEQUING: [out], SAVINGS: [into]}


def test_ambiguous_sinks_leave_source_unmatched():
    out = _tx(CHEQUING, "-50.00")
    sinks = [_tx(SAVINGS, "50.00"), _tx(VISA, "50.00")]

    result = TransferMatcher().match({CHEQUING: [out], SAVINGS: [sinks[0]], VISA: [sinks[1]]})

    assert result.transfers == []
    assert sum(len(v) for v in result.remaining.values()) == 3


def test_no_candidate_leaves_legs_unmatched():
    pairs = match_transfer_pairs(
        [
            _tx(CHEQUING, "-50.00"),
            _tx(SAVINGS, "50.00", on=date(2024, 3, 2)),
            _tx(VISA, "49.99"),
        ]
    )
    assert pairs == []


def test_legs_in_same_account_never_pair():
    pairs = match_transfer_pairs([_tx(CHEQUING, "-20.00"), _tx(CHEQUING, "20.00")])
    assert pairs == []


def test_only_xfer_typed_transactions_participate():
    pairs = match_transfer_pairs(
        [_tx(CHEQUING, "-20.00", type_=TransactionType.DEBIT), _tx(SAVINGS, "20.00")]
    )
    assert pairs == []


def test_consumed_sink_is_not_offered_again():
    txs = [
        _tx(CHEQUING, "-10.00"),
        _tx(VISA, "-10.00"),
        _tx(SAVINGS, "10.00"),
    ]
    # First source takes the only sink; the second source has nothing left.
    assert match_transfer_pairs(txs) == [(0, 2)]


def test_each_transaction_is_in_at_most_one_transfer():
    txs = [
        _tx(CHEQUING, "-10.00"),
        _tx(SAVINGS, "10.00"),
        _tx(CHEQUING, "-25.00"),
        _tx(VISA, "25.00"),
    ]
    pairs = match_transfer_pairs(txs)
    flat = [i for pair in pairs for i in pair]
    assert sorted(pairs) == [(0, 1), (2, 3)]
    assert len(flat) == len(set(flat))
