from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from ledger_recon.cleaners import (
    CLEANERS,
    DEFAULT_CLEANER,
    RBC_BANK_ID,
    clean_default,
    clean_rbc,
    get_cleaner,
)
from ledger_recon.models import RawTransaction, TransactionType


def _raw(amount, *, type_="DEBIT", name=None, memo=None):
    return RawTransaction(
        fit_id="f1", date=date(2024, 5, 1), amount=Decimal(amount), type=type_, name=name, memo=memo
    )


def test_default_joins_non_blank_name_and_memo_upper_cased():
    cleaned = clean_default(_raw("-4.50", name=" Starbucks ", memo="store 4756"))
    assert cleaned.description == "STARBUCKS STORE 4756"
    assert cleaned.type is TransactionType.DEBIT


def test_default_skips_blank_fields_and_maps_unknown_types_to_other():
    cleaned = clean_default(_raw("-4.50", type_="WEIRD", name="NETFLIX", memo="   "))
    assert cleaned.description == "NETFLIX"
    assert cleaned.type is TransactionType.OTHER


def test_lookup_falls_back_to_default_cleaner():
    assert get_cleaner("000000000") is DEFAULT_CLEANER
    assert get_cleaner(None) is DEFAULT_CLEANER
    assert get_cleaner(f" {RBC_BANK_ID} ") is CLEANERS[RBC_BANK_ID]


@pytest.mark.parametrize(
    ("amount", "expected"),
    [("-200.00", "TRANSFER OUT OF ACCOUNT"), ("200.00", "TRANSFER INTO ACCOUNT")],
)
def test_rbc_online_transfers_become_xfer(amount, expected):
    cleaned = clean_rbc(_raw(amount, type_="CREDIT", name="WWW TRF DDA - 1234", memo="MISC"))
    assert cleaned.description == expected
    assert cleaned.type is TransactionType.XFER


def test_rbc_bill_payment_uses_payee_from_memo():
    cleaned = clean_rbc(_raw("-80.00", name="BILL PMT", memo="WWW PAYMENT - 1234 ROGERS WIRELESS"))
    assert cleaned.description == "ROGERS WIRELESS"
    assert cleaned.type is TransactionType.DEBIT


def test_rbc_interac_purchase_keeps_merchant_name():
    cleaned = clean_rbc(_raw("-12.34", name="LOBLAWS 1234", memo="IDP PURCHASE - 5678"))
    assert cleaned.description == "LOBLAWS 1234"
    assert cleaned.type is TransactionType.DEBIT


def test_rbc_service_charge_is_a_fee():
    cleaned = clean_rbc(_raw("-1.50", name="INTERAC-SC-0042", memo=None))
    assert cleaned.description == "INTERAC E-TRANSFER SERVICE CHARGE"
    assert cleaned.type is TransactionType.FEE


def test_rbc_atm_withdrawal():
    cleaned = clean_rbc(_raw("-60.00", type_="ATM", name="ATM", memo="PTB WD --- HJ123"))
    assert cleaned.description == "ATM WITHDRAWAL"


def test_rbc_usd_purchase_is_flagged():
    cleaned = clean_rbc(_raw("-6.54", name="AMAZON.COM", memo="5.00 USD @ 1.308000000000"))
    assert cleaned.description == "AMAZON.COM (USD PURCHASE)"


def test_rbc_unmatched_records_use_default_cleaning():
    cleaned = clean_rbc(_raw("-9.99", name="Spotify", memo="P123"))
    assert cleaned.description == "SPOTIFY P123"
    assert cleaned.type is TransactionType.DEBIT
