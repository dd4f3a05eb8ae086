from __future__ import annotations

import pytest

from ledger_recon.tokens import NormalizationConfig, TokenNormalizer


@pytest.fixture()
def normalizer() -> TokenNormalizer:
    return TokenNormalizer()


def test_store_numbers_and_phone_numbers_are_dropped(normalizer):
    assert normalizer.normalize("STARBUCKS #4756") == {"starbucks"}
    assert normalizer.normalize("STARBUCKS 800-782-7282") == {"starbucks"}


def test_hyphenated_names_are_joined(normalizer):
    assert normalizer.normalize("WAL-MART #1155") == {"walmart"}


def test_apostrophes_are_removed(normalizer):
    assert normalizer.normalize("MCDONALD'S #400") == {"mcdonalds"}


def test_ampersand_initials_merge(normalizer):
    tokens = normalizer.normalize("A & W RESTAURANT")
    assert "aw" in tokens
    assert "a" not in tokens and "w" not in tokens
    assert normalizer.normalize("H&M 0123") == {"hm"}


@pytest.mark.parametrize("blank", [None, "", "   ", "\t\n"])
def test_blank_descriptions_yield_empty_set(normalizer, blank):
    assert normalizer.normalize(blank) == frozenset()


def test_html_entities_are_decoded(normalizer):
    assert normalizer.normalize("A &amp; W") == {"aw"}


def test_stop_words_and_short_tokens_are_filtered(normalizer):
    assert normalizer.normalize("THE KEG AT THE MALL X") == {"keg", "mall"}


def test_normalization_is_idempotent_and_order_free(normalizer):
    desc = "SHOPPERS DRUG MART #1234 TORONTO"
    first = normalizer.normalize(desc)
    assert normalizer.normalize(desc) == first
    assert normalizer.normalize("TORONTO shoppers Drug MART") == first


def test_custom_config_changes_filtering():
    n = TokenNormalizer(NormalizationConfig(stop_words=frozenset({"Cafe"}), min_token_length=4))
    assert n.normalize("CAFE DEPOT BAR") == {"depot"}


def test_config_rejects_min_length_below_one():
    with pytest.raises(ValueError):
        NormalizationConfig(min_token_length=0)
