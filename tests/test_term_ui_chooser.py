import contextlib
from datetime import date
from decimal import Decimal

from prompt_toolkit import PromptSession
from prompt_toolkit.input import create_pipe_input
from prompt_toolkit.output import DummyOutput

from ledger_recon import term_ui
from ledger_recon.models import Account, Category, Transaction
from ledger_recon.term_ui import (
    CREATE_SENTINEL,
    PromptCategoryChooser,
    prompt_new_category_name,
    select_option,
)

CATEGORIES = ["COFFEE SHOPS", "GROCERIES", "RESTAURANTS"]
TX = Transaction(
    account=Account("bank-1", "chequing", id=1),
    date=date(2024, 6, 1),
    amount=Decimal("-4.25"),
    description="BALZACS COFFEE",
)


@contextlib.contextmanager
def pipe_session():
    with create_pipe_input() as pipe:
        sess = PromptSession(input=pipe, output=DummyOutput())
        yield pipe, sess


def test_enter_accepts_prefilled_default():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\r")
        assert select_option(CATEGORIES, default="GROCERIES", session=sess) == "GROCERIES"


def test_enter_completes_typed_prefix_case_insensitively():
    with pipe_session() as (pipe, sess):
        pipe.send_text("res\r")
        assert select_option(CATEGORIES, session=sess) == "RESTAURANTS"


def test_tab_completes_prefix_before_enter():
    with pipe_session() as (pipe, sess):
        pipe.send_text("Gro\t\r")
        assert select_option(CATEGORIES, session=sess) == "GROCERIES"


def test_exact_value_returns_canonical_option():
    with pipe_session() as (pipe, sess):
        pipe.send_text("coffee shops\r")
        assert select_option(CATEGORIES, session=sess) == "COFFEE SHOPS"


def test_new_name_is_accepted_when_allowed():
    with pipe_session() as (pipe, sess):
        pipe.send_text("Pet Care\r")
        assert select_option(CATEGORIES, session=sess, allow_new=True) == "Pet Care"


def test_ctrl_c_cancels():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\x03")
        assert select_option(CATEGORIES, session=sess) is None


def test_new_category_name_is_normalized():
    with pipe_session() as (pipe, sess):
        pipe.send_text("  home   office \r")
        assert prompt_new_category_name(session=sess) == "HOME OFFICE"


def test_chooser_picks_among_candidates_with_first_as_default():
    printed: list[str] = []
    candidates = [Category("COFFEE SHOPS", id=3), Category("RESTAURANTS", id=4)]
    with pipe_session() as (pipe, sess):
        chooser = PromptCategoryChooser(session=sess, print_fn=printed.append)
        pipe.send_text("\r")
        assert chooser.choose_category(TX, candidates) == candidates[0]
    assert any("BALZACS COFFEE" in line for line in printed)
    assert "  2. RESTAURANTS" in printed


def test_chooser_none_of_these_returns_none():
    candidates = [Category("COFFEE SHOPS", id=3), Category("RESTAURANTS", id=4)]
    with pipe_session() as (pipe, sess):
        chooser = PromptCategoryChooser(session=sess, print_fn=lambda *_: None)
        # clear the default, then pick the sentinel by prefix
        pipe.send_text("\x01\x0b*\r")
        assert chooser.choose_category(TX, candidates) is None


def test_chooser_returns_existing_or_new_category():
    existing = [Category("COFFEE SHOPS", id=3), Category("GROCERIES", id=5)]
    with pipe_session() as (pipe, sess):
        chooser = PromptCategoryChooser(session=sess, print_fn=lambda *_: None)
        pipe.send_text("groc\r")
        assert chooser.choose_or_create_category(TX, existing) == existing[1]

    with pipe_session() as (pipe, sess):
        chooser = PromptCategoryChooser(session=sess, print_fn=lambda *_: None)
        pipe.send_text("Dining Out\r")
        created = chooser.choose_or_create_category(TX, existing)
        assert created == Category("DINING OUT")
        assert created.id is None


def test_chooser_create_sentinel_prompts_for_a_name(monkeypatch):
    asked: list[bool] = []

    def _fake_prompt(**_kwargs):
        asked.append(True)
        return "GIFTS"

    monkeypatch.setattr(term_ui, "prompt_new_category_name", _fake_prompt)
    existing = [Category("GROCERIES", id=5)]
    with pipe_session() as (pipe, sess):
        chooser = PromptCategoryChooser(session=sess, print_fn=lambda *_: None)
        pipe.send_text("+\r")
        assert chooser.choose_or_create_category(TX, existing) == Category("GIFTS")
    assert asked == [True]
    assert CREATE_SENTINEL.startswith("+")
