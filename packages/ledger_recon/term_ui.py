"""Terminal category chooser (prompt_toolkit-based).

:class:`PromptCategoryChooser` implements the
:class:`~ledger_recon.categorize.CategoryChooser` contract used by the import
when keyword rules and token overlap are not conclusive. The prompt helpers
below it are kept small and free of database access so they can be driven in
tests through a pipe input.

Selector keys
-------------
- Enter accepts the pre-filled default, the highlighted completion, or the
  inline prefix suggestion (in that order of precedence).
- Tab completes the inline suggestion, or opens the completion menu.
- Esc or Ctrl+C cancels and returns ``None``.
"""

from __future__ import annotations

import builtins
from collections.abc import Callable, Sequence

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggest, Suggestion
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.styles import Style
from prompt_toolkit.validation import ValidationError, Validator

from .categories import validate_name as _validate_name
from .models import Category, Transaction, normalize_category_name

CREATE_SENTINEL = "+ Create new category..."
OTHER_SENTINEL = "* None of these..."


def _best_prefix_match(options: Sequence[str], text: str) -> str | None:
    """First option that strictly extends ``text`` (case-insensitive)."""

    if not text:
        return None
    lower = text.lower()
    for w in options:
        wl = w.lower()
        if wl == lower:
            return None
        if wl.startswith(lower):
            return w
    return None


class _PrefixSuggest(AutoSuggest):
    def __init__(self, vocab: Sequence[str]) -> None:
        self._vocab = list(vocab)

    def get_suggestion(self, buffer, document):
        match = _best_prefix_match(self._vocab, document.text)
        if match is None:
            return None
        return Suggestion(match[len(document.text) :])


class _OptionValidator(Validator):
    def __init__(self, options: Sequence[str], *, allow_new: bool) -> None:
        self._lower = {o.lower() for o in options}
        self._allow_new = allow_new

    def validate(self, document) -> None:
        text = document.text.strip()
        if text.lower() in self._lower:
            return
        if not self._allow_new:
            raise ValidationError(message="Pick one of the listed categories.")
        v = _validate_name(text)
        if not v.ok:
            raise ValidationError(message=v.reason or "Invalid name")


def _session_for(session: PromptSession | None, kb: KeyBindings) -> PromptSession:
    if session is None:
        return PromptSession(key_bindings=kb)
    return PromptSession(
        input=getattr(session, "input", None),
        output=getattr(session, "output", None),
        key_bindings=kb,
    )


def _cancel_bindings() -> KeyBindings:
    kb = KeyBindings()

    @kb.add("escape")
    def _(event) -> None:  # pragma: no cover - exercised indirectly
        event.app.exit(result=None)

    @kb.add("c-c", eager=True)
    def _(event) -> None:  # pragma: no cover - exercised indirectly
        event.app.exit(result=None)

    return kb


def select_option(
    options: Sequence[str],
    *,
    default: str = "",
    message: str = "Category: ",
    session: PromptSession | None = None,
    allow_new: bool = False,
) -> str | None:
    """Prompt for one of ``options`` (case-insensitive); cancel returns ``None``.

    With ``allow_new`` any valid category name is accepted as well. The
    returned value is the canonical option when one matched, otherwise the
    typed text stripped of surrounding whitespace.
    """

    words = list(options)
    canonical = {w.lower(): w for w in words}
    kb = _cancel_bindings()

    @kb.add("tab", eager=True)
    def _(event) -> None:  # pragma: no cover - integration path
        b = event.app.current_buffer
        cand = _best_prefix_match(words, b.document.text)
        if cand:
            b.insert_text(cand[len(b.document.text) :])
        elif b.complete_state is None:
            b.start_completion(select_first=True)
        else:
            b.complete_next()

    @kb.add("enter", eager=True)
    def _(event) -> None:  # pragma: no cover - integration path
        b = event.app.current_buffer
        cs = b.complete_state
        if cs is not None and cs.current_completion is not None:
            b.apply_completion(cs.current_completion)
        else:
            cand = _best_prefix_match(words, b.document.text)
            if cand:
                b.insert_text(cand[len(b.document.text) :])
        b.validate_and_handle()

    sess = _session_for(session, kb)
    result = sess.prompt(
        message,
        default=default,
        completer=WordCompleter(words, ignore_case=True, match_middle=True, sentence=True),
        auto_suggest=_PrefixSuggest(words),
        validator=_OptionValidator(words, allow_new=allow_new),
        validate_while_typing=False,
        key_bindings=kb,
        style=Style.from_dict({"auto-suggestion": "fg:#888888"}),
    )
    if result is None:
        return None
    text = result.strip()
    return canonical.get(text.lower(), text)


def prompt_new_category_name(
    *,
    initial: str = "",
    session: PromptSession | None = None,
    message: str = "New category name (Enter to save, Esc or Ctrl+C to cancel): ",
) -> str | None:
    """Collect a new category name with inline validation; cancel returns ``None``."""

    kb = _cancel_bindings()

    class _V(Validator):
        def validate(self, document) -> None:
            v = _validate_name(document.text)
            if not v.ok:
                raise ValidationError(message=v.reason or "Invalid name")

    sess = _session_for(session, kb)
    value = sess.prompt(
        message, default=initial, validator=_V(), validate_while_typing=False, key_bindings=kb
    )
    return normalize_category_name(value) if value is not None else None


def describe_transaction(transaction: Transaction) -> str:
    t = transaction
    return (
        f"{t.date.isoformat()}  {t.amount:>12}  {t.description}"
        f"  [{t.account.account_number}]"
    )


class PromptCategoryChooser:
    """Ask the user at the terminal; see ``CategoryChooser`` for the contract."""

    def __init__(
        self,
        *,
        session: PromptSession | None = None,
        print_fn: Callable[..., None] = builtins.print,
    ) -> None:
        self._session = session
        self._print = print_fn

    def choose_category(
        self, transaction: Transaction, candidates: Sequence[Category]
    ) -> Category | None:
        if not candidates:
            return None
        self._print(describe_transaction(transaction))
        self._print("Similar transactions were filed under:")
        for i, c in enumerate(candidates, start=1):
            self._print(f"  {i}. {c.name}")

        names = [c.name for c in candidates]
        picked = select_option(
            [*names, OTHER_SENTINEL],
            default=names[0],
            message="Category (Enter to accept): ",
            session=self._session,
        )
        if picked is None or picked == OTHER_SENTINEL:
            return None
        return next(c for c in candidates if c.name == picked)

    def choose_or_create_category(
        self, transaction: Transaction, categories: Sequence[Category]
    ) -> Category | None:
        self._print(describe_transaction(transaction))
        by_name = {c.name: c for c in categories}
        picked = select_option(
            [*by_name, CREATE_SENTINEL],
            message="Category (type a new name to create it): ",
            session=self._session,
            allow_new=True,
        )
        if picked is None:
            return None
        if picked == CREATE_SENTINEL:
            name = prompt_new_category_name(session=self._session)
            return Category(name) if name else None
        existing = by_name.get(normalize_category_name(picked))
        return existing if existing is not None else Category(picked)


__all__ = [
    "CREATE_SENTINEL",
    "OTHER_SENTINEL",
    "select_option",
    "prompt_new_category_name",
    "describe_transaction",
    "PromptCategoryChooser",
]
