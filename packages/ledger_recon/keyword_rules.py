"""Keyword rules: deterministic, ordered, first-match-wins categorization.

A rule is a list of keywords plus a target category. With ``match_all`` the
rule needs every keyword in the token set (AND); otherwise any one keyword is
enough (OR). Rules are evaluated in file order and the first matching rule's
category wins; later rules are never consulted.

Rules are loaded from YAML (PyYAML ``safe_load``) and validated with pydantic::

    version: 1
    settings:
      auto_categorize: true
    rules:
      - keywords: [pizza, hut]
        category: FAST_FOOD
        match_all: true
      - keywords: [pizza]
        category: RESTAURANTS

Unknown keys are ignored. A missing, empty, or malformed file yields an empty
configuration (with an error log for malformed input) so that imports keep
working with overlap matching and manual choice only.

Public surface:
- ``KeywordRule`` / ``KeywordRulesConfig`` / ``KeywordRulesSettings``
- ``load_keyword_rules(path)`` / ``load_keyword_rules_from_string(text)``
- ``save_keyword_rules(config, path)``
"""

from __future__ import annotations

from collections.abc import Set
from os import PathLike
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .logging_setup import get_logger

_logger = get_logger("ledger_recon.keyword_rules")


class KeywordRule(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", str_strip_whitespace=True)

    keywords: tuple[str, ...] = ()
    category: str
    match_all: bool = False

    @field_validator("keywords", mode="before")
    @classmethod
    def _lowercase_keywords(cls, v: object) -> object:
        if v is None:
            return ()
        if isinstance(v, str):
            v = [v]
        if isinstance(v, (list, tuple)):
            return tuple(str(k).strip().lower() for k in v if str(k).strip())
        return v

    @field_validator("category")
    @classmethod
    def _category_non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("category must be non-empty")
        return v

    def matches(self, tokens: Set[str]) -> bool:
        if not self.keywords or not tokens:
            return False
        if self.match_all:
            return all(k in tokens for k in self.keywords)
        return any(k in tokens for k in self.keywords)


class KeywordRulesSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    auto_categorize: bool = True


class KeywordRulesConfig(BaseModel):
    """Ordered rule list plus the global auto-categorize toggle."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    version: int = 1
    settings: KeywordRulesSettings = KeywordRulesSettings()
    rules: tuple[KeywordRule, ...] = ()

    @classmethod
    def empty(cls) -> KeywordRulesConfig:
        return cls()

    @property
    def auto_categorize_enabled(self) -> bool:
        return self.settings.auto_categorize

    def find_matching_category(self, tokens: Set[str]) -> str | None:
        """Return the category of the first rule matching ``tokens``, if any."""

        for rule in self.rules:
            if rule.matches(tokens):
                return rule.category
        return None

    def find_rules_by_category(self, category_name: str | None) -> list[KeywordRule]:
        """Return every rule targeting ``category_name`` (case-insensitive)."""

        if category_name is None or not category_name.strip():
            return []
        wanted = category_name.strip().lower()
        return [r for r in self.rules if r.category.lower() == wanted]


# ---------------------------------------------------------------------------
# YAML loading / saving
# ---------------------------------------------------------------------------


def load_keyword_rules_from_string(text: str) -> KeywordRulesConfig:
    """Parse rules from YAML text; empty or malformed input yields an empty config."""

    if not text.strip():
        return KeywordRulesConfig.empty()
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError:
        _logger.error("keyword_rules:yaml_parse_failed", exc_info=True)
        return KeywordRulesConfig.empty()
    if data is None:
        return KeywordRulesConfig.empty()
    if not isinstance(data, dict):
        _logger.error("keyword_rules:invalid_document type=%s", type(data).__name__)
        return KeywordRulesConfig.empty()
    try:
        return KeywordRulesConfig.model_validate(data)
    except ValidationError as exc:
        _logger.error("keyword_rules:validation_failed errors=%d", exc.error_count())
        return KeywordRulesConfig.empty()


def load_keyword_rules(path: str | PathLike[str]) -> KeywordRulesConfig:
    """Load rules from ``path``; a missing file yields an empty config."""

    p = Path(path)
    if not p.is_file():
        _logger.info("keyword_rules:file_missing path=%s", p)
        return KeywordRulesConfig.empty()
    config = load_keyword_rules_from_string(p.read_text(encoding="utf-8"))
    _logger.info("keyword_rules:loaded path=%s rules=%d", p, len(config.rules))
    return config


def save_keyword_rules(config: KeywordRulesConfig, path: str | PathLike[str]) -> None:
    """Write ``config`` as YAML to ``path``, creating parent directories."""

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    payload = config.model_dump(mode="json")
    p.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")


__all__ = [
    "KeywordRule",
    "KeywordRulesSettings",
    "KeywordRulesConfig",
    "load_keyword_rules",
    "load_keyword_rules_from_string",
    "save_keyword_rules",
]
