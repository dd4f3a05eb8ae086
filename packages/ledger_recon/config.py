"""Application configuration for ``ledger_recon``.

Configuration lives in ``<config_dir>/config.yaml`` (PyYAML, validated with
pydantic). The config directory defaults to ``~/.ledger_recon`` and can be
overridden with ``LEDGER_RECON_CONFIG_DIR``. The database URL is not part of
the YAML file; it comes from ``DATABASE_URL`` (optionally via ``.env``) the
same way ``db.client`` resolves it.

When ``config.yaml`` is missing, :func:`load_or_create_config` writes a
commented default file and returns the defaults. An empty or malformed file is
logged and treated as defaults; it is never overwritten.
"""

from __future__ import annotations

import os
from os import PathLike
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .keyword_rules import KeywordRulesConfig, load_keyword_rules
from .logging_setup import get_logger
from .token_matching import DEFAULT_OVERLAP_THRESHOLD, TokenMatchingConfig
from .tokens import DEFAULT_MIN_TOKEN_LENGTH, DEFAULT_STOP_WORDS, NormalizationConfig

_logger = get_logger("ledger_recon.config")

CONFIG_DIR_ENV_VAR = "LEDGER_RECON_CONFIG_DIR"
CONFIG_FILE_NAME = "config.yaml"
DEFAULT_KEYWORD_RULES_FILE = "keyword-rules.yaml"
DEFAULT_BATCH_SIZE = 100

_DEFAULT_CONFIG_TEXT = f"""\
# ledger_recon configuration

# Path to keyword rules (relative paths resolve against this directory).
keyword_rules_path: {DEFAULT_KEYWORD_RULES_FILE}

token_matching:
  # Minimum token overlap ratio (0.0-1.0) for a historical match to count.
  # Lower is looser; 1.0 requires the smaller token set to be fully covered.
  overlap_threshold: {DEFAULT_OVERLAP_THRESHOLD}

normalization:
  min_token_length: {DEFAULT_MIN_TOKEN_LENGTH}

# Transactions written per unit of work during import.
import_batch_size: {DEFAULT_BATCH_SIZE}
"""


class TokenMatchingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    overlap_threshold: float = Field(default=DEFAULT_OVERLAP_THRESHOLD, ge=0.0, le=1.0)

    def to_token_matching_config(self) -> TokenMatchingConfig:
        return TokenMatchingConfig(overlap_threshold=self.overlap_threshold)


class NormalizationSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    min_token_length: int = Field(default=DEFAULT_MIN_TOKEN_LENGTH, ge=1)
    stop_words: tuple[str, ...] = tuple(sorted(DEFAULT_STOP_WORDS))

    def to_normalization_config(self) -> NormalizationConfig:
        return NormalizationConfig(
            stop_words=frozenset(self.stop_words), min_token_length=self.min_token_length
        )


class AppConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    keyword_rules_path: str = DEFAULT_KEYWORD_RULES_FILE
    token_matching: TokenMatchingSettings = TokenMatchingSettings()
    normalization: NormalizationSettings = NormalizationSettings()
    import_batch_size: int = Field(default=DEFAULT_BATCH_SIZE, ge=1)

    def resolve_keyword_rules_path(self, config_dir: str | PathLike[str]) -> Path:
        p = Path(self.keyword_rules_path).expanduser()
        return p if p.is_absolute() else Path(config_dir) / p

    def load_keyword_rules(self, config_dir: str | PathLike[str]) -> KeywordRulesConfig:
        return load_keyword_rules(self.resolve_keyword_rules_path(config_dir))


def default_config_dir() -> Path:
    """Return the config directory from the environment or ``~/.ledger_recon``."""

    override = os.getenv(CONFIG_DIR_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".ledger_recon"


def _parse_config(text: str, path: Path) -> AppConfig:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError:
        _logger.error("config:yaml_parse_failed path=%s", path, exc_info=True)
        return AppConfig()
    if data is None:
        return AppConfig()
    if not isinstance(data, dict):
        _logger.error("config:invalid_document path=%s type=%s", path, type(data).__name__)
        return AppConfig()
    try:
        return AppConfig.model_validate(data)
    except ValidationError as exc:
        _logger.error("config:validation_failed path=%s errors=%d", path, exc.error_count())
        return AppConfig()


def load_or_create_config(config_dir: str | PathLike[str] | None = None) -> AppConfig:
    """Load ``config.yaml`` from ``config_dir``, writing defaults when missing."""

    base = Path(config_dir) if config_dir is not None else default_config_dir()
    path = base / CONFIG_FILE_NAME
    if not path.exists():
        base.mkdir(parents=True, exist_ok=True)
        path.write_text(_DEFAULT_CONFIG_TEXT, encoding="utf-8")
        _logger.info("config:created_default path=%s", path)
        return AppConfig()
    return _parse_config(path.read_text(encoding="utf-8"), path)


__all__ = [
    "CONFIG_DIR_ENV_VAR",
    "CONFIG_FILE_NAME",
    "DEFAULT_OVERLAP_THRESHOLD",
    "DEFAULT_BATCH_SIZE",
    "TokenMatchingSettings",
    "NormalizationSettings",
    "AppConfig",
    "default_config_dir",
    "load_or_create_config",
]
