"""Description tokenization used by keyword rules and overlap matching.

``TokenNormalizer.normalize`` turns a free-text merchant description into a
canonical ``frozenset`` of lowercase tokens. The transformation is pure and
deterministic: the same description always yields the same set, and a blank
or missing description yields the empty set.

Examples
--------
>>> TokenNormalizer().normalize("STARBUCKS #4756")
frozenset({'starbucks'})
>>> sorted(TokenNormalizer().normalize("A & W RESTAURANT"))
['aw', 'restaurant']
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

DEFAULT_STOP_WORDS: frozenset[str] = frozenset(
    {"the", "and", "or", "of", "for", "at", "to", "from", "in", "on", "by", "with"}
)
DEFAULT_MIN_TOKEN_LENGTH = 2

_ENTITIES: tuple[tuple[str, str], ...] = (
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&apos;", "'"),
)
_INITIALS_RE = re.compile(r"([a-z])\s*&\s*([a-z])")
_JOINERS_RE = re.compile(r"[-'&]")
_SPLIT_RE = re.compile(r"[^a-z0-9]+")
_NUMERIC_RE = re.compile(r"\d+")


@dataclass(frozen=True, slots=True)
class NormalizationConfig:
    stop_words: frozenset[str] = field(default=DEFAULT_STOP_WORDS)
    min_token_length: int = DEFAULT_MIN_TOKEN_LENGTH

    def __post_init__(self) -> None:
        if self.min_token_length < 1:
            raise ValueError("min_token_length must be >= 1")
        object.__setattr__(
            self, "stop_words", frozenset(w.strip().lower() for w in self.stop_words)
        )


def _decode_entities(text: str) -> str:
    for entity, literal in _ENTITIES:
        text = text.replace(entity, literal)
    return text


class TokenNormalizer:
    """Convert descriptions into token sets under a :class:`NormalizationConfig`."""

    def __init__(self, config: NormalizationConfig | None = None) -> None:
        self.config = config or NormalizationConfig()

    def normalize(self, description: str | None) -> frozenset[str]:
        if description is None or not description.strip():
            return frozenset()

        text = _decode_entities(description).lower()
        # "a & w" -> "aw", "h&m" -> "hm"
        text = _INITIALS_RE.sub(r"\1\2", text)
        # "wal-mart" -> "walmart", "mcdonald's" -> "mcdonalds"
        text = _JOINERS_RE.sub("", text)

        return frozenset(t for t in _SPLIT_RE.split(text) if self._keep(t))

    def _keep(self, token: str) -> bool:
        if not token or len(token) < self.config.min_token_length:
            return False
        if _NUMERIC_RE.fullmatch(token):
            return False
        return token not in self.config.stop_words


__all__ = [
    "DEFAULT_STOP_WORDS",
    "DEFAULT_MIN_TOKEN_LENGTH",
    "NormalizationConfig",
    "TokenNormalizer",
]
