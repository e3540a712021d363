"""Word lists used by the tokenizer and the category classifier."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Mapping, Tuple

from . import patterns


def _clean(values: object) -> Tuple[str, ...]:
    if not isinstance(values, (list, tuple, set, frozenset)):
        return ()
    return tuple(str(value).strip().lower() for value in values if str(value).strip())


@dataclass(frozen=True, slots=True)
class Lexicon:
    stopwords: FrozenSet[str] = field(default_factory=lambda: patterns.STOPWORDS)
    event_keywords: Tuple[str, ...] = patterns.SPECIFIC_EVENT_KEYWORDS
    topic_tokens: Tuple[str, ...] = patterns.TOPIC_TOKENS

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, object] | None) -> "Lexicon":
        """Build the built-in lexicon extended with the ``extra_*`` lists of *mapping*."""

        data = dict(mapping or {})
        return cls(
            stopwords=patterns.STOPWORDS | frozenset(_clean(data.get("extra_stopwords"))),
            event_keywords=_merge(patterns.SPECIFIC_EVENT_KEYWORDS, _clean(data.get("extra_event_keywords"))),
            topic_tokens=_merge(patterns.TOPIC_TOKENS, _clean(data.get("extra_topic_tokens"))),
        )


def _merge(base: Iterable[str], extra: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys([*base, *extra]))


DEFAULT_LEXICON = Lexicon()

__all__ = ["DEFAULT_LEXICON", "Lexicon"]
