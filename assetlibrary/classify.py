"""Heuristic evergreen / episode-specific labelling of search queries."""

from __future__ import annotations

from typing import Optional

from . import patterns
from .lexicon import DEFAULT_LEXICON, Lexicon
from .models import EPISODE_SPECIFIC, EVERGREEN
from .normalize import normalize


def _words(normalized: str) -> list[str]:
    return [word for word in patterns.TOKEN_SPLIT_RE.split(normalized) if word]


def _has_term(term: str, text: str) -> bool:
    # Substring match: "battlefield", "kingdom" and "warriors" all count.
    return term in text


def category_signals(query: Optional[str], lexicon: Lexicon = DEFAULT_LEXICON) -> list[str]:
    """Return the names of every specificity signal that fires for *query*."""

    raw = (query or "").strip()
    if not raw:
        return []
    normalized = normalize(raw)
    joined = " ".join(_words(normalized))

    signals: list[str] = []
    if patterns.QUOTED_RE.search(raw):
        signals.append("quoted")
    if patterns.YEAR_RE.search(normalized):
        signals.append("year")
    if patterns.ERA_MARKER_RE.search(normalized):
        signals.append("era marker")
    if patterns.ORDINAL_RE.search(normalized):
        signals.append("ordinal")
    if patterns.ROMAN_NUMERAL_RE.search(normalized):
        signals.append("roman numeral")
    if patterns.CAPITALIZED_WORD_RE.search(raw):
        signals.append("capitalized")
    if any(_has_term(term, joined) for term in lexicon.event_keywords):
        signals.append("event keyword")
    if any(_has_term(term, joined) for term in lexicon.topic_tokens):
        signals.append("topic token")
    return signals


def classify(query: Optional[str], lexicon: Lexicon = DEFAULT_LEXICON) -> str:
    """Label *query* as episode-specific when any signal fires, else evergreen."""

    return EPISODE_SPECIFIC if category_signals(query, lexicon) else EVERGREEN
