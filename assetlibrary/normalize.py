"""Text normalisation and keyword tokenisation for catalog matching."""

from __future__ import annotations

import unicodedata
from typing import Iterable, Optional

from . import patterns
from .lexicon import DEFAULT_LEXICON, Lexicon


def normalize(text: Optional[str]) -> str:
    """Decompose *text*, drop combining diacritics and lowercase it."""

    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.lower()


def keyword_list(text: Optional[str], lexicon: Lexicon = DEFAULT_LEXICON) -> list[str]:
    """Return the unique keyword tokens of *text* in first-seen order."""

    tokens: dict[str, None] = {}
    for token in patterns.TOKEN_SPLIT_RE.split(normalize(text)):
        if len(token) < patterns.MIN_TOKEN_LENGTH:
            continue
        if token in lexicon.stopwords:
            continue
        tokens.setdefault(token, None)
    return list(tokens)


def tokenize(text: Optional[str], lexicon: Lexicon = DEFAULT_LEXICON) -> set[str]:
    """Return the keyword token set of *text*."""

    return set(keyword_list(text, lexicon))


def merge_unique(*groups: Iterable[str]) -> list[str]:
    """Concatenate *groups* dropping repeated values, preserving order."""

    merged: dict[str, None] = {}
    for group in groups:
        for value in group or ():
            if value:
                merged.setdefault(value, None)
    return list(merged)
