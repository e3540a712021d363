"""Centralised word lists and regular expressions for query matching.

The lists are empirical and meant to be recalibrated through the
``lexicon`` settings section rather than edited in the algorithms.
"""

from __future__ import annotations

import re

# Runs of characters that are neither letters nor digits (any script).
TOKEN_SPLIT_RE = re.compile(r"[\W_]+", re.UNICODE)

# Tokens this short carry no matching signal.
MIN_TOKEN_LENGTH = 3

STOPWORDS = frozenset(
    (
        # English
        "the and for with this that from into over under about your you are was were has have had will "
        "its our their they them his her she him who what when where why how a an to of in on at by as or "
        "is it be we us not no yes more most less many much new old case file "
        # French
        "le la les un une des du de d et ou pour avec dans sur sous ce cet cette ces comme plus moins tres "
        "trop sans"
    ).split()
)

# Any quote character, straight or typographic.
QUOTED_RE = re.compile(r"[\"“”'’]")

# 3-4 digit year-like numbers (500-1999, 2000-2099).
YEAR_RE = re.compile(r"\b(1[0-9]{3}|20[0-9]{2}|[5-9][0-9]{2})\b")

ERA_MARKER_RE = re.compile(r"\b(bc|bce|ad|ce)\b")

ORDINAL_RE = re.compile(r"\b\d{1,2}(st|nd|rd|th)\b")

ROMAN_NUMERAL_RE = re.compile(r"\b[ivxlcdm]{2,}\b")

# Evaluated against the raw, pre-lowercased text.
CAPITALIZED_WORD_RE = re.compile(r"\b[A-Z][a-z]{2,}\b")

SPECIFIC_EVENT_KEYWORDS = (
    "battle",
    "siege",
    "assassination",
    "treaty",
    "dynasty",
    "revolution",
    "uprising",
    "incident",
    "operation",
    "crisis",
    "war",
    "crusade",
    "coup",
    "massacre",
)

TOPIC_TOKENS = (
    # Civilizations / eras / cultures
    "roman",
    "rome",
    "greek",
    "greece",
    "sparta",
    "athens",
    "egypt",
    "egyptian",
    "pharaoh",
    "viking",
    "norse",
    "medieval",
    "middle ages",
    "byzantine",
    "ottoman",
    "persian",
    "mongol",
    "aztec",
    "maya",
    "mayan",
    "inca",
    # Places often used as specific anchors
    "england",
    "france",
    "spain",
    "italy",
    "germany",
    "china",
    "japan",
    "india",
    # People / titles
    "caesar",
    "emperor",
    "king",
    "queen",
)
