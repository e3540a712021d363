"""Relevance scoring between a query and catalog entries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Mapping, Optional

from .models import CatalogEntry, parse_ts

_SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True, slots=True)
class ScoringWeights:
    channel_bonus: float = 0.75
    usage_penalty_per_use: float = 0.08
    usage_penalty_cap: float = 2.0
    recent_day_penalty: float = 1.5
    recent_days_penalty: float = 0.8
    recent_days_horizon: float = 3.0

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, object] | None) -> "ScoringWeights":
        data = dict(mapping or {})
        defaults = cls()
        return cls(
            channel_bonus=_as_float(data.get("channel_bonus"), defaults.channel_bonus),
            usage_penalty_per_use=_as_float(data.get("usage_penalty_per_use"), defaults.usage_penalty_per_use),
            usage_penalty_cap=_as_float(data.get("usage_penalty_cap"), defaults.usage_penalty_cap),
            recent_day_penalty=_as_float(data.get("recent_day_penalty"), defaults.recent_day_penalty),
            recent_days_penalty=_as_float(data.get("recent_days_penalty"), defaults.recent_days_penalty),
            recent_days_horizon=_as_float(data.get("recent_days_horizon"), defaults.recent_days_horizon),
        )


def _as_float(value: object, default: float) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


def age_days(timestamp: Optional[str], now: datetime) -> Optional[float]:
    """Days elapsed since *timestamp*, or ``None`` when absent or unparsable."""

    moment = parse_ts(timestamp)
    if moment is None:
        return None
    return (now - moment).total_seconds() / _SECONDS_PER_DAY


def tag_overlap(query_tokens: Iterable[str], entry: CatalogEntry) -> int:
    tag_tokens = {tag.lower() for tag in entry.tags}
    return sum(1 for token in set(query_tokens) if token in tag_tokens)


def score_entry(
    query_tokens: Iterable[str],
    entry: CatalogEntry,
    channel_id: Optional[str],
    *,
    now: datetime,
    weights: ScoringWeights = ScoringWeights(),
) -> tuple[float, list[str]]:
    """Return (score, reasons) for *entry* against *query_tokens*.

    Tag overlap dominates; channel affinity breaks ties; usage count and
    recent use subtract so that fresh material ranks above repeats.
    """

    overlap = tag_overlap(query_tokens, entry)
    score = float(overlap)
    reasons: list[str] = [f"overlap {overlap}"]

    if channel_id and entry.channel_id and channel_id == entry.channel_id:
        score += weights.channel_bonus
        reasons.append("same channel")

    usage_penalty = min(weights.usage_penalty_cap, max(0, entry.times_used) * weights.usage_penalty_per_use)
    if usage_penalty:
        score -= usage_penalty
        reasons.append("usage")

    age = age_days(entry.last_used_at, now)
    if age is not None:
        if age < 1:
            score -= weights.recent_day_penalty
            reasons.append("used today")
        elif age < weights.recent_days_horizon:
            score -= weights.recent_days_penalty
            reasons.append("used recently")

    return score, reasons
