"""Category-specific reuse windows and final candidate selection."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Sequence, Tuple

from .models import EPISODE_SPECIFIC, CatalogEntry
from .score import age_days


@dataclass(frozen=True, slots=True)
class ReusePolicy:
    evergreen_days: float = 7.0
    episode_specific_days: float = 30.0
    allow_recent_when_insufficient: bool = False

    def window_days(self, category: str) -> float:
        if category == EPISODE_SPECIFIC:
            return self.episode_specific_days
        return self.evergreen_days


@dataclass(frozen=True, slots=True)
class ScoredCandidate:
    entry: CatalogEntry
    score: float
    order: int


def rank(candidates: Iterable[ScoredCandidate]) -> List[ScoredCandidate]:
    """Descending score; catalog insertion order breaks ties."""

    return sorted(candidates, key=lambda candidate: (-candidate.score, candidate.order))


def is_eligible(entry: CatalogEntry, policy: ReusePolicy, now: datetime) -> bool:
    age = age_days(entry.last_used_at, now)
    if age is None:
        return True
    return age > policy.window_days(entry.category)


def partition(
    candidates: Iterable[ScoredCandidate], policy: ReusePolicy, now: datetime
) -> Tuple[List[ScoredCandidate], List[ScoredCandidate]]:
    """Split ranked candidates into (eligible, recent)."""

    eligible: List[ScoredCandidate] = []
    recent: List[ScoredCandidate] = []
    for candidate in rank(candidates):
        if is_eligible(candidate.entry, policy, now):
            eligible.append(candidate)
        else:
            recent.append(candidate)
    return eligible, recent


def select(
    candidates: Sequence[ScoredCandidate],
    count: int,
    policy: ReusePolicy,
    now: datetime,
) -> List[ScoredCandidate]:
    """Pick up to *count* candidates honouring the reuse windows.

    Only out-of-window candidates are offered unless the policy allows
    backfilling from recently used ones.
    """

    if count <= 0:
        return []
    eligible, recent = partition(candidates, policy, now)
    selected = eligible[:count]
    if policy.allow_recent_when_insufficient and len(selected) < count:
        selected.extend(recent[: count - len(selected)])
    return selected
