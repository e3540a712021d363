"""Per-channel evergreen / episode-specific reuse ratios."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .models import EPISODE_SPECIFIC, EVERGREEN

_SUM_TOLERANCE = 0.05


@dataclass(frozen=True, slots=True)
class ReuseMix:
    evergreen: float = 0.7
    episode_specific: float = 0.3

    def __post_init__(self) -> None:
        for name, value in ((EVERGREEN, self.evergreen), (EPISODE_SPECIFIC, self.episode_specific)):
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} ratio must be within [0, 1], got {value}")
        if abs(self.evergreen + self.episode_specific - 1.0) > _SUM_TOLERANCE:
            raise ValueError("reuse mix ratios must add up to 1")

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, object] | None) -> "ReuseMix":
        data = dict(mapping or {})
        if not data:
            return cls()
        evergreen = float(data.get(EVERGREEN, 0.0))  # type: ignore[arg-type]
        specific = data.get(EPISODE_SPECIFIC)
        episode_specific = 1.0 - evergreen if specific is None else float(specific)  # type: ignore[arg-type]
        return cls(evergreen=evergreen, episode_specific=episode_specific)


DEFAULT_MIX = ReuseMix()


def split_count(count: int, mix: ReuseMix) -> Dict[str, int]:
    """Divide *count* between the two categories; the parts always sum to *count*."""

    total = max(0, int(count))
    share = mix.evergreen / (mix.evergreen + mix.episode_specific) if (mix.evergreen + mix.episode_specific) else 0.0
    evergreen = min(total, int(math.floor(total * share + 0.5)))
    return {EVERGREEN: evergreen, EPISODE_SPECIFIC: total - evergreen}


def channel_mixes(settings: Mapping[str, Any]) -> Dict[str, ReuseMix]:
    """Read the ``channels.<id>.reuse_mix`` blocks of a settings document."""

    mixes: Dict[str, ReuseMix] = {}
    channels = settings.get("channels")
    if not isinstance(channels, Mapping):
        return mixes
    for channel_id, block in channels.items():
        if not isinstance(block, Mapping):
            continue
        raw = block.get("reuse_mix")
        if isinstance(raw, Mapping):
            mixes[str(channel_id)] = ReuseMix.from_mapping(raw)
    return mixes


def mix_for_channel(mixes: Mapping[str, ReuseMix], channel_id: Optional[str]) -> ReuseMix:
    if channel_id and channel_id in mixes:
        return mixes[channel_id]
    return DEFAULT_MIX
