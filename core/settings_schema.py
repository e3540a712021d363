from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping

# Section -> allowed keys. ``None`` accepts any value, ``"*"`` under a mapping
# matches every key at that level (channel ids are free-form).
_ALLOWED_STRUCTURE: Dict[str, Any] = {
    "asset_library": {
        "index_path",
        "prefer_local_assets",
        "reuse_window_days",
        "episode_specific_reuse_window_days",
        "allow_recent_when_insufficient",
        "min_score",
        "save_debounce_ms",
        "hash_images",
        "probe_video_duration",
        "ffprobe_path",
        "probe_timeout_s",
    },
    "scoring": {
        "channel_bonus",
        "usage_penalty_per_use",
        "usage_penalty_cap",
        "recent_day_penalty",
        "recent_days_penalty",
        "recent_days_horizon",
    },
    "lexicon": {
        "extra_stopwords",
        "extra_event_keywords",
        "extra_topic_tokens",
    },
    "channels": {
        "*": {
            "reuse_mix": {"evergreen", "episode_specific"},
        },
    },
    "working_dir": None,
    "version": None,
}


@dataclass(slots=True)
class SettingsValidator:
    schema: Mapping[str, Any]

    def unknown_keys(self, payload: Mapping[str, Any]) -> Iterable[str]:
        return sorted(self._iter_unknown(payload, self.schema, path=""))

    def _iter_unknown(self, payload: Mapping[str, Any], schema: Mapping[str, Any], *, path: str) -> Iterable[str]:
        for key, value in payload.items():
            if key in schema:
                rule = schema[key]
            elif "*" in schema:
                rule = schema["*"]
            else:
                yield f"{path}{key}"
                continue
            if rule is None or not isinstance(value, Mapping):
                continue
            if isinstance(rule, (set, frozenset)):
                for sub in value.keys():
                    if sub not in rule:
                        yield f"{path}{key}.{sub}"
            elif isinstance(rule, Mapping):
                yield from self._iter_unknown(value, rule, path=f"{path}{key}.")


SETTINGS_VALIDATOR = SettingsValidator(_ALLOWED_STRUCTURE)

__all__ = ["SETTINGS_VALIDATOR", "SettingsValidator"]
