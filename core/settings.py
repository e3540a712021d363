from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Callable, Dict, Mapping

from .settings_schema import SETTINGS_VALIDATOR

from .paths import get_default_settings_paths, get_logs_dir

__all__ = [
    "DEFAULT_SETTINGS",
    "ENV_OVERRIDES",
    "SETTINGS_VERSION",
    "apply_env_overrides",
    "load_settings",
    "merge_defaults",
    "save_settings",
    "update_settings",
]

LOGGER = logging.getLogger("assetlibrary.settings")

SETTINGS_VERSION = 1


DEFAULT_SETTINGS: Dict[str, Any] = {
    "version": SETTINGS_VERSION,
    "asset_library": {
        "index_path": None,
        "prefer_local_assets": True,
        "reuse_window_days": 7,
        "episode_specific_reuse_window_days": 30,
        "allow_recent_when_insufficient": False,
        "min_score": 1.0,
        "save_debounce_ms": 250,
        "hash_images": True,
        "probe_video_duration": True,
        "ffprobe_path": None,
        "probe_timeout_s": 10,
    },
    "scoring": {
        "channel_bonus": 0.75,
        "usage_penalty_per_use": 0.08,
        "usage_penalty_cap": 2.0,
        "recent_day_penalty": 1.5,
        "recent_days_penalty": 0.8,
        "recent_days_horizon": 3,
    },
    "lexicon": {
        "extra_stopwords": [],
        "extra_event_keywords": [],
        "extra_topic_tokens": [],
    },
    "channels": {
        "what-if": {"reuse_mix": {"evergreen": 0.6, "episode_specific": 0.4}},
        "human-odyssey": {"reuse_mix": {"evergreen": 0.7, "episode_specific": 0.3}},
        "classified-files": {"reuse_mix": {"evergreen": 0.8, "episode_specific": 0.2}},
    },
}


def _parse_bool(value: str) -> bool:
    return value.strip().lower() not in {"", "0", "false", "no", "off"}


# Environment variable -> (section, key, parser)
ENV_OVERRIDES: Dict[str, tuple[str, str, Callable[[str], Any]]] = {
    "ASSET_LIBRARY_PATH": ("asset_library", "index_path", str),
    "PREFER_LOCAL_ASSETS": ("asset_library", "prefer_local_assets", _parse_bool),
    "ASSET_REUSE_DAYS": ("asset_library", "reuse_window_days", int),
    "ASSET_EPISODE_SPECIFIC_REUSE_DAYS": ("asset_library", "episode_specific_reuse_window_days", int),
    "ALLOW_RECENT_ASSET_REUSE": ("asset_library", "allow_recent_when_insufficient", _parse_bool),
    "ASSET_LIBRARY_MIN_SCORE": ("asset_library", "min_score", float),
}


def merge_defaults(data: Dict[str, Any]) -> Dict[str, Any]:
    def _merge(default: Dict[str, Any], payload: Dict[str, Any]) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for key, value in default.items():
            if isinstance(value, dict):
                current = payload.get(key)
                if isinstance(current, dict):
                    result[key] = _merge(value, current)
                else:
                    result[key] = _merge(value, {})
            elif isinstance(value, list):
                current = payload.get(key)
                result[key] = list(current) if isinstance(current, list) else list(value)
            else:
                result[key] = payload.get(key, value)
        for key, value in payload.items():
            if key not in result:
                result[key] = value
        return result

    return _merge(DEFAULT_SETTINGS, data or {})


def apply_env_overrides(
    settings: Dict[str, Any], environ: Mapping[str, str] | None = None
) -> Dict[str, Any]:
    env = os.environ if environ is None else environ
    for name, (section, key, parser) in ENV_OVERRIDES.items():
        raw = env.get(name)
        if raw is None or not raw.strip():
            continue
        try:
            value = parser(raw.strip())
        except ValueError:
            LOGGER.warning("ignoring malformed %s=%r", name, raw)
            continue
        settings.setdefault(section, {})[key] = value
    return settings


def _apply_migrations(settings: Dict[str, Any], working_dir: Path) -> Dict[str, Any]:
    version = settings.get("version")
    try:
        version_int = int(version)
    except (TypeError, ValueError):
        version_int = 0
    if version_int < SETTINGS_VERSION:
        # Future migrations can be added here.
        settings["version"] = SETTINGS_VERSION
    return settings


def _log_unknown_keys(settings: Dict[str, Any], working_dir: Path) -> None:
    unknown = list(SETTINGS_VALIDATOR.unknown_keys(settings))
    if not unknown:
        return
    logs_dir = get_logs_dir(working_dir)
    payload = {
        "ts": time.time(),
        "unknown": unknown,
    }
    target = logs_dir / "settings_unknown.json"
    try:
        logs_dir.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False, indent=2)
    except OSError:
        return


def load_settings(working_dir: Path, *, environ: Mapping[str, str] | None = None) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    for candidate in get_default_settings_paths(working_dir):
        try:
            with open(candidate, "r", encoding="utf-8") as handle:
                loaded = json.load(handle)
        except FileNotFoundError:
            continue
        except json.JSONDecodeError:
            LOGGER.warning("skipping unreadable settings file %s", candidate)
            continue
        except OSError:
            continue
        if isinstance(loaded, dict):
            data = loaded
            break
    merged = merge_defaults(data)
    merged = _apply_migrations(merged, working_dir)
    merged = apply_env_overrides(merged, environ)
    merged.setdefault("working_dir", str(working_dir))
    _log_unknown_keys(merged, working_dir)
    return merged


def save_settings(settings: Dict[str, Any], working_dir: Path) -> None:
    merged = merge_defaults(dict(settings))
    merged = _apply_migrations(merged, working_dir)
    merged.setdefault("working_dir", str(working_dir))
    path = working_dir / "settings.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(merged, handle, ensure_ascii=False, indent=2)


def update_settings(working_dir: Path, **values: Any) -> None:
    current = load_settings(working_dir, environ={})
    current.update(values)
    save_settings(current, working_dir)
