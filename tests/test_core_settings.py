"""Tests for core.settings helpers."""

from __future__ import annotations

import json
from pathlib import Path

from core.settings import apply_env_overrides, load_settings, merge_defaults, save_settings, update_settings


def test_merge_defaults_includes_asset_library_block() -> None:
    merged = merge_defaults({})

    library = merged["asset_library"]
    assert library["reuse_window_days"] == 7
    assert library["episode_specific_reuse_window_days"] == 30
    assert library["allow_recent_when_insufficient"] is False
    assert library["save_debounce_ms"] == 250
    assert merged["scoring"]["channel_bonus"] == 0.75
    assert set(merged["channels"].keys()) == {"what-if", "human-odyssey", "classified-files"}
    assert merged["channels"]["classified-files"]["reuse_mix"]["evergreen"] == 0.8


def test_load_settings_merges_user_file(tmp_path: Path) -> None:
    payload = {"asset_library": {"reuse_window_days": 10}, "lexicon": {"extra_stopwords": ["footage"]}}
    (tmp_path / "settings.json").write_text(json.dumps(payload), encoding="utf-8")

    loaded = load_settings(tmp_path, environ={})

    assert loaded["asset_library"]["reuse_window_days"] == 10
    assert loaded["asset_library"]["min_score"] == 1.0
    assert loaded["lexicon"]["extra_stopwords"] == ["footage"]
    assert loaded["working_dir"] == str(tmp_path)


def test_env_overrides_take_precedence() -> None:
    settings = merge_defaults({})
    environ = {
        "ASSET_LIBRARY_PATH": "/tmp/library.json",
        "PREFER_LOCAL_ASSETS": "false",
        "ASSET_REUSE_DAYS": "14",
        "ASSET_EPISODE_SPECIFIC_REUSE_DAYS": "60",
        "ALLOW_RECENT_ASSET_REUSE": "1",
        "ASSET_LIBRARY_MIN_SCORE": "not-a-number",
    }

    apply_env_overrides(settings, environ)

    library = settings["asset_library"]
    assert library["index_path"] == "/tmp/library.json"
    assert library["prefer_local_assets"] is False
    assert library["reuse_window_days"] == 14
    assert library["episode_specific_reuse_window_days"] == 60
    assert library["allow_recent_when_insufficient"] is True
    assert library["min_score"] == 1.0


def test_unknown_keys_are_reported(tmp_path: Path) -> None:
    payload = {"asset_library": {"reuse_days": 3}, "bogus": True}
    (tmp_path / "settings.json").write_text(json.dumps(payload), encoding="utf-8")

    load_settings(tmp_path, environ={})

    report = json.loads((tmp_path / "logs" / "settings_unknown.json").read_text(encoding="utf-8"))
    assert report["unknown"] == ["asset_library.reuse_days", "bogus"]


def test_save_settings_fills_defaults(tmp_path: Path) -> None:
    save_settings({"asset_library": {"prefer_local_assets": False}}, tmp_path)
    stored = json.loads((tmp_path / "settings.json").read_text(encoding="utf-8"))

    assert stored["version"] == 1
    assert stored["asset_library"]["prefer_local_assets"] is False
    assert stored["asset_library"]["reuse_window_days"] == 7
    assert stored["scoring"]["recent_days_horizon"] == 3


def test_channel_blocks_are_validated(tmp_path: Path) -> None:
    payload = {
        "channels": {
            "deep-sea": {"reuse_mix": {"evergreen": 0.5, "episode_specific": 0.5, "shorts": 0.1}, "colour": "blue"},
        }
    }
    (tmp_path / "settings.json").write_text(json.dumps(payload), encoding="utf-8")

    loaded = load_settings(tmp_path, environ={})

    assert loaded["channels"]["deep-sea"]["reuse_mix"]["evergreen"] == 0.5
    assert "what-if" in loaded["channels"]
    report = json.loads((tmp_path / "logs" / "settings_unknown.json").read_text(encoding="utf-8"))
    assert report["unknown"] == ["channels.deep-sea.colour", "channels.deep-sea.reuse_mix.shorts"]


def test_update_settings_persists_values(tmp_path: Path) -> None:
    save_settings({"asset_library": {"min_score": 2.0}}, tmp_path)

    update_settings(tmp_path, channels={"deep-sea": {"reuse_mix": {"evergreen": 0.9, "episode_specific": 0.1}}})

    stored = json.loads((tmp_path / "settings.json").read_text(encoding="utf-8"))
    assert stored["asset_library"]["min_score"] == 2.0
    assert stored["channels"]["deep-sea"]["reuse_mix"]["evergreen"] == 0.9
    assert "what-if" in stored["channels"]
