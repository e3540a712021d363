import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from assetlibrary.library import AssetLibrary, AssetLibraryConfig
from assetlibrary.models import EPISODE_SPECIFIC, EVERGREEN, AcquiredAsset

START = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
ARCHAEOLOGY = "ancient map parchment artifact archaeology"
HASTINGS = "Battle of Hastings 1066 medieval England"


class FakeClock:
    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now += timedelta(**delta)


def _media(tmp_path: Path, name: str, content: bytes | None = None) -> str:
    path = tmp_path / "media" / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content if content is not None else name.encode("utf-8"))
    return str(path)


def _library(tmp_path: Path, clock: FakeClock | None = None, **overrides) -> AssetLibrary:
    config = AssetLibraryConfig(index_path=tmp_path / "library.json", **overrides)
    return AssetLibrary(config, clock=clock or FakeClock(), duration_probe=lambda path: None)


def _image(query: str, channel: str = "human-odyssey", **kwargs) -> AcquiredAsset:
    return AcquiredAsset(media_type="image", search_query=query, channel_id=channel, **kwargs)


def test_strict_mode_hides_just_indexed_asset(tmp_path: Path) -> None:
    library = _library(tmp_path)
    library.upsert_from_acquisition(_image(ARCHAEOLOGY), _media(tmp_path, "map.jpg"))

    found = library.find_best_local(ARCHAEOLOGY, "image", 3, channel_id="human-odyssey")
    assert found == []


def test_lenient_mode_backfills_recent_asset(tmp_path: Path) -> None:
    library = _library(tmp_path, allow_recent_when_insufficient=True)
    entry = library.upsert_from_acquisition(_image(ARCHAEOLOGY), _media(tmp_path, "map.jpg"))

    found = library.find_best_local(ARCHAEOLOGY, "image", 3, channel_id="human-odyssey")
    assert len(found) == 1
    asset = found[0]
    assert asset.library_id == entry.id
    assert asset.category == EVERGREEN
    assert "ancient" in asset.keywords
    assert asset.source == "library"
    assert asset.url == asset.local_path
    # five shared tags + channel bonus - one use - used today
    assert asset.score == pytest.approx(5 + 0.75 - 0.08 - 1.5)


def test_episode_specific_asset_returns_after_its_window(tmp_path: Path) -> None:
    clock = FakeClock()
    library = _library(tmp_path, clock)
    library.upsert_from_acquisition(_image(HASTINGS), _media(tmp_path, "hastings.jpg"))

    assert library.find_best_local("hastings 1066 battle", "image", 1, category=EPISODE_SPECIFIC) == []
    clock.advance(days=10)
    assert library.find_best_local("hastings 1066 battle", "image", 1, category=EPISODE_SPECIFIC) == []
    clock.advance(days=21)

    found = library.find_best_local("hastings 1066 battle", "image", 1, category=EPISODE_SPECIFIC)
    assert len(found) == 1
    assert found[0].category == EPISODE_SPECIFIC
    assert found[0].score == pytest.approx(3 - 0.08)
    assert library.find_best_local("hastings 1066 battle", "image", 1, category=EVERGREEN) == []


def test_evergreen_asset_returns_after_seven_days(tmp_path: Path) -> None:
    clock = FakeClock()
    library = _library(tmp_path, clock)
    library.upsert_from_acquisition(_image("stormy sea waves"), _media(tmp_path, "sea.jpg"))

    clock.advance(days=7, minutes=1)
    found = library.find_best_local("sea waves at night", "image", 2)
    assert len(found) == 1
    assert found[0].category == EVERGREEN


def test_catalog_round_trips_through_a_new_instance(tmp_path: Path) -> None:
    library = _library(tmp_path)
    entry = library.upsert_from_acquisition(_image(HASTINGS), _media(tmp_path, "hastings.jpg"))
    library.close()

    reopened = _library(tmp_path)
    reopened.ensure_loaded()
    loaded = reopened.store.find_by_id(entry.id)
    assert loaded is not None
    assert loaded.category == entry.category == EPISODE_SPECIFIC
    assert loaded.keywords == entry.keywords
    assert loaded.content_hash == entry.content_hash


def test_upsert_same_path_is_additive(tmp_path: Path) -> None:
    clock = FakeClock()
    library = _library(tmp_path, clock)
    path = _media(tmp_path, "tower.jpg")
    first = library.upsert_from_acquisition(_image("stone tower"), path)
    clock.advance(hours=1)
    second = library.upsert_from_acquisition(_image("old stone castle tower", tags=["castle", "fog"]), path)

    assert second is first
    assert len(library.store) == 1
    assert second.times_used == 2
    assert second.tags == ["stone", "tower", "castle", "fog"]
    assert second.search_query == "stone tower"
    stored = json.loads((tmp_path / "library.json").read_text(encoding="utf-8"))
    assert stored["entries"][0]["timesUsed"] == 2


def test_identical_images_are_indexed_once(tmp_path: Path) -> None:
    library = _library(tmp_path)
    first_path = _media(tmp_path, "a.jpg", b"same pixels")
    second_path = _media(tmp_path, "b.jpg", b"same pixels")

    first = library.upsert_from_acquisition(_image("forest path"), first_path)
    second = library.upsert_from_acquisition(_image("autumn forest"), second_path)

    assert second is first
    assert len(library.store) == 1
    assert library.store.find_by_path(second_path) is None


def test_videos_are_not_hashed_but_probed(tmp_path: Path) -> None:
    probed = []

    def probe(path: str) -> float:
        probed.append(path)
        return 12.5

    library = AssetLibrary(
        AssetLibraryConfig(index_path=tmp_path / "library.json"), clock=FakeClock(), duration_probe=probe
    )
    entry = library.upsert_from_acquisition(
        AcquiredAsset(media_type="video", search_query="city traffic timelapse"), _media(tmp_path, "city.mp4")
    )
    assert entry.content_hash is None
    assert entry.media_duration_seconds == 12.5
    assert len(probed) == 1

    known = library.upsert_from_acquisition(
        AcquiredAsset(media_type="video", search_query="rain drops", duration=4.0), _media(tmp_path, "rain.mp4")
    )
    assert known.media_duration_seconds == 4.0
    assert len(probed) == 1


def test_invalid_catalog_does_not_block_upserts(tmp_path: Path) -> None:
    (tmp_path / "library.json").write_text("][", encoding="utf-8")
    library = _library(tmp_path)
    library.ensure_loaded()
    assert library.get_stats() == {"total": 0, "images": 0, "videos": 0}

    entry = library.upsert_from_acquisition(_image("desert dunes"), _media(tmp_path, "dunes.jpg"))
    assert entry is not None
    payload = json.loads((tmp_path / "library.json").read_text(encoding="utf-8"))
    assert [item["id"] for item in payload["entries"]] == [entry.id]


def test_mark_used_updates_known_entries_only(tmp_path: Path) -> None:
    clock = FakeClock()
    library = _library(tmp_path, clock, save_debounce_ms=60_000)
    path = _media(tmp_path, "lake.jpg")
    entry = library.upsert_from_acquisition(_image("mountain lake"), path)

    clock.advance(days=2)
    assert library.mark_used(entry.id) is True
    assert library.mark_used_by_path(path) is True
    assert entry.times_used == 3
    assert entry.last_used_at == "2024-03-03T09:00:00.000Z"

    assert library.mark_used("missing-id") is False
    assert library.mark_used_by_id("missing-id") is False
    assert entry.times_used == 3

    library.close()
    payload = json.loads((tmp_path / "library.json").read_text(encoding="utf-8"))
    assert payload["entries"][0]["timesUsed"] == 3


def test_selection_skips_excluded_and_missing_files(tmp_path: Path) -> None:
    clock = FakeClock()
    library = _library(tmp_path, clock)
    a = library.upsert_from_acquisition(_image("green hills"), _media(tmp_path, "a.jpg"))
    b = library.upsert_from_acquisition(_image("green rolling hills"), _media(tmp_path, "b.jpg"))
    c_path = _media(tmp_path, "c.jpg")
    library.upsert_from_acquisition(_image("green hills meadow"), c_path)
    Path(c_path).unlink()
    clock.advance(days=8)

    found = library.find_best_local("green hills", "image", 5)
    assert {asset.library_id for asset in found} == {a.id, b.id}

    found = library.find_best_local("green hills", "image", 5, exclude_ids=[a.id], exclude_paths=[b.local_path])
    assert found == []
    assert library.find_best_local("green hills", "video", 5) == []


def test_ties_keep_catalog_order(tmp_path: Path) -> None:
    clock = FakeClock()
    library = _library(tmp_path, clock)
    first = library.upsert_from_acquisition(_image("snowy peaks"), _media(tmp_path, "1.jpg"))
    second = library.upsert_from_acquisition(_image("snowy peaks"), _media(tmp_path, "2.jpg"))
    clock.advance(days=30)

    found = library.find_best_local("snowy peaks", "image", 2)
    assert [asset.library_id for asset in found] == [first.id, second.id]


def test_min_score_filters_weak_matches(tmp_path: Path) -> None:
    clock = FakeClock()
    library = _library(tmp_path, clock, min_score=2.5)
    library.upsert_from_acquisition(_image("golden wheat field"), _media(tmp_path, "wheat.jpg"))
    clock.advance(days=10)

    assert library.find_best_local("wheat harvest", "image", 1) == []
    assert len(library.find_best_local("golden wheat field", "image", 1)) == 1


def test_empty_inputs(tmp_path: Path) -> None:
    library = _library(tmp_path)
    assert library.find_best_local("", "image", 3) == []
    assert library.find_best_local("the and for", "image", 3) == []
    assert library.upsert_from_acquisition(_image("anything"), "") is None
    with pytest.raises(ValueError):
        library.find_best_local("forest", "audio", 1)


def test_get_stats_counts_media_types(tmp_path: Path) -> None:
    library = _library(tmp_path)
    library.upsert_from_acquisition(_image("coral reef"), _media(tmp_path, "reef.jpg"))
    library.upsert_from_acquisition(AcquiredAsset(media_type="video", search_query="reef fish"), _media(tmp_path, "fish.mp4"))
    assert library.get_stats() == {"total": 2, "images": 1, "videos": 1}


def test_config_from_settings(tmp_path: Path) -> None:
    settings = {
        "asset_library": {"reuse_window_days": 3, "allow_recent_when_insufficient": True, "min_score": "0.5"},
        "scoring": {"channel_bonus": 2},
        "lexicon": {"extra_stopwords": ["stock"]},
    }
    config = AssetLibraryConfig.from_settings(settings, working_dir=tmp_path)

    assert config.index_path == tmp_path / "data" / "library.json"
    assert config.reuse_policy.evergreen_days == 3
    assert config.reuse_policy.episode_specific_days == 30
    assert config.reuse_policy.allow_recent_when_insufficient is True
    assert config.min_score == 0.5
    assert config.scoring.channel_bonus == 2.0
    assert "stock" in config.lexicon.stopwords


def test_upsert_rejects_unknown_media_type(tmp_path: Path) -> None:
    library = _library(tmp_path)
    with pytest.raises(ValueError):
        library.upsert_from_acquisition(AcquiredAsset(media_type="audio", search_query="rain"), _media(tmp_path, "rain.wav"))
    assert library.get_stats()["total"] == 0
    assert not (tmp_path / "library.json").exists()
