from datetime import datetime, timedelta, timezone

import pytest

from assetlibrary.models import CatalogEntry, format_ts
from assetlibrary.score import ScoringWeights, age_days, score_entry, tag_overlap

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _entry(**overrides) -> CatalogEntry:
    values = dict(
        id="e1",
        local_path="/media/a.jpg",
        media_type="image",
        created_at=format_ts(NOW - timedelta(days=90)),
        tags=["ancient", "map", "parchment"],
        channel_id="human-odyssey",
    )
    values.update(overrides)
    return CatalogEntry(**values)


def test_overlap_counts_shared_tokens():
    assert tag_overlap({"ancient", "map", "ocean"}, _entry()) == 2
    assert tag_overlap(set(), _entry()) == 0


def test_channel_bonus_applies_only_to_same_channel():
    tokens = {"ancient", "map"}
    same, reasons = score_entry(tokens, _entry(), "human-odyssey", now=NOW)
    other, _ = score_entry(tokens, _entry(), "what-if", now=NOW)
    assert same == pytest.approx(2.75)
    assert other == pytest.approx(2.0)
    assert "same channel" in reasons


def test_usage_penalty_is_capped():
    tokens = {"ancient", "map", "parchment"}
    light, _ = score_entry(tokens, _entry(times_used=5), None, now=NOW)
    heavy, _ = score_entry(tokens, _entry(times_used=500), None, now=NOW)
    assert light == pytest.approx(3 - 0.4)
    assert heavy == pytest.approx(3 - 2.0)


@pytest.mark.parametrize(
    "age, expected",
    [
        (timedelta(hours=2), 3 - 1.5),
        (timedelta(days=2), 3 - 0.8),
        (timedelta(days=5), 3.0),
    ],
)
def test_recency_penalty(age, expected):
    entry = _entry(last_used_at=format_ts(NOW - age))
    score, _ = score_entry({"ancient", "map", "parchment"}, entry, None, now=NOW)
    assert score == pytest.approx(expected)


def test_weights_from_mapping_fall_back_on_junk():
    weights = ScoringWeights.from_mapping({"channel_bonus": "1.5", "usage_penalty_cap": None, "recent_day_penalty": "x"})
    assert weights.channel_bonus == 1.5
    assert weights.usage_penalty_cap == 2.0
    assert weights.recent_day_penalty == 1.5


def test_age_days_handles_missing_and_invalid():
    assert age_days(None, NOW) is None
    assert age_days("yesterday", NOW) is None
    assert age_days("2024-05-31T12:00:00Z", NOW) == pytest.approx(1.0)
