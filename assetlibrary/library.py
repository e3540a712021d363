"""Local asset library: decides when previously fetched media can be reused."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from core.paths import get_default_catalog_path, normalize_media_path

from .classify import classify
from .lexicon import Lexicon
from .models import (
    IMAGE,
    MEDIA_TYPES,
    VIDEO,
    AcquiredAsset,
    CatalogEntry,
    LibraryAsset,
    SelectionQuery,
    format_ts,
    utc_now,
)
from .normalize import keyword_list, merge_unique, tokenize
from .probe import content_hash, probe_duration_seconds
from .score import ScoringWeights, score_entry
from .store import CatalogStore
from .window import ReusePolicy, ScoredCandidate, select

LOGGER = logging.getLogger("assetlibrary.library")

Clock = Callable[[], datetime]
Hasher = Callable[[str], Optional[str]]
DurationProbe = Callable[[str], Optional[float]]


def _number(value: object, default: float) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


@dataclass(slots=True)
class AssetLibraryConfig:
    index_path: Path = Path("assets/library.json")
    prefer_local_assets: bool = True
    reuse_window_days: float = 7.0
    episode_specific_reuse_window_days: float = 30.0
    allow_recent_when_insufficient: bool = False
    min_score: float = 1.0
    save_debounce_ms: int = 250
    hash_images: bool = True
    probe_video_duration: bool = True
    ffprobe_path: Optional[str] = None
    probe_timeout_s: float = 10.0
    scoring: ScoringWeights = field(default_factory=ScoringWeights)
    lexicon: Lexicon = field(default_factory=Lexicon)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, object] | None, *, working_dir: Optional[Path] = None) -> "AssetLibraryConfig":
        data = dict(mapping or {})
        defaults = cls()
        index_value = data.get("index_path")
        if isinstance(index_value, str) and index_value.strip():
            index_path = Path(index_value).expanduser()
        elif working_dir is not None:
            index_path = get_default_catalog_path(Path(working_dir))
        else:
            index_path = defaults.index_path
        return cls(
            index_path=index_path,
            prefer_local_assets=bool(data.get("prefer_local_assets", True)),
            reuse_window_days=_number(data.get("reuse_window_days"), defaults.reuse_window_days),
            episode_specific_reuse_window_days=_number(
                data.get("episode_specific_reuse_window_days"), defaults.episode_specific_reuse_window_days
            ),
            allow_recent_when_insufficient=bool(data.get("allow_recent_when_insufficient", False)),
            min_score=_number(data.get("min_score"), defaults.min_score),
            save_debounce_ms=int(_number(data.get("save_debounce_ms"), defaults.save_debounce_ms)),
            hash_images=bool(data.get("hash_images", True)),
            probe_video_duration=bool(data.get("probe_video_duration", True)),
            ffprobe_path=str(data["ffprobe_path"]) if data.get("ffprobe_path") else None,
            probe_timeout_s=_number(data.get("probe_timeout_s"), defaults.probe_timeout_s),
        )

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any], *, working_dir: Optional[Path] = None) -> "AssetLibraryConfig":
        """Build the config from a full settings document (see :mod:`core.settings`)."""

        section = settings.get("asset_library")
        config = cls.from_mapping(section if isinstance(section, dict) else {}, working_dir=working_dir)
        scoring = settings.get("scoring")
        lexicon = settings.get("lexicon")
        config.scoring = ScoringWeights.from_mapping(scoring if isinstance(scoring, dict) else {})
        config.lexicon = Lexicon.from_mapping(lexicon if isinstance(lexicon, dict) else {})
        return config

    @property
    def reuse_policy(self) -> ReusePolicy:
        return ReusePolicy(
            evergreen_days=self.reuse_window_days,
            episode_specific_days=self.episode_specific_reuse_window_days,
            allow_recent_when_insufficient=self.allow_recent_when_insufficient,
        )


class AssetLibrary:
    """Catalog of previously downloaded stock media and the rules for reusing it."""

    def __init__(
        self,
        config: Optional[AssetLibraryConfig] = None,
        *,
        clock: Optional[Clock] = None,
        hasher: Optional[Hasher] = None,
        duration_probe: Optional[DurationProbe] = None,
    ) -> None:
        self.config = config or AssetLibraryConfig()
        self._clock = clock or utc_now
        self._hasher = hasher or content_hash
        self._duration_probe = duration_probe or self._ffprobe_duration
        self._store = CatalogStore(
            self.config.index_path,
            lexicon=self.config.lexicon,
            save_delay_s=self.config.save_debounce_ms / 1000.0,
        )

    @property
    def store(self) -> CatalogStore:
        return self._store

    def is_prefer_local_enabled(self) -> bool:
        return self.config.prefer_local_assets

    def ensure_loaded(self) -> None:
        self._store.ensure_loaded()

    def flush(self) -> bool:
        return self._store.flush()

    def close(self) -> None:
        self.flush()

    def __enter__(self) -> "AssetLibrary":
        self.ensure_loaded()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        self.close()

    # ------------------------------------------------------------------
    # Probes
    # ------------------------------------------------------------------
    def _ffprobe_duration(self, path: str) -> Optional[float]:
        return probe_duration_seconds(
            path,
            executable=self.config.ffprobe_path,
            timeout_s=self.config.probe_timeout_s,
        )

    def _safe_hash(self, path: str) -> Optional[str]:
        if not self.config.hash_images:
            return None
        try:
            return self._hasher(path)
        except Exception:  # pragma: no cover - custom hashers
            LOGGER.debug("hasher failed for %s", path, exc_info=True)
            return None

    def _safe_duration(self, path: str) -> Optional[float]:
        if not self.config.probe_video_duration:
            return None
        try:
            return self._duration_probe(path)
        except Exception:  # pragma: no cover - custom probes
            LOGGER.debug("duration probe failed for %s", path, exc_info=True)
            return None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_stats(self) -> Dict[str, int]:
        self.ensure_loaded()
        entries = list(self._store)
        return {
            "total": len(entries),
            "images": sum(1 for entry in entries if entry.media_type == IMAGE),
            "videos": sum(1 for entry in entries if entry.media_type == VIDEO),
        }

    def find_best_local(
        self,
        query: str,
        media_type: str,
        count: int,
        *,
        channel_id: Optional[str] = None,
        category: Optional[str] = None,
        exclude_ids: Optional[Iterable[str]] = None,
        exclude_paths: Optional[Iterable[str]] = None,
    ) -> List[LibraryAsset]:
        """Return up to *count* reusable local assets for *query*, best first.

        An empty list is a normal answer: the caller should acquire fresh media.
        """

        selection = SelectionQuery.build(
            query,
            media_type,
            count,
            channel_id=channel_id,
            category=category,
            exclude_ids=exclude_ids,
            exclude_paths=exclude_paths,
        )
        return self.select(selection)

    def select(self, selection: SelectionQuery) -> List[LibraryAsset]:
        self.ensure_loaded()
        query_tokens = tokenize(selection.text, self.config.lexicon)
        if not query_tokens or selection.count == 0:
            return []

        now = self._clock()
        candidates: List[ScoredCandidate] = []
        with self._store.lock:
            for order, entry in enumerate(self._store.entries):
                if not self._passes_filters(entry, selection):
                    continue
                score, _ = score_entry(
                    query_tokens,
                    entry,
                    selection.channel_id,
                    now=now,
                    weights=self.config.scoring,
                )
                if score < self.config.min_score:
                    continue
                candidates.append(ScoredCandidate(entry=entry, score=score, order=order))

        chosen = select(candidates, selection.count, self.config.reuse_policy, now)
        LOGGER.debug(
            "local selection",
            extra={
                "query": selection.text,
                "media_type": selection.media_type,
                "requested": selection.count,
                "candidates": len(candidates),
                "selected": len(chosen),
            },
        )
        return [LibraryAsset.from_entry(candidate.entry, candidate.score) for candidate in chosen]

    @staticmethod
    def _passes_filters(entry: CatalogEntry, selection: SelectionQuery) -> bool:
        if entry.media_type != selection.media_type:
            return False
        if selection.category and entry.category != selection.category:
            return False
        if entry.id in selection.exclude_ids:
            return False
        if normalize_media_path(entry.local_path) in selection.exclude_paths:
            return False
        return Path(entry.local_path).exists()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def upsert_from_acquisition(self, asset: AcquiredAsset, local_path: str) -> Optional[CatalogEntry]:
        """Index freshly acquired media, or refresh the entry already at *local_path*.

        When an image's content matches an entry stored under another path,
        that existing entry is returned and nothing is indexed; the new file
        is redundant.
        """

        if asset.media_type not in MEDIA_TYPES:
            raise ValueError(f"unknown media type: {asset.media_type!r}")
        self.ensure_loaded()
        if not local_path:
            return None
        norm_path = normalize_media_path(local_path)
        lexicon = self.config.lexicon
        search_query = asset.search_query or ""
        tags = keyword_list(" ".join(asset.tags) if asset.tags else search_query, lexicon)
        category = classify(search_query or " ".join(asset.tags), lexicon)
        keywords = keyword_list(search_query or " ".join(tags), lexicon)

        digest: Optional[str] = None
        duration: Optional[float] = None
        if asset.media_type == IMAGE:
            digest = self._safe_hash(norm_path)
        elif asset.media_type == VIDEO:
            duration = asset.duration or self._safe_duration(norm_path)

        now = format_ts(self._clock())
        with self._store.lock:
            entry = self._store.find_by_path(norm_path)
            duplicate = self._store.find_by_hash(digest)
            if duplicate is not None and (entry is None or duplicate.id != entry.id):
                LOGGER.info(
                    "content already indexed",
                    extra={"new_path": norm_path, "library_id": duplicate.id, "existing_path": duplicate.local_path},
                )
                return duplicate

            if entry is None:
                entry = CatalogEntry(
                    id=str(uuid.uuid4()),
                    local_path=norm_path,
                    media_type=asset.media_type,
                    created_at=now,
                    category=category,
                    keywords=keywords,
                    tags=tags,
                    source=asset.source or "pexels",
                    channel_id=asset.channel_id,
                    search_query=asset.search_query,
                    last_used_at=now,
                    times_used=1,
                    media_duration_seconds=duration,
                    content_hash=digest,
                )
                self._store.add(entry)
                LOGGER.info(
                    "indexed asset",
                    extra={"library_id": entry.id, "local_path": norm_path, "category": category},
                )
            else:
                entry.media_type = asset.media_type
                entry.channel_id = entry.channel_id or asset.channel_id
                entry.search_query = entry.search_query or asset.search_query
                entry.tags = merge_unique(entry.tags, tags)
                entry.keywords = merge_unique(entry.keywords, keywords)
                entry.last_used_at = now
                entry.times_used = max(0, entry.times_used) + 1
                entry.media_duration_seconds = entry.media_duration_seconds or duration
                entry.content_hash = entry.content_hash or digest

            self._store.cancel_pending()
            self._store.save()
        return entry

    def mark_used(self, id_or_path: str) -> bool:
        """Record a use of the entry with this id or path. Unknown values are ignored."""

        self.ensure_loaded()
        with self._store.lock:
            entry = self._store.find_by_id(id_or_path) or self._store.find_by_path(id_or_path)
            return self._touch(entry)

    def mark_used_by_id(self, entry_id: str) -> bool:
        self.ensure_loaded()
        with self._store.lock:
            return self._touch(self._store.find_by_id(entry_id))

    def mark_used_by_path(self, local_path: str) -> bool:
        self.ensure_loaded()
        with self._store.lock:
            return self._touch(self._store.find_by_path(local_path))

    def _touch(self, entry: Optional[CatalogEntry]) -> bool:
        if entry is None:
            return False
        entry.last_used_at = format_ts(self._clock())
        entry.times_used = max(0, entry.times_used) + 1
        self._store.schedule_save()
        return True
