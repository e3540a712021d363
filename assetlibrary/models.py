"""Catalog records and the value objects exchanged with collaborators."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional

from core.paths import normalize_media_path

EVERGREEN = "evergreen"
EPISODE_SPECIFIC = "episode_specific"
CATEGORIES = (EVERGREEN, EPISODE_SPECIFIC)

IMAGE = "image"
VIDEO = "video"
MEDIA_TYPES = (IMAGE, VIDEO)

CATALOG_VERSION = 1


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_ts(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_ts(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC, junk as ``None``."""

    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _str_list(values: object) -> List[str]:
    if not isinstance(values, (list, tuple)):
        return []
    return [str(value) for value in values if value is not None and str(value)]


def _optional_str(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text or None


def _optional_float(value: object) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


@dataclass(slots=True)
class CatalogEntry:
    """One indexed media file."""

    id: str
    local_path: str
    media_type: str
    created_at: str
    category: str = EVERGREEN
    keywords: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    source: str = "pexels"
    channel_id: Optional[str] = None
    search_query: Optional[str] = None
    last_used_at: Optional[str] = None
    times_used: int = 0
    media_duration_seconds: Optional[float] = None
    content_hash: Optional[str] = None

    @property
    def match_text(self) -> str:
        """Text the derived fields are computed from: the query, else the tags."""

        return self.search_query or " ".join(self.tags)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "localPath": self.local_path,
            "type": self.media_type,
            "source": self.source,
            "channelId": self.channel_id,
            "searchQuery": self.search_query,
            "tags": list(self.tags),
            "category": self.category,
            "keywords": list(self.keywords),
            "createdAt": self.created_at,
            "lastUsedAt": self.last_used_at,
            "timesUsed": self.times_used,
            "mediaDurationSeconds": self.media_duration_seconds,
            "contentHash": self.content_hash,
        }
        return {key: value for key, value in payload.items() if value is not None}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Optional["CatalogEntry"]:
        """Rebuild an entry from its persisted form.

        Returns ``None`` for records without an id or a path. ``category`` and
        ``keywords`` are read as stored, possibly empty; the store's load-time
        migration fills them in.
        """

        entry_id = _optional_str(data.get("id"))
        local_path = _optional_str(data.get("localPath"))
        if not entry_id or not local_path:
            return None
        media_type = str(data.get("type") or IMAGE)
        if media_type not in MEDIA_TYPES:
            media_type = IMAGE
        category = data.get("category")
        try:
            times_used = max(0, int(data.get("timesUsed") or 0))
        except (TypeError, ValueError, OverflowError):
            times_used = 0
        last_used_at = _optional_str(data.get("lastUsedAt"))
        # Records without a creation time are dated by their last use, never by the load.
        created_at = _optional_str(data.get("createdAt")) or last_used_at or format_ts(utc_now())
        return cls(
            id=entry_id,
            local_path=local_path,
            media_type=media_type,
            created_at=created_at,
            category=category if category in CATEGORIES else "",
            keywords=_str_list(data.get("keywords")),
            tags=_str_list(data.get("tags")),
            source=str(data.get("source") or "pexels"),
            channel_id=_optional_str(data.get("channelId")),
            search_query=_optional_str(data.get("searchQuery")),
            last_used_at=last_used_at,
            times_used=times_used,
            media_duration_seconds=_optional_float(data.get("mediaDurationSeconds")),
            content_hash=_optional_str(data.get("contentHash")),
        )


@dataclass(slots=True)
class Catalog:
    version: int = CATALOG_VERSION
    entries: List[CatalogEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"version": self.version, "entries": [entry.to_dict() for entry in self.entries]}


@dataclass(slots=True)
class AcquiredAsset:
    """Metadata of freshly downloaded media, as reported by the acquisition side."""

    media_type: str
    url: str = ""
    local_path: Optional[str] = None
    search_query: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    channel_id: Optional[str] = None
    source: str = "pexels"
    duration: Optional[float] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AcquiredAsset":
        return cls(
            media_type=str(data.get("type") or IMAGE),
            url=str(data.get("url") or ""),
            local_path=_optional_str(data.get("localPath")),
            search_query=_optional_str(data.get("searchQuery")),
            tags=_str_list(data.get("tags")),
            channel_id=_optional_str(data.get("channelId")),
            source=str(data.get("source") or "pexels"),
            duration=_optional_float(data.get("duration")),
        )


@dataclass(frozen=True, slots=True)
class SelectionQuery:
    text: str
    media_type: str
    count: int
    channel_id: Optional[str] = None
    category: Optional[str] = None
    exclude_ids: FrozenSet[str] = frozenset()
    exclude_paths: FrozenSet[str] = frozenset()

    def __post_init__(self) -> None:
        if self.media_type not in MEDIA_TYPES:
            raise ValueError(f"unknown media type: {self.media_type!r}")
        if self.category is not None and self.category not in CATEGORIES:
            raise ValueError(f"unknown category: {self.category!r}")
        if self.count < 0:
            raise ValueError("count must be non-negative")

    @classmethod
    def build(
        cls,
        text: str,
        media_type: str,
        count: int,
        *,
        channel_id: Optional[str] = None,
        category: Optional[str] = None,
        exclude_ids: Optional[Iterable[str]] = None,
        exclude_paths: Optional[Iterable[str]] = None,
    ) -> "SelectionQuery":
        return cls(
            text=text or "",
            media_type=media_type,
            count=int(count),
            channel_id=channel_id or None,
            category=category or None,
            exclude_ids=frozenset(exclude_ids or ()),
            exclude_paths=frozenset(normalize_media_path(p) for p in exclude_paths or () if p),
        )


@dataclass(slots=True)
class LibraryAsset:
    """A catalog entry projected into the asset shape used by the pipeline."""

    media_type: str
    local_path: str
    library_id: str
    category: str
    keywords: List[str]
    tags: List[str] = field(default_factory=list)
    channel_id: Optional[str] = None
    search_query: Optional[str] = None
    media_duration_seconds: Optional[float] = None
    score: float = 0.0
    source: str = "library"

    @property
    def url(self) -> str:
        return self.local_path

    @classmethod
    def from_entry(cls, entry: CatalogEntry, score: float = 0.0) -> "LibraryAsset":
        return cls(
            media_type=entry.media_type,
            local_path=entry.local_path,
            library_id=entry.id,
            category=entry.category,
            keywords=list(entry.keywords),
            tags=list(entry.tags),
            channel_id=entry.channel_id,
            search_query=entry.search_query,
            media_duration_seconds=entry.media_duration_seconds,
            score=score,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "type": self.media_type,
            "url": self.url,
            "localPath": self.local_path,
            "source": self.source,
            "libraryId": self.library_id,
            "channelId": self.channel_id,
            "searchQuery": self.search_query,
            "tags": list(self.tags),
            "category": self.category,
            "keywords": list(self.keywords),
            "mediaDurationSeconds": self.media_duration_seconds,
        }
        return {key: value for key, value in payload.items() if value is not None}
