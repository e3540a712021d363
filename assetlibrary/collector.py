"""Fill visual requests from the local library first, then from the provider."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Union

from core.paths import normalize_media_path

from .library import AssetLibrary
from .mix import ReuseMix, mix_for_channel, split_count
from .models import EPISODE_SPECIFIC, EVERGREEN, MEDIA_TYPES, AcquiredAsset, LibraryAsset

LOGGER = logging.getLogger("assetlibrary.collector")

# provider(query, media_type, count) -> freshly downloaded assets with local paths
AcquisitionProvider = Callable[[str, str, int], List[AcquiredAsset]]

CollectedAsset = Union[LibraryAsset, AcquiredAsset]


@dataclass(slots=True)
class CollectionResult:
    local: List[LibraryAsset] = field(default_factory=list)
    fetched: List[AcquiredAsset] = field(default_factory=list)
    redundant_paths: List[str] = field(default_factory=list)
    shortfall: int = 0

    @property
    def assets(self) -> List[CollectedAsset]:
        return [*self.local, *self.fetched]


class AssetCollector:
    def __init__(
        self,
        library: AssetLibrary,
        provider: AcquisitionProvider,
        *,
        mixes: Optional[Mapping[str, ReuseMix]] = None,
    ) -> None:
        self.library = library
        self.provider = provider
        self.mixes: Dict[str, ReuseMix] = dict(mixes or {})

    def collect(
        self,
        query: str,
        media_type: str,
        count: int,
        *,
        channel_id: Optional[str] = None,
        exclude_ids: Optional[Iterable[str]] = None,
        exclude_paths: Optional[Iterable[str]] = None,
    ) -> CollectionResult:
        result = CollectionResult()
        if count <= 0:
            return result
        used_ids = set(exclude_ids or ())
        used_paths = {normalize_media_path(p) for p in exclude_paths or () if p}

        if self.library.is_prefer_local_enabled():
            self._collect_local(query, media_type, count, channel_id, used_ids, used_paths, result)

        missing = count - len(result.local)
        if missing > 0:
            self._acquire(query, media_type, missing, channel_id, used_paths, result)
        result.shortfall = max(0, count - len(result.assets))
        LOGGER.info(
            "collected assets",
            extra={
                "query": query,
                "media_type": media_type,
                "requested": count,
                "reused": len(result.local),
                "fetched": len(result.fetched),
                "shortfall": result.shortfall,
            },
        )
        return result

    def _collect_local(
        self,
        query: str,
        media_type: str,
        count: int,
        channel_id: Optional[str],
        used_ids: set[str],
        used_paths: set[str],
        result: CollectionResult,
    ) -> None:
        plan = split_count(count, mix_for_channel(self.mixes, channel_id))
        carry = 0
        # A category that under-delivers hands its remaining slots to the next one.
        for category in (EPISODE_SPECIFIC, EVERGREEN):
            wanted = plan[category] + carry
            if wanted <= 0:
                continue
            found = self.library.find_best_local(
                query,
                media_type,
                wanted,
                channel_id=channel_id,
                category=category,
                exclude_ids=used_ids,
                exclude_paths=used_paths,
            )
            for asset in found:
                used_ids.add(asset.library_id)
                used_paths.add(normalize_media_path(asset.local_path))
            result.local.extend(found)
            carry = wanted - len(found)
        if carry > 0:
            found = self.library.find_best_local(
                query,
                media_type,
                carry,
                channel_id=channel_id,
                category=EPISODE_SPECIFIC,
                exclude_ids=used_ids,
                exclude_paths=used_paths,
            )
            for asset in found:
                used_ids.add(asset.library_id)
                used_paths.add(normalize_media_path(asset.local_path))
            result.local.extend(found)

    def _acquire(
        self,
        query: str,
        media_type: str,
        missing: int,
        channel_id: Optional[str],
        used_paths: set[str],
        result: CollectionResult,
    ) -> None:
        try:
            acquired = self.provider(query, media_type, missing)
        except Exception:
            LOGGER.exception("acquisition provider failed for %r", query)
            return
        for asset in acquired or []:
            if len(result.fetched) >= missing:
                break
            if not asset.local_path:
                continue
            if asset.media_type not in MEDIA_TYPES:
                LOGGER.warning("skipping acquisition with unknown media type %r", asset.media_type)
                continue
            if asset.channel_id is None:
                asset.channel_id = channel_id
            if asset.search_query is None:
                asset.search_query = query
            entry = self.library.upsert_from_acquisition(asset, asset.local_path)
            new_path = normalize_media_path(asset.local_path)
            if entry is not None and normalize_media_path(entry.local_path) != new_path:
                result.redundant_paths.append(new_path)
                if normalize_media_path(entry.local_path) in used_paths:
                    continue
                asset.local_path = entry.local_path
            used_paths.add(normalize_media_path(asset.local_path))
            result.fetched.append(asset)

    def consume(self, assets: Iterable[CollectedAsset]) -> int:
        """Report the assets that made it into the output; return how many were recorded."""

        recorded = 0
        for asset in assets:
            # Fresh acquisitions were counted when they were indexed.
            if not isinstance(asset, LibraryAsset):
                continue
            local_path = asset.local_path
            if not local_path or not Path(local_path).exists():
                continue
            if self.library.mark_used_by_id(asset.library_id):
                recorded += 1
            elif self.library.mark_used_by_path(local_path):
                recorded += 1
        return recorded
