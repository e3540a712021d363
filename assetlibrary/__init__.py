"""Reuse of previously acquired stock media."""

from .classify import classify
from .collector import AssetCollector, CollectionResult
from .library import AssetLibrary, AssetLibraryConfig
from .models import (
    EPISODE_SPECIFIC,
    EVERGREEN,
    AcquiredAsset,
    CatalogEntry,
    LibraryAsset,
    SelectionQuery,
)
from .mix import ReuseMix, channel_mixes, split_count
from .normalize import normalize, tokenize

__all__ = [
    "AcquiredAsset",
    "AssetCollector",
    "AssetLibrary",
    "AssetLibraryConfig",
    "CatalogEntry",
    "CollectionResult",
    "EPISODE_SPECIFIC",
    "EVERGREEN",
    "LibraryAsset",
    "ReuseMix",
    "SelectionQuery",
    "channel_mixes",
    "classify",
    "normalize",
    "split_count",
    "tokenize",
]
