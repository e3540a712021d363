"""JSON persistence for the asset catalog."""

from __future__ import annotations

import atexit
import json
import logging
import os
import tempfile
import threading
import weakref
from pathlib import Path
from typing import Any, Iterator, List, Optional

from core.paths import normalize_media_path

from .classify import classify
from .lexicon import DEFAULT_LEXICON, Lexicon
from .models import CATALOG_VERSION, CATEGORIES, Catalog, CatalogEntry, parse_ts
from .normalize import keyword_list

LOGGER = logging.getLogger("assetlibrary.store")

DEFAULT_SAVE_DELAY_S = 0.25


def _flush_at_exit(ref: "weakref.ReferenceType[CatalogStore]") -> None:
    # Timers are daemon threads; a save still pending at shutdown is written here.
    store = ref()
    if store is not None:
        store.flush()


class CatalogStore:
    """Lazily loaded catalog file with atomic, debounced saves.

    The store assumes a single owning process; nothing guards the file
    against concurrent writers elsewhere.
    """

    def __init__(
        self,
        path: Path | str,
        *,
        lexicon: Lexicon = DEFAULT_LEXICON,
        save_delay_s: float = DEFAULT_SAVE_DELAY_S,
    ) -> None:
        self._path = Path(path)
        self._lexicon = lexicon
        self._save_delay_s = max(0.0, float(save_delay_s))
        self._catalog = Catalog()
        self._loaded = False
        self._dirty = False
        self._timer: Optional[threading.Timer] = None
        self._timer_seq = 0
        self._lock = threading.RLock()
        atexit.register(_flush_at_exit, weakref.ref(self))

    @property
    def path(self) -> Path:
        return self._path

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def version(self) -> int:
        return self._catalog.version

    @property
    def entries(self) -> List[CatalogEntry]:
        return self._catalog.entries

    @property
    def pending_save(self) -> bool:
        with self._lock:
            return self._timer is not None

    def __iter__(self) -> Iterator[CatalogEntry]:
        return iter(list(self._catalog.entries))

    def __len__(self) -> int:
        return len(self._catalog.entries)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def ensure_loaded(self) -> None:
        with self._lock:
            if self._loaded:
                return
            self._catalog = self._read()
            self._loaded = True
            migrated = self._migrate()
        LOGGER.info(
            "catalog loaded",
            extra={"catalog_path": str(self._path), "entries": len(self), "migrated": migrated},
        )
        if migrated:
            self.schedule_save()

    def _read(self) -> Catalog:
        try:
            with open(self._path, "r", encoding="utf-8") as handle:
                payload: Any = json.load(handle)
        except FileNotFoundError:
            return Catalog()
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            LOGGER.warning("catalog %s is unreadable, starting empty: %s", self._path, exc)
            return Catalog()

        if isinstance(payload, dict) and isinstance(payload.get("entries"), list):
            raw_entries = payload["entries"]
            try:
                version = int(payload.get("version") or CATALOG_VERSION)
            except (TypeError, ValueError, OverflowError):
                version = CATALOG_VERSION
        elif isinstance(payload, list):
            LOGGER.info("catalog %s uses the legacy array layout", self._path)
            raw_entries = payload
            version = CATALOG_VERSION
        else:
            LOGGER.warning("catalog %s has an unexpected layout, starting empty", self._path)
            return Catalog()

        entries: List[CatalogEntry] = []
        seen: set[str] = set()
        for raw in raw_entries:
            if not isinstance(raw, dict):
                continue
            entry = CatalogEntry.from_dict(raw)
            if entry is None:
                continue
            if entry.id in seen:
                LOGGER.warning("dropping duplicate catalog id %s", entry.id)
                continue
            seen.add(entry.id)
            entries.append(entry)
        return Catalog(version=version, entries=entries)

    def _migrate(self) -> int:
        """Fill in derived fields missing from older records; return how many changed."""

        changed = 0
        for entry in self._catalog.entries:
            touched = False
            if entry.category not in CATEGORIES:
                entry.category = classify(entry.match_text, self._lexicon)
                touched = True
            if not entry.keywords:
                keywords = keyword_list(entry.match_text, self._lexicon)
                if keywords:
                    entry.keywords = keywords
                    touched = True
            last_used = parse_ts(entry.last_used_at)
            created = parse_ts(entry.created_at)
            if last_used is not None and created is not None and last_used < created:
                entry.last_used_at = entry.created_at
                touched = True
            if touched:
                changed += 1
        return changed

    # ------------------------------------------------------------------
    # Lookup and mutation
    # ------------------------------------------------------------------
    def add(self, entry: CatalogEntry) -> None:
        with self._lock:
            self._catalog.entries.append(entry)

    def find_by_id(self, entry_id: str) -> Optional[CatalogEntry]:
        for entry in self._catalog.entries:
            if entry.id == entry_id:
                return entry
        return None

    def find_by_path(self, local_path: str) -> Optional[CatalogEntry]:
        target = normalize_media_path(local_path)
        if not target:
            return None
        for entry in self._catalog.entries:
            if normalize_media_path(entry.local_path) == target:
                return entry
        return None

    def find_by_hash(self, digest: Optional[str]) -> Optional[CatalogEntry]:
        if not digest:
            return None
        for entry in self._catalog.entries:
            if entry.content_hash and entry.content_hash == digest:
                return entry
        return None

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def save(self) -> bool:
        """Write the whole catalog atomically; return False when the write failed."""

        self.ensure_loaded()
        with self._lock:
            payload = self._catalog.to_dict()
            self._dirty = False
            try:
                self._write_atomic(payload)
            except (OSError, TypeError, ValueError):
                self._dirty = True
                LOGGER.exception("failed to save catalog %s", self._path)
                return False
        LOGGER.debug("catalog saved", extra={"catalog_path": str(self._path), "entries": len(payload["entries"])})
        return True

    def _write_atomic(self, payload: dict) -> None:
        parent = self._path.parent
        parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", suffix=".tmp", dir=parent)
        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, ensure_ascii=False, indent=2)
                handle.write("\n")
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp, self._path)
        except BaseException:
            try:
                tmp.unlink(missing_ok=True)
            except OSError:
                pass
            raise

    def schedule_save(self) -> None:
        """Request a save after the debounce delay; at most one timer is ever pending."""

        with self._lock:
            self._dirty = True
            if self._timer is not None:
                return
            self._timer_seq += 1
            timer = threading.Timer(self._save_delay_s, self._run_scheduled_save, args=(self._timer_seq,))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def _run_scheduled_save(self, seq: int) -> None:
        with self._lock:
            # Superseded by a flush or a newer timer while waiting for the lock.
            if seq != self._timer_seq or self._timer is None:
                return
            self._timer = None
            if not self._dirty:
                return
            self.save()

    def cancel_pending(self) -> bool:
        """Drop a pending, not yet started save. Return True if one was pending."""

        with self._lock:
            timer, self._timer = self._timer, None
        if timer is None:
            return False
        timer.cancel()
        return True

    def flush(self) -> bool:
        """Persist outstanding changes now instead of waiting for the timer."""

        self.cancel_pending()
        with self._lock:
            if not self._dirty:
                return True
            return self.save()
