from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

__all__ = [
    "ensure_working_dir_structure",
    "expand_path",
    "get_data_dir",
    "get_default_catalog_path",
    "get_default_settings_paths",
    "get_logs_dir",
    "normalize_media_path",
    "resolve_working_dir",
]

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_HOME_ENV = "ASSETLIBRARY_HOME"


def expand_path(value: str | os.PathLike[str]) -> Path:
    expanded = os.path.expandvars(os.path.expanduser(str(value)))
    return Path(expanded).resolve()


def normalize_media_path(path: str | os.PathLike[str]) -> str:
    """Return the canonical textual form used to compare media paths."""

    text = str(path or "")
    if not text:
        return ""
    return os.path.normpath(text)


def _ensure_writable_dir(path: Path) -> bool:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError:
        return False
    test_file = path / f".write_test_{os.getpid()}"
    try:
        with open(test_file, "w", encoding="utf-8") as handle:
            handle.write("ok")
        test_file.unlink(missing_ok=True)
        return True
    except OSError:
        try:
            if test_file.exists():
                test_file.unlink()
        except OSError:  # pragma: no cover - defensive cleanup
            pass
        return False


def _prepare_working_dir(candidate: Path) -> Optional[Path]:
    if not _ensure_writable_dir(candidate):
        return None
    try:
        get_data_dir(candidate).mkdir(parents=True, exist_ok=True)
        return candidate
    except OSError:
        return None


def _read_settings(path: Path) -> Optional[Dict[str, Any]]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
        if isinstance(data, dict):
            return data
    except FileNotFoundError:
        return None
    except (OSError, ValueError):
        return None
    return None


def resolve_working_dir() -> Path:
    """Resolve the asset library working directory, creating it if required."""

    env_home = os.environ.get(_HOME_ENV)
    if env_home:
        prepared = _prepare_working_dir(expand_path(env_home))
        if prepared is not None:
            return prepared

    # A settings.json next to the checkout may pin the working directory.
    data = _read_settings(_PROJECT_ROOT / "settings.json")
    if data:
        working_dir_value = data.get("working_dir")
        if isinstance(working_dir_value, str) and working_dir_value.strip():
            prepared = _prepare_working_dir(expand_path(working_dir_value))
            if prepared is not None:
                return prepared

    prepared = _prepare_working_dir(Path.home() / ".assetlibrary")
    if prepared is not None:
        return prepared

    fallback = Path.cwd() / ".assetlibrary"
    get_data_dir(fallback).mkdir(parents=True, exist_ok=True)
    return fallback


def get_data_dir(working_dir: Path) -> Path:
    return working_dir / "data"


def get_default_catalog_path(working_dir: Path) -> Path:
    return get_data_dir(working_dir) / "library.json"


def get_logs_dir(working_dir: Path) -> Path:
    return working_dir / "logs"


def ensure_working_dir_structure(working_dir: Path) -> None:
    for directory in (
        working_dir,
        get_data_dir(working_dir),
        get_logs_dir(working_dir),
    ):
        directory.mkdir(parents=True, exist_ok=True)


def get_default_settings_paths(working_dir: Path) -> list[Path]:
    """Return the search order for settings.json files."""

    return [working_dir / "settings.json", _PROJECT_ROOT / "settings.json"]
