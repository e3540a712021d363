"""Content hashing and duration probing for indexed media."""

from __future__ import annotations

import logging
import math
import shutil
import subprocess
from pathlib import Path
from typing import Optional

from blake3 import blake3

LOGGER = logging.getLogger("assetlibrary.probe")

_CHUNK_SIZE = 1024 * 1024


def content_hash(path: str | Path, chunk: int = _CHUNK_SIZE) -> Optional[str]:
    """Return the BLAKE3 hex digest of the file at *path*, or ``None`` if unreadable."""

    hasher = blake3()
    try:
        with open(path, "rb") as handle:
            while True:
                data = handle.read(chunk)
                if not data:
                    break
                hasher.update(data)
    except OSError as exc:
        LOGGER.debug("content hash failed for %s: %s", path, exc)
        return None
    return hasher.hexdigest()


def ffprobe_available(executable: Optional[str] = None) -> bool:
    """Return True when ffprobe (or *executable*) can be found."""

    return shutil.which(executable or "ffprobe") is not None


def probe_duration_seconds(
    path: str | Path,
    *,
    executable: Optional[str] = None,
    timeout_s: float = 10.0,
) -> Optional[float]:
    """Return the container duration in seconds using ffprobe, or ``None`` if unknown."""

    if not path or not Path(path).exists():
        return None
    try:
        result = subprocess.run(
            [
                executable or "ffprobe",
                "-v",
                "error",
                "-show_entries",
                "format=duration",
                "-of",
                "default=noprint_wrappers=1:nokey=1",
                str(path),
            ],
            capture_output=True,
            text=True,
            timeout=timeout_s,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        LOGGER.debug("ffprobe failed for %s: %s", path, exc)
        return None
    if result.returncode != 0:
        return None
    text = (result.stdout or "").strip()
    if not text:
        return None
    try:
        value = float(text.splitlines()[0])
    except ValueError:
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return value
