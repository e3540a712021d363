from __future__ import annotations

import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, Optional

from .paths import get_logs_dir, resolve_working_dir

LOG_FILE_NAME = "assetlibrary.log.jsonl"

_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()) | {"message", "asctime"}


class JsonLogFormatter(logging.Formatter):
    """One JSON object per record; serialisable ``extra`` fields are inlined."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload: Dict[str, Any] = {
            "ts": time.time(),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        for key, value in record.__dict__.items():
            if key.startswith("_") or key in _RESERVED_ATTRS or key in payload:
                continue
            try:
                json.dumps(value)
            except TypeError:
                continue
            payload[key] = value
        return json.dumps(payload, ensure_ascii=False)


def get_log_path(working_dir: Path) -> Path:
    return get_logs_dir(working_dir) / LOG_FILE_NAME


def _has_handler(logger: logging.Logger, predicate) -> bool:
    return any(predicate(handler) for handler in logger.handlers)


def configure_json_logging(
    name: str = "assetlibrary",
    working_dir: Optional[Path] = None,
    *,
    level: int = logging.INFO,
    console: bool = False,
) -> logging.Logger:
    """Attach the JSON-lines file handler (and optionally a stderr one) to *name*.

    Calling it again for the same working directory does not add handlers.
    """

    working_dir = Path(working_dir) if working_dir is not None else resolve_working_dir()
    log_path = get_log_path(working_dir)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not _has_handler(
        logger,
        lambda h: isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", None) == str(log_path),
    ):
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(JsonLogFormatter())
        logger.addHandler(file_handler)

    if console and not _has_handler(logger, lambda h: getattr(h, "name", None) == "assetlibrary-console"):
        stream = logging.StreamHandler(sys.stderr)
        stream.set_name("assetlibrary-console")
        stream.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        logger.addHandler(stream)

    # Keep library records out of the host application's root handlers.
    logger.propagate = False
    return logger
