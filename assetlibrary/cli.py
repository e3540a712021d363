from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from core.logging_utils import configure_json_logging
from core.paths import expand_path, resolve_working_dir
from core.settings import load_settings

from .classify import category_signals, classify
from .library import AssetLibrary, AssetLibraryConfig
from .models import CATEGORIES, MEDIA_TYPES, AcquiredAsset


def _print(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Inspect and maintain the local stock media library")
    parser.add_argument("--working-dir", default=None, help="Working directory (settings, logs, default catalog)")
    parser.add_argument("--index", default=None, help="Catalog file override")
    parser.add_argument("--verbose", action="store_true", help="Also log to stderr, including debug records")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("stats", help="Count catalog entries by media type")

    classify_cmd = sub.add_parser("classify", help="Label a query evergreen or episode_specific")
    classify_cmd.add_argument("text")

    find = sub.add_parser("find", help="Rank reusable local assets for a query")
    find.add_argument("query")
    find.add_argument("--type", dest="media_type", choices=MEDIA_TYPES, default="image")
    find.add_argument("--count", type=int, default=5)
    find.add_argument("--channel", default=None)
    find.add_argument("--category", choices=CATEGORIES, default=None)
    find.add_argument("--lenient", action="store_true", help="Backfill with recently used assets")

    index = sub.add_parser("index", help="Index an already downloaded file")
    index.add_argument("path")
    index.add_argument("--type", dest="media_type", choices=MEDIA_TYPES, default="image")
    index.add_argument("--query", default=None)
    index.add_argument("--tags", default="", help="Comma separated tags")
    index.add_argument("--channel", default=None)

    mark = sub.add_parser("mark-used", help="Record a use of an entry by id or path")
    mark.add_argument("id_or_path")
    return parser


def _load_config(args: argparse.Namespace) -> AssetLibraryConfig:
    working_dir = expand_path(args.working_dir) if args.working_dir else resolve_working_dir()
    configure_json_logging(
        working_dir=working_dir,
        level=logging.DEBUG if args.verbose else logging.INFO,
        console=args.verbose,
    )
    settings = load_settings(working_dir)
    config = AssetLibraryConfig.from_settings(settings, working_dir=working_dir)
    if args.index:
        config.index_path = Path(args.index).expanduser()
    if getattr(args, "lenient", False):
        config.allow_recent_when_insufficient = True
    return config


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    config = _load_config(args)
    if args.command == "classify":
        lexicon = config.lexicon
        _print({"category": classify(args.text, lexicon), "signals": category_signals(args.text, lexicon)})
        return 0

    library = AssetLibrary(config)
    with library:
        if args.command == "stats":
            _print(library.get_stats())
        elif args.command == "find":
            found = library.find_best_local(
                args.query,
                args.media_type,
                args.count,
                channel_id=args.channel,
                category=args.category,
            )
            _print([dict(asset.to_dict(), score=round(asset.score, 3)) for asset in found])
        elif args.command == "index":
            tags = [tag.strip() for tag in args.tags.split(",") if tag.strip()]
            asset = AcquiredAsset(
                media_type=args.media_type,
                local_path=args.path,
                search_query=args.query,
                tags=tags,
                channel_id=args.channel,
            )
            entry = library.upsert_from_acquisition(asset, args.path)
            _print(entry.to_dict() if entry is not None else None)
        elif args.command == "mark-used":
            _print({"updated": library.mark_used(args.id_or_path)})
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
