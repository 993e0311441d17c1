"""Standalone CLI for the offline aboutness backfill.

Usage::

    python -m songmatch.cli backfill --limit 500 --batch-size 10 --concurrency 3

    python -m songmatch.cli backfill --ids song-1,song-2 --dry-run

    python -m songmatch.cli stats

The backfill is idempotent: songs that already carry an aboutness row at
``--version`` are skipped, so an interrupted run can simply be restarted.
Exit code is 1 when any song failed.
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from songmatch.config.settings import Settings


def _parse_ids(value: str) -> list[str]:
    ids = [part.strip() for part in value.split(",") if part.strip()]
    if not ids:
        raise argparse.ArgumentTypeError("--ids needs at least one song id")
    return ids


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return number


async def _handle_backfill(args: argparse.Namespace, app_settings: Settings) -> int:
    from songmatch.config.loader import load_config
    from songmatch.main import build_engine, start_engine
    from songmatch.models.aboutness import BackfillOptions

    config = load_config(args.config, settings=app_settings)
    backfill_defaults = config.get("backfill") or {}
    engine = await start_engine(build_engine(app_settings, config))

    if not engine.generator.is_available():
        print("Error: OPENAI_API_KEY is not set; aboutness generation needs it.", file=sys.stderr)
        return 1

    options = BackfillOptions(
        ids=args.ids,
        limit=args.limit,
        batch_size=args.batch_size or backfill_defaults.get("batch_size", 10),
        concurrency=args.concurrency or backfill_defaults.get("concurrency", 3),
        version=args.version or app_settings.aboutness_version,
        dry_run=args.dry_run,
        batch_prompts=args.batch_prompts,
    )
    report = await engine.backfill_job.run(options)

    mode = " (dry run)" if report.dry_run else ""
    print(f"Backfill complete{mode}:")
    print(f"  Scanned:               {report.scanned}")
    print(f"  Skipped (up to date):  {report.skipped}")
    print(f"  Generated:             {report.generated}")
    print(f"  Written:               {report.written}")
    print(f"  Forced low confidence: {report.forced_low_confidence}")
    print(f"  Failed:                {report.failed}")
    if report.failed_ids:
        print(f"  Failed ids: {', '.join(report.failed_ids)}")
    return 1 if report.failed else 0


async def _handle_stats(args: argparse.Namespace, app_settings: Settings) -> int:
    from songmatch.config.loader import load_config
    from songmatch.providers.song_store.sqlite_song_store import SQLiteSongStore

    config = load_config(args.config, settings=app_settings)
    store = SQLiteSongStore(
        db_path=(config.get("song_store") or {}).get("db_path", app_settings.song_db_path)
    )
    await store.initialize()
    counts = await store.count_songs()
    dimensions = await store.vector_dimensions()

    print(f"Songs:            {counts['songs']}")
    print(f"Aboutness rows:   {counts['aboutness']}")
    print(f"Vector dimensions: {', '.join(str(d) for d in sorted(dimensions)) or '-'}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the songmatch CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m songmatch.cli",
        description="Offline maintenance for the songmatch catalog.",
    )
    parser.add_argument(
        "--config",
        default="config/config.yaml",
        help="Path to the YAML config (default: config/config.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # -- backfill --
    backfill = subparsers.add_parser("backfill", help="Generate missing aboutness profiles")
    backfill.add_argument("--ids", type=_parse_ids, default=None, help="Comma-separated song ids")
    backfill.add_argument("--limit", type=_positive_int, default=None, help="Max songs to scan")
    backfill.add_argument(
        "--batch-size",
        type=_positive_int,
        default=None,
        dest="batch_size",
        help="Songs fetched per page (default: 10)",
    )
    backfill.add_argument(
        "--concurrency",
        type=_positive_int,
        default=None,
        help="Songs processed in parallel (default: 3)",
    )
    backfill.add_argument(
        "--version",
        type=_positive_int,
        default=None,
        help="Aboutness version to write (default: ABOUTNESS_VERSION)",
    )
    backfill.add_argument(
        "--dry-run",
        action="store_true",
        dest="dry_run",
        help="Generate and embed, but write nothing",
    )
    backfill.add_argument(
        "--batch-prompts",
        action="store_true",
        dest="batch_prompts",
        help="Ask for up to 10 songs per LLM call",
    )

    # -- stats --
    subparsers.add_parser("stats", help="Show catalog statistics")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """Parse arguments, configure logging and dispatch to a handler."""
    from songmatch.utils.logging import configure_logging

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    configure_logging(
        log_level=app_settings.log_level,
        json_output=(app_settings.app_env == "production"),
    )

    if args.command == "backfill":
        exit_code = asyncio.run(_handle_backfill(args, app_settings))
    elif args.command == "stats":
        exit_code = asyncio.run(_handle_stats(args, app_settings))
    else:
        parser.print_help()
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
