"""
Command-line interface for bangumi-sync.

Usage:
    bangumi-sync watch                    # Poll all enabled series forever
    bangumi-sync watch --once             # Run a single poll cycle
    bangumi-sync watch --once --dry-run   # Preview without side effects
    bangumi-sync watch --once --output-json
    bangumi-sync parse "<release title>"  # Show how a title is parsed
    bangumi-sync series list              # List tracked series
    bangumi-sync series info 3330         # Show one series
    bangumi-sync series add <rss_url>     # Track a series by its Mikan RSS URL
    bangumi-sync series remove 3330
    bangumi-sync series enable 3330
    bangumi-sync series disable 3330
    bangumi-sync series exclude 3330 "1080p,CHT"   # or "none" to clear
"""

import argparse
import json
import logging
import sys

from bangumi_sync.config import get_config
from bangumi_sync.errors import (
    BangumiSyncError,
    SeriesExistsError,
    SeriesNotFoundError,
    TitleParseError,
)


def _open_store(config):
    from bangumi_sync.models.database import SeriesStore

    store = SeriesStore(config.db_path)
    store.initialize()
    return store


def cmd_watch(args):
    """Poll release feeds and file new episodes."""
    config = get_config()

    from bangumi_sync.engine.qbittorrent import QbittorrentClient
    from bangumi_sync.ingestion.pipeline import IngestionPipeline, run_forever
    from bangumi_sync.notifications import get_notifier

    pipeline = IngestionPipeline.from_config(
        config,
        store=_open_store(config),
        engine=QbittorrentClient.from_config(config),
        notifier=get_notifier(config),
    )

    if not args.once:
        try:
            run_forever(pipeline, config.rss_interval, dry_run=args.dry_run)
        except KeyboardInterrupt:
            print("Stopped.")
        return

    result = pipeline.run_cycle(dry_run=args.dry_run)

    # JSON output mode (for automation)
    if args.output_json:
        print(result.to_json())
        sys.exit(1 if result.errors else 0)

    for series in result.series:
        for release in series.completed:
            print(f"  {series.title}: {release.save_name}")

    if result.completed_count:
        verb = "Would file" if args.dry_run else "Filed"
        print(f"{verb} {result.completed_count} episode(s).")
    else:
        print("No new episodes found.")

    if result.errors:
        for err in result.errors:
            print(f"ERROR: {err}")
        sys.exit(1)


def cmd_parse(args):
    """Parse a release title and print the result."""
    from bangumi_sync.parsing import parse_title

    try:
        result = parse_title(args.title)
    except TitleParseError as exc:
        print(f"ERROR: {exc}")
        sys.exit(1)
    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))


# ---------------------------------------------------------------------------
#  Series subcommands
# ---------------------------------------------------------------------------

def cmd_series_list(args):
    """List tracked series."""
    store = _open_store(get_config())
    records = store.list_all()
    if not records:
        print("No series tracked.")
        return
    for record in records:
        state = "enabled" if record.enabled else "disabled"
        print(f"{record.id}: {record.title} ({state})")


def cmd_series_info(args):
    """Show one tracked series."""
    store = _open_store(get_config())
    record = store.get(args.id)
    if record is None:
        print(f"ERROR: Series {args.id} not found.")
        sys.exit(1)
    print(f"id: {record.id}")
    print(f"title: {record.title}")
    print(f"weekday: {record.weekday}")
    print(f"poster: {record.poster_url}")
    print(f"url: {record.rss_url}")
    print(f"enabled: {record.enabled}")
    print(f"exclude: {', '.join(record.exclude_words) or '-'}")
    print(f"downloaded: {len(record.downloaded_hashes)}")


def cmd_series_add(args):
    """Track a series given its Mikan RSS URL."""
    config = get_config()

    from bangumi_sync.models.entities import SeriesRecord
    from bangumi_sync.scraper import MikanScraper

    scraper = MikanScraper(proxy_url=config.proxy_url, timeout=config.request_timeout)
    try:
        info = scraper.from_rss_url(args.rss_url)
    except BangumiSyncError as exc:
        print(f"ERROR: {exc}")
        sys.exit(1)

    record = SeriesRecord(
        id=info.id,
        title=info.title,
        weekday=info.weekday,
        poster_url=info.poster_url,
        rss_url=args.rss_url,
        enabled=True,
        exclude_words=tuple(config.exclude_words),
    )
    try:
        _open_store(config).insert(record)
    except SeriesExistsError:
        print(f"Series {record.id} ({record.title}) is already tracked.")
        sys.exit(1)
    print(f"Added {record.id}: {record.title}")


def _mutate(args, action, **changes):
    store = _open_store(get_config())
    try:
        if action == "remove":
            store.delete(args.id)
        else:
            store.update(args.id, **changes)
    except SeriesNotFoundError:
        print(f"ERROR: Series {args.id} not found.")
        sys.exit(1)
    print(f"Series {args.id} {action}d.")


def cmd_series_remove(args):
    """Stop tracking a series."""
    _mutate(args, "remove")


def cmd_series_enable(args):
    """Resume polling a series."""
    _mutate(args, "enable", enabled=True)


def cmd_series_disable(args):
    """Pause polling a series."""
    _mutate(args, "disable", enabled=False)


def cmd_series_exclude(args):
    """Replace the exclusion words of a series."""
    if args.words.strip().lower() == "none":
        words = []
    else:
        words = [w.strip() for w in args.words.split(",") if w.strip()]
    _mutate(args, "update", exclude_words=words)


def main():
    parser = argparse.ArgumentParser(
        prog="bangumi-sync",
        description="Follow release feeds and file new episodes into a library",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # watch
    sub_watch = subparsers.add_parser("watch", help="Poll release feeds")
    sub_watch.add_argument(
        "--once",
        action="store_true",
        default=False,
        help="Run a single poll cycle and exit",
    )
    sub_watch.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Show what would happen without taking action",
    )
    sub_watch.add_argument(
        "--output-json",
        action="store_true",
        default=False,
        help="Output the cycle result as JSON (with --once)",
    )
    sub_watch.set_defaults(func=cmd_watch)

    # parse
    sub_parse = subparsers.add_parser("parse", help="Parse a release title")
    sub_parse.add_argument("title", help="Release title")
    sub_parse.set_defaults(func=cmd_parse)

    # series -- subcommand group
    sub_series = subparsers.add_parser(
        "series",
        help="Tracked series: list, info, add, remove, enable, disable, exclude",
    )
    series_subparsers = sub_series.add_subparsers(
        dest="series_command",
        help="Series subcommands",
    )

    sub_list = series_subparsers.add_parser("list", help="List tracked series")
    sub_list.set_defaults(func=cmd_series_list)

    sub_info = series_subparsers.add_parser("info", help="Show one series")
    sub_info.add_argument("id", type=int, help="Series id")
    sub_info.set_defaults(func=cmd_series_info)

    sub_add = series_subparsers.add_parser("add", help="Track a series by RSS URL")
    sub_add.add_argument("rss_url", help="Mikan RSS URL containing bangumiId=")
    sub_add.set_defaults(func=cmd_series_add)

    for name, func, help_text in (
        ("remove", cmd_series_remove, "Stop tracking a series"),
        ("enable", cmd_series_enable, "Resume polling a series"),
        ("disable", cmd_series_disable, "Pause polling a series"),
    ):
        sub = series_subparsers.add_parser(name, help=help_text)
        sub.add_argument("id", type=int, help="Series id")
        sub.set_defaults(func=func)

    sub_exclude = series_subparsers.add_parser(
        "exclude",
        help="Replace the exclusion words of a series",
    )
    sub_exclude.add_argument("id", type=int, help="Series id")
    sub_exclude.add_argument("words", help='Comma-separated words, or "none" to clear')
    sub_exclude.set_defaults(func=cmd_series_exclude)

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        sys.exit(0)

    # Handle series subcommand group
    if args.command == "series":
        if not hasattr(args, "series_command") or args.series_command is None:
            sub_series.print_help()
            sys.exit(0)

    logging.basicConfig(
        level=get_config().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args.func(args)


if __name__ == "__main__":
    main()
