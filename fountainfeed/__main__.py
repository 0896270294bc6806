"""
Command-line front end: load the fountain data set and print a filtered list.

Usage:
    python -m fountainfeed [--refresh] [--search TEXT] [--district NAME]
                           [--usage people|people_and_pets] [--limit N] [--stats]

Examples:
    python -m fountainfeed                          # first 50 fountains (cache if valid)
    python -m fountainfeed --refresh                # ignore the cache, reload everything
    python -m fountainfeed -s centro --limit 10     # text search
    python -m fountainfeed --district RETIRO --usage people_and_pets
    python -m fountainfeed --stats                  # per-district statistics
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .config import EngineConfig
from .const import USAGE_CATEGORIES
from .district_stats import district_statistics, summarize
from .errors import FountainFeedError
from .list_filter import FilterCriteria, WindowedFilterEngine
from .loader import ProgressiveLoader


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="fountainfeed",
        description="Load Madrid's drinking fountains and list or summarize them.",
    )
    parser.add_argument('--cache-dir', type=str, default=None,
                        help='Directory for the persistent cache (default: ~/.cache)')
    parser.add_argument('--refresh', action='store_true',
                        help='Invalidate the cache and reload from the API')
    parser.add_argument('-s', '--search', type=str, default='',
                        help='Free-text search on district, neighborhood, status and coordinates')
    parser.add_argument('--district', type=str, default='',
                        help='Exact district name')
    parser.add_argument('--usage', choices=USAGE_CATEGORIES, default='',
                        help='Usage category')
    parser.add_argument('-n', '--limit', type=int, default=None,
                        help='Number of fountains to print (default: one page)')
    parser.add_argument('--stats', action='store_true',
                        help='Print per-district statistics instead of the list')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Debug logging')
    return parser.parse_args(argv)


def print_statistics(records) -> None:
    summary = summarize(records)
    print(f"{summary.total} fountains in {summary.districts} districts, "
          f"{summary.operational_percent}% operational, "
          f"{summary.people_and_pets} pet friendly")
    for stats in district_statistics(records):
        print(f"  {stats.district:<24} {stats.total:>5}  "
              f"operational {stats.operational_percent:>3}%  "
              f"pets {stats.people_and_pets_percent:>3}%")


def print_records(records) -> None:
    for record in records:
        print(f"{record.latitude:.6f},{record.longitude:.6f}  "
              f"{record.district} / {record.neighborhood}  [{record.status}] {record.usage}")


async def run(args: argparse.Namespace) -> int:
    config = EngineConfig.from_env(cache_dir=args.cache_dir)
    loader = ProgressiveLoader.from_config(config)
    engine = WindowedFilterEngine(config)
    try:
        if args.refresh:
            await loader.force_refresh()
        else:
            await loader.start()
        data = await loader.wait_until_loaded()
        if data.failed_pages:
            print(f"Warning: pages {sorted(data.failed_pages)} could not be loaded", file=sys.stderr)

        if args.stats:
            print_statistics(data.records)
            return 0

        engine.bind(loader.state)
        categorical = {"district": args.district, "usage": args.usage}
        engine.set_filter(FilterCriteria(text=args.search, categorical=categorical))
        await engine.wait_idle()

        while args.limit is not None and len(engine.visible_window) < args.limit and engine.has_more:
            await engine.load_more()
        visible = engine.visible_window
        if args.limit is not None:
            visible = visible[:args.limit]
        print_records(visible)
        print(f"{len(visible)} of {len(engine.all_matches)} matching fountains "
              f"({len(data.records)} loaded{', from cache' if data.is_from_cache else ''})")
        return 0
    except FountainFeedError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        await engine.close()
        await loader.shutdown()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if args.limit is not None and args.limit < 1:
        print("Error: limit must be at least 1")
        return 1
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 1


if __name__ == "__main__":
    sys.exit(main())
