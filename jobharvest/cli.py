"""
Command-line interface for JobHarvest.

Usage:
    python -m jobharvest sources
    python -m jobharvest probe WeWorkRemotely
    python -m jobharvest scrape --source all --limit 50 --query python --remote
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from jobharvest.errors import HarvestError
from jobharvest.models import CrawlConfig


def _common_options() -> argparse.ArgumentParser:
    """Options accepted after every subcommand."""
    common = argparse.ArgumentParser(add_help=False)

    # Behavior
    common.add_argument(
        "--concurrency", "-c",
        type=int,
        default=10,
        help="Max concurrent requests (default: 10)",
    )
    common.add_argument(
        "--timeout",
        type=float,
        default=120.0,
        help="Overall scrape timeout in seconds (default: 120)",
    )
    common.add_argument(
        "--threads",
        action="store_true",
        help="Parse on a thread pool instead of worker processes",
    )
    common.add_argument(
        "--json",
        action="store_true",
        help="Print raw JSON instead of a summary",
    )

    # Verbosity
    common.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Print progress messages",
    )
    common.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress all output except errors",
    )
    return common


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="jobharvest",
        description="Rate-limited job listing crawler with a tiered cache",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List configured sources
  python -m jobharvest sources

  # Find out which technique works for a source
  python -m jobharvest probe LinkedIn

  # Scrape everything, keep remote Python jobs
  python -m jobharvest scrape --query python --remote --limit 100

  # Aggregate statistics as JSON
  python -m jobharvest stats --json
""",
    )
    common = _common_options()

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("sources", parents=[common], help="List configured job sources")

    probe = sub.add_parser("probe", parents=[common], help="Test whether a source can be scraped")
    probe.add_argument("site", help="Source name (case-insensitive)")

    scrape = sub.add_parser("scrape", parents=[common], help="Scrape jobs")
    scrape.add_argument(
        "--source", "-s",
        default="all",
        help="Source name, or 'all' (default: all)",
    )
    scrape.add_argument(
        "--limit", "-n",
        type=int,
        default=1000,
        help="Max jobs to return (default: 1000)",
    )
    scrape.add_argument("--query", default=None, help="Substring filter on title, company, description")
    scrape.add_argument("--location", "-l", default=None, help="Substring filter on location")
    scrape.add_argument("--remote", "-r", action="store_true", help="Only jobs whose location mentions remote")

    sub.add_parser("stats", parents=[common], help="Print aggregate job statistics")

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> CrawlConfig:
    """Build CrawlConfig from parsed arguments."""
    return CrawlConfig(
        max_concurrent_requests=args.concurrency,
        scrape_timeout_s=args.timeout,
        parser_pool="thread" if args.threads else "process",
    )


def configure_logging(args: argparse.Namespace) -> None:
    if args.quiet:
        level = logging.ERROR
    elif args.verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _print_json(payload) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


async def async_main(args: argparse.Namespace, service=None) -> int:
    """Async entry point. Builds a service from args unless one is given."""
    from jobharvest.service import HarvestService

    if service is None:
        service = HarvestService.create(build_config(args))

    async with service:
        try:
            if args.command == "sources":
                sources = service.list_sources()
                if args.json:
                    _print_json(sources)
                else:
                    for s in sources:
                        print(f"  {s['name']:<28} {s['url']}")

            elif args.command == "probe":
                result = await service.probe_scrapeability(args.site)
                if args.json:
                    _print_json(result.to_dict())
                elif result.scrapable:
                    print(f"{args.site}: scrapable via {result.technique.value} ({result.job_count} sample jobs)")
                else:
                    print(f"{args.site}: not scrapable ({result.error})")

            elif args.command == "scrape":
                result = await service.scrape(
                    source=args.source,
                    limit=args.limit,
                    query=args.query,
                    location=args.location,
                    remote=args.remote or None,
                )
                if args.json:
                    _print_json(result.to_dict())
                else:
                    for job in result.jobs:
                        print(f"  [{job.source}] {job.title} | {job.company} | {job.location}")
                        print(f"      {job.url}")
                    if not args.quiet:
                        print()
                        print(f"  Jobs: {len(result.jobs)} of {result.total_jobs} in {result.time_taken:.2f}s")

            elif args.command == "stats":
                stats = (await service.job_stats())["stats"]
                if args.json:
                    _print_json(stats)
                else:
                    print(f"  Total jobs:  {stats['totalJobs']}")
                    print(f"  Remote jobs: {stats['remoteJobs']}")
                    print("  By source:")
                    for row in stats["bySource"]:
                        print(f"    {row['name']:<28} {row['count']}")

            return 0

        except KeyboardInterrupt:
            if not args.quiet:
                print("\nInterrupted by user")
            return 130

        except HarvestError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    configure_logging(args)
    return asyncio.run(async_main(args))


if __name__ == "__main__":
    sys.exit(main())
