"""Hotel search workflow - drive the search form in a real browser.

USAGE:
    uv run python workflows/search_hotels.py search --destination "Da Nang" \
        --check-in 2026-12-01 --check-out 2026-12-05 --rooms 2 --adults 3
    uv run python workflows/search_hotels.py search --destination "Da Nang" --weekday friday --nights 3 \
        --sort "Lowest price first"
    uv run python workflows/search_hotels.py scenarios --file scenarios.json
    uv run python workflows/search_hotels.py scenarios --file scenarios.json --id TC01
    uv run python workflows/search_hotels.py list --file scenarios.json

Exit codes: 0 every search converged, 1 a search fell back or failed,
2 invalid input.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import asyncio
import argparse
from datetime import date
from typing import List, Optional

from dotenv import load_dotenv
from loguru import logger

from lib.booking.models import (
    Occupancy,
    SearchReport,
    SearchRequest,
    flexible_date_range,
    get_scenario,
    load_scenarios,
    parse_weekday,
)
from services.search.config import SearchConfig
from services.search.service import Service

EXIT_OK = 0
EXIT_DEGRADED = 1
EXIT_INVALID = 2


def setup_logging(debug: bool = False, log_file: Optional[str] = None):
    """Configure loguru logging."""
    logger.remove()

    # Console: INFO by default, DEBUG if flag set
    log_level = "DEBUG" if debug else "INFO"
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level=log_level,
        colorize=True,
    )

    # File: always DEBUG
    if log_file:
        logger.add(
            log_file,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}",
            level="DEBUG",
            rotation="10 MB",
        )


def request_from_args(args: argparse.Namespace) -> SearchRequest:
    """Build a SearchRequest from `search` arguments.

    Raises:
        ValueError: On missing or inconsistent dates or occupancy.
    """
    if args.weekday:
        check_in, check_out = flexible_date_range(parse_weekday(args.weekday), args.nights)
    elif args.check_in and args.check_out:
        check_in, check_out = args.check_in, args.check_out
    else:
        raise ValueError("Give --check-in and --check-out, or --weekday")

    return SearchRequest(
        name="adhoc",
        destination=args.destination,
        check_in=check_in,
        check_out=check_out,
        occupancy=Occupancy(rooms=args.rooms, adults=args.adults, children=args.children),
        sort_by=args.sort,
    )


def requests_from_args(args: argparse.Namespace) -> List[SearchRequest]:
    if args.command == "search":
        return [request_from_args(args)]
    if args.id:
        return [get_scenario(args.file, args.id)]
    return list(load_scenarios(args.file).values())


def exit_code(report: SearchReport) -> int:
    return EXIT_OK if report.all_converged else EXIT_DEGRADED


def log_report(report: SearchReport) -> None:
    logger.info("=" * 60)
    logger.info("SEARCH RESULTS")
    logger.info("=" * 60)
    for outcome in report.outcomes:
        if outcome.converged:
            logger.info(outcome.summary())
        else:
            logger.warning(outcome.summary())
    logger.info(f"Converged: {report.converged}/{report.total}")


def list_scenarios(path: str) -> None:
    for scenario_id, request in load_scenarios(path).items():
        logger.info(
            f"{scenario_id}: {request.destination} {request.check_in} -> {request.check_out}, "
            f"{request.occupancy}" + (f" - {request.description}" if request.description else "")
        )


async def run_searches(requests: List[SearchRequest], config: SearchConfig) -> SearchReport:
    return await Service(config).run_scenarios(requests)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Hotel search form automation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument("--debug", action="store_true", help="Debug logging")
    parser.add_argument("--log-file", help="Also write DEBUG logs to this file")
    subparsers = parser.add_subparsers(dest="command")

    search_parser = subparsers.add_parser("search")
    search_parser.add_argument("--destination", "-d", required=True)
    search_parser.add_argument("--check-in", type=date.fromisoformat)
    search_parser.add_argument("--check-out", type=date.fromisoformat)
    search_parser.add_argument("--weekday", help="Check in on the next given weekday")
    search_parser.add_argument("--nights", type=int, default=1)
    search_parser.add_argument("--rooms", type=int, default=1)
    search_parser.add_argument("--adults", type=int, default=2)
    search_parser.add_argument("--children", type=int, default=0)
    search_parser.add_argument("--sort", help="Sort results, e.g. \"Lowest price first\"")

    scenarios_parser = subparsers.add_parser("scenarios")
    scenarios_parser.add_argument("--file", "-f", required=True)
    scenarios_parser.add_argument("--id", help="Run a single scenario")

    list_parser = subparsers.add_parser("list")
    list_parser.add_argument("--file", "-f", required=True)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(debug=args.debug, log_file=args.log_file)

    if args.command is None:
        parser.print_help()
        return EXIT_INVALID

    try:
        if args.command == "list":
            list_scenarios(args.file)
            return EXIT_OK
        requests = requests_from_args(args)
        config = SearchConfig.from_env(headless=False if args.headed else None)
    except ValueError as e:
        logger.error(str(e))
        return EXIT_INVALID

    report = asyncio.run(run_searches(requests, config))
    log_report(report)
    return exit_code(report)


if __name__ == "__main__":
    sys.exit(main())
