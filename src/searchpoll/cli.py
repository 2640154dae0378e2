"""CLI entry point for searchpoll."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from searchpoll.config.settings import Settings
    from searchpoll.models.filters import FilterRequest
    from searchpoll.models.session import SearchState


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="searchpoll",
        description="searchpoll — Poll a flight search until its results settle",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"searchpoll {_get_version()}",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    watch = subparsers.add_parser("watch", help="Poll a search id and print the settled results")
    watch.add_argument("search_id", help="Opaque search id returned by the search API")
    watch.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to YAML configuration file",
    )
    watch.add_argument(
        "--filters",
        "-f",
        type=str,
        default=None,
        help='Filter request as JSON, e.g. \'{"stop_count_max": 0}\'',
    )
    watch.add_argument(
        "--pages",
        "-p",
        type=int,
        default=0,
        help="Extra pages to load after polling settles",
    )
    watch.add_argument(
        "--log-level",
        type=str,
        choices=["debug", "info", "warning", "error"],
        default=None,
        help="Log level (overrides config)",
    )
    watch.add_argument(
        "--log-format",
        type=str,
        choices=["json", "console"],
        default=None,
        help="Log format (overrides config)",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    from searchpoll.config.settings import Settings
    from searchpoll.models.filters import FilterRequest
    from searchpoll.observability.logging import setup_logging

    if args.config:
        config_path = Path(args.config)
        if not config_path.exists():
            print(f"Error: Config file not found: {config_path}", file=sys.stderr)
            sys.exit(1)
        settings = Settings.from_yaml(config_path)
    else:
        settings = Settings()

    if args.log_level:
        settings.observability.log_level = args.log_level
    if args.log_format:
        settings.observability.log_format = args.log_format
    setup_logging(settings.observability)

    filters: FilterRequest | None = None
    if args.filters:
        try:
            filters = FilterRequest.model_validate_json(args.filters)
        except ValueError as e:
            print(f"Error: Invalid filters: {e}", file=sys.stderr)
            sys.exit(2)

    state = asyncio.run(watch(settings, args.search_id, filters=filters, pages=args.pages))
    print(json.dumps(summarize(state), indent=2, ensure_ascii=False))
    if state.error_message:
        sys.exit(1)


async def watch(
    settings: Settings,
    search_id: str,
    *,
    filters: FilterRequest | None = None,
    pages: int = 0,
) -> SearchState:
    """Poll until the primary poll settles, then load extra pages."""
    from searchpoll.core.engine import SearchEngine

    async with SearchEngine(settings) as engine:
        engine.start_search(search_id)
        state = await engine.wait()
        if filters is not None and filters.has_filters() and not state.error_message:
            engine.apply_filters(filters)
            state = await engine.wait()
        for _ in range(pages):
            if not await engine.load_more():
                break
        return engine.state


def summarize(state: SearchState) -> dict[str, Any]:
    """Compact JSON-friendly view of a state snapshot."""
    return {
        "search_id": state.search_id,
        "phase": state.phase.value,
        "results": len(state.results),
        "total_results_count": state.total_results_count,
        "is_cache_complete": state.is_cache_complete,
        "has_more_results": state.has_more_results,
        "is_filtered": state.is_filtered,
        "poll_count": state.poll_count,
        "error_message": state.error_message,
        "top": [
            {"id": item.id, "price": item.price, "duration": item.duration}
            for item in state.results[:5]
        ],
    }


def _get_version() -> str:
    """Get the package version."""
    try:
        from searchpoll import __version__

        return __version__
    except ImportError:
        return "unknown"


if __name__ == "__main__":
    main()
