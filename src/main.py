# src/main.py — v2
"""CLI entry point — ingest and cache commands.

Usage:
    lexingest ingest <page_url> [--cookie NAME=VALUE ...] [options]
    lexingest cache stats|clear|evict-expired
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from lexingest.version import __version__

if TYPE_CHECKING:
    from lexingest.config.settings import Settings

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    from pydantic import ValidationError

    from lexingest.config.settings import ConfigurationError, load_settings

    try:
        settings = load_settings()
    except (ConfigurationError, ValidationError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    _setup_logging(settings, args.verbose)

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="lexingest",
        description=f"lexingest v{__version__} — Legal case document ingestion",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- ingest ---
    p_ingest = subparsers.add_parser(
        "ingest", help="Discover and extract every document of a case",
    )
    p_ingest.add_argument("page_url", help="URL of the case page")
    p_ingest.add_argument(
        "--cookie", action="append", default=[], metavar="NAME=VALUE",
        help="Session cookie (repeatable)",
    )
    p_ingest.add_argument(
        "--header", action="append", default=[], metavar="NAME:VALUE",
        help="Extra request header (repeatable)",
    )
    p_ingest.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Write processed documents as JSON to this file",
    )
    p_ingest.add_argument(
        "--no-cache", action="store_true",
        help="Bypass the document cache",
    )
    p_ingest.set_defaults(func=_cmd_ingest)

    # --- cache ---
    p_cache = subparsers.add_parser("cache", help="Inspect or maintain the cache")
    p_cache.add_argument(
        "action", choices=["stats", "clear", "evict-expired"],
        help="Cache operation",
    )
    p_cache.set_defaults(func=_cmd_cache)

    return parser


async def _cmd_ingest(args: argparse.Namespace, settings: Settings) -> int:
    """Run one ingestion over an authenticated HTTP session."""
    import httpx

    from lexingest.cache.cache_factory import create_document_cache
    from lexingest.ingestion.orchestrator import IngestionOrchestrator, options_from_settings
    from lexingest.source.http_source import HttpSourceCollaborator

    cookies = _parse_pairs(args.cookie, "=")
    headers = _parse_pairs(args.header, ":")
    if cookies is None or headers is None:
        logger.error("Malformed --cookie or --header value")
        return 1

    options = options_from_settings(settings)
    if args.no_cache:
        options = options.model_copy(update={"cache_enabled": False})
    cache = None if args.no_cache else create_document_cache(settings)

    async with httpx.AsyncClient(cookies=cookies, headers=headers) as client:
        source = HttpSourceCollaborator(
            client, args.page_url, timeout_s=settings.navigation_timeout_s,
        )
        await source.load_page()

        orchestrator = IngestionOrchestrator(settings=settings, cache=cache)
        orchestrator.on_progress(
            lambda event: logger.info(
                "Progress %d/%d", event.processed, event.total,
            )
        )
        session = await orchestrator.run(source, options)

    if cache is not None:
        cache.store.close()

    stats = session.statistics()
    print(f"\nIngestion {session.status}:")
    print(f"  Documents:  {stats.total}")
    print(f"  Processed:  {stats.processed} ({stats.cached} cached)")
    print(f"  Skipped:    {stats.skipped}")
    print(f"  Errors:     {stats.errors}")
    print(f"  Duration:   {stats.elapsed_ms / 1000:.1f}s")
    for failure in session.failures:
        print(f"  ! {failure.document_id}: {failure.error}")

    if args.output:
        documents = [d.model_dump(mode="json") for d in session.sorted_documents()]
        args.output.write_text(
            json.dumps({"statistics": stats.model_dump(), "documents": documents},
                       ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        print(f"  Output:     {args.output}")
    return 0


async def _cmd_cache(args: argparse.Namespace, settings: Settings) -> int:
    """Cache maintenance."""
    from lexingest.cache.cache_factory import create_document_cache

    cache = create_document_cache(settings)
    try:
        if args.action == "stats":
            stats = await cache.stats()
            print(json.dumps(stats.model_dump(), indent=2))
        elif args.action == "clear":
            print(f"Removed {await cache.clear()} entries")
        else:
            print(f"Removed {await cache.evict_expired()} expired entries")
    finally:
        cache.store.close()
    return 0


def _parse_pairs(values: list[str], separator: str) -> dict[str, str] | None:
    pairs: dict[str, str] = {}
    for value in values:
        name, sep, rest = value.partition(separator)
        if not sep or not name.strip():
            return None
        pairs[name.strip()] = rest.strip()
    return pairs


def _setup_logging(settings: Settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from lexingest.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
