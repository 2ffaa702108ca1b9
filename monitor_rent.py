"""CLI entrypoint for the rentwatcher scraper."""

from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Callable

from rentwatcher.browser import Browser, PlaywrightBrowser
from rentwatcher.config import DEFAULT_DBFILE, DEFAULT_LOGFILE, CrawlConfig
from rentwatcher.coordinator import CrawlCoordinator
from rentwatcher.errors import ExtractionError, StoreLoadError, UnknownSourceError
from rentwatcher.export import export_records_to_xlsx
from rentwatcher.notifications import build_notifier_from_env
from rentwatcher.sources import available_sources, get_extractor
from rentwatcher.store import JsonStore, resolve_store_path

logger = logging.getLogger(__name__)

BrowserFactory = Callable[[], Browser]


def configure_logging(verbose: bool, logfile: Path | None = None) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(logfile, encoding="utf-8"))
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rentwatcher",
        description="Rental property scraper for OLX and Airbnb",
    )
    parser.add_argument(
        "-l",
        "--logfile",
        default=os.getenv("RENTWATCHER_LOGFILE", DEFAULT_LOGFILE),
        help="file to write logs to (overrides RENTWATCHER_LOGFILE env var)",
    )
    parser.add_argument(
        "--dbfile",
        default=os.getenv("RENTWATCHER_DBFILE", DEFAULT_DBFILE),
        help="file to store data in (overrides RENTWATCHER_DBFILE env var)",
    )
    parser.add_argument("--verbose", action="store_true", help="enable debug logging")

    subparsers = parser.add_subparsers(dest="command")

    scrape = subparsers.add_parser("scrape", help="scrape new data from sites into the store")
    scrape.add_argument("source", help="site to scrape data from")
    scrape.add_argument("city", help="city of interest")
    scrape.add_argument(
        "-qc",
        "--quick-check",
        action="store_true",
        help="quick check for updates, don't scrape if data wasn't updated",
    )
    scrape.add_argument(
        "--no-skip-existing",
        action="store_true",
        help="re-scrape listings that are already stored",
    )

    digest = subparsers.add_parser("digest", help="return latest rental records")
    digest.add_argument("n", type=int, help="number of records to return")
    digest.add_argument("--xlsx", type=Path, help="also export the records to this workbook")

    subparsers.add_parser("sources", help="list all available sources")
    subparsers.add_parser("clear", help="clear all data and logs")
    return parser


def print_sources() -> None:
    print("Available sources:")
    for name in available_sources():
        print(name)


def _raise_system_exit(signum, frame) -> None:
    raise SystemExit(128 + signum)


def scrape(args: argparse.Namespace, browser_factory: BrowserFactory) -> int:
    try:
        extractor = get_extractor(args.source)
    except UnknownSourceError as exc:
        print(exc, file=sys.stderr)
        print("", file=sys.stderr)
        print_sources()
        return 2

    store = JsonStore(path=resolve_store_path(args.dbfile))
    try:
        store.load()
    except StoreLoadError as exc:
        logger.error("%s", exc)
        return 1

    config = CrawlConfig.from_env(
        quick_check=args.quick_check,
        skip_existing_records=not args.no_skip_existing,
    )
    notifier = build_notifier_from_env(prefix=f"{extractor.source}: ")
    previous_handler = signal.signal(signal.SIGTERM, _raise_system_exit)
    browser = browser_factory()
    try:
        coordinator = CrawlCoordinator(
            browser=browser,
            extractor=extractor,
            store=store,
            config=config,
            notifier=notifier,
        )
        summary = coordinator.run(args.city)
    except ExtractionError:
        return 1
    finally:
        logger.info("Saving store to %s", store.path)
        store.save()
        try:
            browser.close()
        except Exception:  # noqa: BLE001
            logger.exception("Failed to close browser")
        signal.signal(signal.SIGTERM, previous_handler)

    if summary.new_identities:
        logger.info("New listings detected (%d):", len(summary.new_identities))
        for identity in summary.new_identities:
            record = store.get(identity)
            if record is not None:
                logger.info("%s | %s | %s | %s", identity, record.title, record.price, record.url)
    else:
        logger.info("No new listings detected in this run.")
    return 0


def digest(args: argparse.Namespace) -> int:
    store = JsonStore(path=resolve_store_path(args.dbfile))
    try:
        store.load()
    except StoreLoadError as exc:
        logger.error("%s", exc)
        return 1

    records = store.latest(args.n)
    for record in records:
        print(f"[{record.first_scraped_at}] {record.url}")

    if args.xlsx:
        count = export_records_to_xlsx(records, args.xlsx)
        logger.info("Exported %d record(s) to %s", count, args.xlsx)
    return 0


def clear(args: argparse.Namespace) -> int:
    store = JsonStore(path=resolve_store_path(args.dbfile))
    if store.clear():
        logger.info("Removed %s", store.path)
    logfile = resolve_store_path(args.logfile)
    if logfile.exists():
        logfile.unlink()
        logger.info("Removed %s", logfile)
    return 0


def main(
    argv: list[str] | None = None,
    browser_factory: BrowserFactory = PlaywrightBrowser,
) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "clear":
        configure_logging(args.verbose)
        return clear(args)

    configure_logging(args.verbose, resolve_store_path(args.logfile))

    if args.command == "scrape":
        try:
            return scrape(args, browser_factory)
        except KeyboardInterrupt:
            logger.info("Interrupted; store was saved")
            return 130
    if args.command == "digest":
        return digest(args)
    if args.command == "sources":
        print_sources()
        return 0

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
