"""Crawl coordination: pagination, detail fetches and checkpointing."""

from __future__ import annotations

import datetime as dt
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence

from .browser import Browser, Page
from .config import CrawlConfig
from .errors import ExtractionError, PageLoadError, WaitTimeout
from .extraction import PageExtractor, validate_header
from .models import (
    CrawlStage,
    CrawlState,
    CrawlSummary,
    ListingDetail,
    ListingHeader,
    RentalRecord,
)
from .notifications import LoggingNotifier, Notifier
from .quickcheck import QuickCheckProbe
from .ratelimit import RateLimiter
from .reconcile import IMPORTANT_FIELDS, merge
from .store import JsonStore
from .waits import wait_for

logger = logging.getLogger(__name__)

_AUTH_REQUIRED = "auth_required"
_REVEAL_AVAILABLE = "reveal_available"


def utc_now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


@dataclass
class CrawlCoordinator:
    """Drive one source's paginated feed into the store."""

    browser: Browser
    extractor: PageExtractor
    store: JsonStore
    config: CrawlConfig = field(default_factory=CrawlConfig)
    notifier: Optional[Notifier] = None
    limiter: Optional[RateLimiter] = None
    now: Callable[[], str] = utc_now
    clock: Callable[[], float] = time.monotonic
    sleep: Callable[[float], None] = time.sleep

    def __post_init__(self) -> None:
        if self.limiter is None:
            self.limiter = RateLimiter(
                self.config.page_interval_s, clock=self.clock, sleep=self.sleep
            )
        if self.notifier is None:
            self.notifier = LoggingNotifier()
        self.state = CrawlState()

    @property
    def important_fields(self) -> Sequence[str]:
        return getattr(self.extractor, "important_fields", IMPORTANT_FIELDS)

    def run(self, query: str) -> CrawlSummary:
        """Crawl every listing page for ``query`` and reconcile into the store.

        Raises ``ExtractionError`` (after moving to the aborted stage) when a
        listing header lacks a required field.
        """
        self.state = CrawlState()
        summary = CrawlSummary(
            source=self.extractor.source,
            query=query,
            started_at=self.now(),
        )
        logger.info("Starting %s crawl for %r", self.extractor.source, query)

        try:
            if self.config.quick_check and not self._quick_check(query):
                self._finish(summary, CrawlStage.DONE)
                return summary

            while self.state.current_page <= self.state.total_pages:
                self.state.stage = CrawlStage.LISTING_PAGE
                headers = self._fetch_listing_page(query, summary)
                if headers is None:
                    break
                if not headers:
                    logger.info("Page %d has no listings; stopping", self.state.current_page)
                    break
                for header in headers:
                    self._process_header(header, summary)
                self.state.current_page += 1
        except ExtractionError as exc:
            logger.error("Aborting %s crawl: %s", self.extractor.source, exc)
            self._finish(summary, CrawlStage.ABORTED)
            raise

        self._finish(summary, CrawlStage.DONE)
        logger.info(
            "Crawl finished: %d page(s), %d record(s) processed (%d new), "
            "%d skipped, %d failed",
            summary.pages_fetched,
            summary.records_processed,
            len(summary.new_identities),
            summary.records_skipped,
            summary.listings_failed,
        )
        return summary

    def _finish(self, summary: CrawlSummary, stage: CrawlStage) -> None:
        self.state.stage = stage
        summary.stage = stage

    def _quick_check(self, query: str) -> bool:
        self.state.stage = CrawlStage.QUICK_CHECKING
        probe = QuickCheckProbe(
            browser=self.browser,
            extractor=self.extractor,
            store=self.store,
            limiter=self.limiter,
            config=self.config,
            clock=self.clock,
            sleep=self.sleep,
        )
        try:
            passed = probe.probe(query)
        except (PageLoadError, WaitTimeout) as exc:
            logger.warning("Quick check failed (%s); falling back to a full crawl", exc)
            passed = True
        self.state.quick_check_passed = passed
        return passed

    def _open(self, url: str) -> Page:
        self.limiter.acquire()
        return self.browser.open(url)

    def _fetch_listing_page(
        self,
        query: str,
        summary: CrawlSummary,
    ) -> Optional[List[ListingHeader]]:
        page_number = self.state.current_page
        url = self.extractor.listing_url(query, page_number)
        logger.info("Processing %s", url)
        try:
            page = self._open(url)
        except PageLoadError as exc:
            logger.warning("Listing page fetch failed for %s: %s", url, exc)
            return None

        try:
            try:
                self._wait(
                    lambda: self.extractor.listing_ready(page.document()),
                    f"listing content on {url}",
                )
                document = page.document()
            except (PageLoadError, WaitTimeout) as exc:
                logger.warning("Listing page %s could not be read: %s", url, exc)
                return None
            total_pages = self.extractor.total_page_count(document)
            headers = self.extractor.listing_headers(document)
        finally:
            page.close()

        summary.pages_fetched += 1
        if total_pages is not None and total_pages != self.state.total_pages:
            logger.debug(
                "Total page count revised from %d to %d", self.state.total_pages, total_pages
            )
            self.state.total_pages = total_pages
        self.notifier.on_page_progress(page_number, self.state.total_pages)

        for header in headers:
            validate_header(header, self.extractor.required_header_fields)
        return headers

    def _process_header(self, header: ListingHeader, summary: CrawlSummary) -> None:
        identity = header.identity
        if self.config.skip_existing_records and identity in self.store:
            logger.info("Found offer %s in store, skipping to next offer", identity)
            summary.records_skipped += 1
            return

        detail = header.detail
        if detail is None:
            self.state.stage = CrawlStage.DETAIL_FETCH
            detail = self._fetch_detail(header)
            self.state.stage = CrawlStage.LISTING_PAGE
            if detail is None:
                summary.listings_failed += 1
                return

        incoming = RentalRecord.from_listing(self.extractor.source, header, detail)
        result = merge(self.store, identity, incoming, self.now(), self.important_fields)
        self.store.set(identity, result.record)
        self.state.records_processed += 1
        summary.records_processed += 1
        if result.is_new:
            summary.new_identities.append(identity)
        self.notifier.on_record_processed(identity, result.record)

        if self.state.records_processed % self.config.flush_every == 0:
            logger.info("Saving store after %d record(s)", self.state.records_processed)
            self.store.save()
            summary.flushes += 1

    def _fetch_detail(self, header: ListingHeader) -> Optional[ListingDetail]:
        logger.info("Processing %s", header.url)
        try:
            page = self._open(header.url)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to load %s; skipping to next offer", header.url)
            return None

        try:
            return self._read_detail(page, header)
        except WaitTimeout as exc:
            logger.warning("%s; skipping offer %s", exc, header.identity)
            return None
        except Exception:  # noqa: BLE001
            logger.exception("Failed to extract %s; skipping to next offer", header.url)
            return None
        finally:
            page.close()

    def _read_detail(self, page: Page, header: ListingHeader) -> ListingDetail:
        phone: Optional[str] = None
        outcome = self._wait(
            lambda: self._reveal_state(page.document()),
            f"contact reveal control on {header.url}",
        )
        if outcome == _AUTH_REQUIRED:
            logger.info("Authentication required for contact of %s; leaving it unset", header.identity)
        else:
            self.extractor.trigger_reveal(page)
            phone = self._wait(
                lambda: self.extractor.revealed_contact(page.document()),
                f"revealed contact on {header.url}",
            )
        return self.extractor.detail(page.document(), phone)

    def _reveal_state(self, document: Any) -> Optional[str]:
        if self.extractor.auth_required(document):
            return _AUTH_REQUIRED
        if self.extractor.reveal_is_available(document):
            return _REVEAL_AVAILABLE
        return None

    def _wait(self, probe: Callable[[], Any], description: str) -> Any:
        return wait_for(
            probe,
            self.config.wait_timeout_s,
            self.config.wait_poll_interval_s,
            description=description,
            clock=self.clock,
            sleep=self.sleep,
        )
