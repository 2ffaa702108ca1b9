"""Single-page probe deciding whether a full crawl is warranted."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from .browser import Browser
from .config import CrawlConfig
from .extraction import PageExtractor
from .ratelimit import RateLimiter
from .store import JsonStore
from .waits import wait_for

logger = logging.getLogger(__name__)


@dataclass
class QuickCheckProbe:
    """Inspect the first listing page for identities missing from the store."""

    browser: Browser
    extractor: PageExtractor
    store: JsonStore
    limiter: RateLimiter
    config: CrawlConfig = field(default_factory=CrawlConfig)
    clock: Callable[[], float] = time.monotonic
    sleep: Callable[[float], None] = time.sleep

    def probe(self, query: str) -> bool:
        """Return True as soon as page 1 shows a listing not yet stored.

        Only page 1 is ever inspected; listings that appear solely on later
        pages are not detected. Raises ``WaitTimeout`` if the page never
        renders its listings.
        """
        url = self.extractor.listing_url(query, 1)
        logger.info("Checking if %s source was updated via %s", self.extractor.source, url)
        self.limiter.acquire()
        page = self.browser.open(url)
        try:
            wait_for(
                lambda: self.extractor.listing_ready(page.document()),
                self.config.wait_timeout_s,
                self.config.wait_poll_interval_s,
                description=f"listing content on {url}",
                clock=self.clock,
                sleep=self.sleep,
            )
            headers = self.extractor.listing_headers(page.document())
        finally:
            page.close()

        for header in headers:
            if header.identity not in self.store:
                logger.info("Found new data in source (%s)", header.identity)
                return True
        logger.info("No new data found on the first page (%d listing(s) known)", len(headers))
        return False
