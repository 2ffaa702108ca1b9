"""Page rendering layer that turns a URL into a navigable document."""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from bs4 import BeautifulSoup

from .errors import PageLoadError

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64; rv:128.0) "
    "Gecko/20100101 Firefox/128.0"
)
NAVIGATION_TIMEOUT_MS = 30_000


class Page(Protocol):
    """A loaded page whose document may change after interaction."""

    url: str

    def document(self) -> Any:
        """Return a snapshot of the current document."""
        ...

    def click(self, selector: str) -> None:
        ...

    def close(self) -> None:
        ...


class Browser(Protocol):
    """Protocol defining the page-loading contract used by the crawler."""

    def open(self, url: str) -> Page:
        ...

    def close(self) -> None:
        ...


class PlaywrightPage:
    """Playwright page exposing BeautifulSoup snapshots of its DOM."""

    def __init__(self, page: Any, url: str) -> None:
        self._page = page
        self.url = url

    def document(self) -> BeautifulSoup:
        from playwright.sync_api import Error as PlaywrightError

        try:
            html = self._page.content()
        except PlaywrightError as exc:
            raise PageLoadError(f"Cannot read {self.url}: {exc}") from exc
        return BeautifulSoup(html, "html.parser")

    def click(self, selector: str) -> None:
        self._page.click(selector)

    def close(self) -> None:
        self._page.close()


class PlaywrightBrowser:
    """Headless Firefox driven through Playwright's sync API."""

    def __init__(self, *, headless: bool = True,
                 navigation_timeout_ms: int = NAVIGATION_TIMEOUT_MS) -> None:
        self.headless = headless
        self.navigation_timeout_ms = navigation_timeout_ms
        self._playwright: Optional[Any] = None
        self._browser: Optional[Any] = None

    def __enter__(self) -> "PlaywrightBrowser":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def start(self) -> None:
        if self._browser is not None:
            return
        from playwright.sync_api import sync_playwright

        logger.debug("Launching headless Firefox")
        self._playwright = sync_playwright().start()
        self._browser = self._playwright.firefox.launch(headless=self.headless)

    def open(self, url: str) -> PlaywrightPage:
        from playwright.sync_api import Error as PlaywrightError

        self.start()
        page = self._browser.new_page(user_agent=USER_AGENT, accept_downloads=False)
        try:
            page.goto(url, wait_until="domcontentloaded", timeout=self.navigation_timeout_ms)
        except PlaywrightError as exc:
            page.close()
            raise PageLoadError(f"Cannot load {url}: {exc}") from exc
        return PlaywrightPage(page, url)

    def close(self) -> None:
        if self._browser is not None:
            self._browser.close()
            self._browser = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None
