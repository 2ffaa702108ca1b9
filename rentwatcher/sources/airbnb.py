"""Extractor for Airbnb stay search results.

Airbnb search cards carry everything we record, so headers come back with
their ``detail`` already filled and the crawler never opens a room page.
"""

from __future__ import annotations

import re
from typing import List, Optional
from urllib.parse import quote

from bs4 import BeautifulSoup, Tag

from ..browser import Page
from ..errors import ExtractionError
from ..models import ListingDetail, ListingHeader

SOURCE = "airbnb"
BASE_URL = "https://www.airbnb.com"
PAGE_SIZE = 18

SELECTORS = {
    "offer": '[itemprop="itemListElement"]',
    "offer_name": '[itemprop="name"]',
    "offer_url": '[itemprop="url"]',
    "offer_details": ".i1wgresd",
    "offer_price": ".p1qe1cgb .a8jt5op",
    "pagination": '[aria-label="Search results pagination"]',
}

_ROOM_ID_PATTERN = re.compile(r"/rooms/(?:plus/)?(\d+)")
_GUESTS_PATTERN = re.compile(r"(\d+) guests?")
_BEDROOMS_PATTERN = re.compile(r"(\d+) bedrooms?")
_BEDS_PATTERN = re.compile(r"(\d+) beds?\b")
_BATHS_PATTERN = re.compile(r"(\d*\.?\d+) (?:shared |private )?baths?")


def identity_from_url(url: str) -> str:
    match = _ROOM_ID_PATTERN.search(url)
    if not match:
        raise ExtractionError(f"Cannot derive listing identity from {url!r}")
    return f"{SOURCE}:{match.group(1)}"


def _meta_content(card: Tag, selector: str) -> str:
    element = card.select_one(selector)
    if element is None:
        return ""
    return str(element.get("content") or element.get_text(" ", strip=True)).strip()


def _count(pattern: re.Pattern[str], text: str) -> Optional[int]:
    match = pattern.search(text)
    if not match:
        return None
    return int(match.group(1))


def _bath_count(text: str) -> Optional[float]:
    # Half baths are listed as "1.5 baths"; whole counts stay ints.
    match = _BATHS_PATTERN.search(text)
    if not match:
        return None
    value = float(match.group(1))
    return int(value) if value.is_integer() else value


def parse_card_details(text: str) -> ListingDetail:
    """Parse guest/bedroom/bed/bath counts from a card's summary line."""
    return ListingDetail(
        guest_count=_count(_GUESTS_PATTERN, text),
        room_count=_count(_BEDROOMS_PATTERN, text),
        bed_count=_count(_BEDS_PATTERN, text),
        bath_count=_bath_count(text),
    )


class AirbnbExtractor:
    """Selector glue for Airbnb search result pages."""

    source = SOURCE
    required_header_fields = ("identity", "url", "title", "price")
    important_fields = ("title", "room_count", "price")

    def __init__(self, base_url: str = BASE_URL) -> None:
        self.base_url = base_url.rstrip("/")

    def listing_url(self, query: str, page: int) -> str:
        url = f"{self.base_url}/s/{quote(query.strip(), safe='-_')}/homes"
        if page > 1:
            url += f"?items_offset={(page - 1) * PAGE_SIZE}"
        return url

    def listing_headers(self, document: BeautifulSoup) -> List[ListingHeader]:
        headers: List[ListingHeader] = []
        for card in document.select(SELECTORS["offer"]):
            url = _meta_content(card, SELECTORS["offer_url"])
            if url and not url.startswith("http"):
                url = "https://" + url.lstrip("/")
            price_elem = card.select_one(SELECTORS["offer_price"])
            details_elem = card.select_one(SELECTORS["offer_details"])
            headers.append(
                ListingHeader(
                    identity=identity_from_url(url),
                    url=url,
                    title=_meta_content(card, SELECTORS["offer_name"]),
                    price=price_elem.get_text(" ", strip=True) if price_elem else "",
                    detail=parse_card_details(
                        details_elem.get_text(" ", strip=True) if details_elem else ""
                    ),
                )
            )
        return headers

    def total_page_count(self, document: BeautifulSoup) -> Optional[int]:
        pagination = document.select_one(SELECTORS["pagination"])
        if pagination is None:
            return None
        return len(pagination.find_all("a")) or None

    def listing_ready(self, document: BeautifulSoup) -> bool:
        return (
            document.select_one(SELECTORS["pagination"]) is not None
            or document.select_one(SELECTORS["offer"]) is not None
        )

    # Detail-page hooks; unused because every header carries its detail.

    def auth_required(self, document: BeautifulSoup) -> bool:
        return False

    def reveal_is_available(self, document: BeautifulSoup) -> bool:
        return False

    def trigger_reveal(self, page: Page) -> None:
        return None

    def revealed_contact(self, document: BeautifulSoup) -> Optional[str]:
        return None

    def property_detail_boxes(self, document: BeautifulSoup) -> List[str]:
        return []

    def detail(self, document: BeautifulSoup, phone: Optional[str]) -> ListingDetail:
        return ListingDetail(phone=phone)
