"""Extractor for OLX.ua real-estate listings."""

from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import quote, urljoin

from bs4 import BeautifulSoup, Tag

from ..browser import Page
from ..errors import ExtractionError
from ..extraction import (
    DEFAULT_REQUIRED_HEADER_FIELDS,
    PropertyLabels,
    parse_property_boxes,
    slug_from_url,
)
from ..models import ListingDetail, ListingHeader

logger = logging.getLogger(__name__)

SOURCE = "olx"
BASE_URL = "https://www.olx.ua/nedvizhimost"
MASKED_MARKER = "xxx"

SELECTORS = {
    "offer": "table.offers tr.wrap",
    "offer_title_link": ".title-cell a.linkWithHash",
    "total_pages": '[data-cy="page-link-last"]',
    "current_page": '[data-cy="page-link-current"]',
    "posting_date": ".bottom-cell small:last-child",
    "price": ".price",
    "show_phone_button": '[data-testid="show-phone"]',
    "auth_prompt": '[data-testid="prompt-message"]',
    "phones": '[data-testid="phones-container"]',
    "description": '[data-cy="ad_description"]',
    "property_box": "ul li p",
}

OLX_LABELS = PropertyLabels(
    kind="Тип дома",
    house_values=("Дом", "Коттедж", "Дача"),
    apartment_values=("Квартира", "Часть дома"),
    room_count="комнат",
    floor_count="Этажность",
)


def identity_from_url(url: str) -> str:
    slug = slug_from_url(url)
    if not slug:
        raise ExtractionError(f"Cannot derive listing identity from {url!r}")
    return f"{SOURCE}:{slug}"


def _text(element: Optional[Tag]) -> str:
    if element is None:
        return ""
    return element.get_text(" ", strip=True)


class OlxExtractor:
    """Selector glue for the OLX listing feed and offer pages."""

    source = SOURCE
    required_header_fields = DEFAULT_REQUIRED_HEADER_FIELDS

    def __init__(self, base_url: str = BASE_URL) -> None:
        self.base_url = base_url.rstrip("/")

    def listing_url(self, query: str, page: int) -> str:
        return f"{self.base_url}/{quote(query.strip(), safe='-_')}/?page={page}"

    def listing_headers(self, document: BeautifulSoup) -> List[ListingHeader]:
        headers: List[ListingHeader] = []
        for offer in document.select(SELECTORS["offer"]):
            link = offer.select_one(SELECTORS["offer_title_link"])
            if link is None or not link.get("href"):
                raise ExtractionError("Offer row has no title link")
            url = urljoin(self.base_url + "/", str(link["href"]).strip())
            headers.append(
                ListingHeader(
                    identity=identity_from_url(url),
                    url=url,
                    title=_text(link),
                    posted_at=_text(offer.select_one(SELECTORS["posting_date"])),
                    price=_text(offer.select_one(SELECTORS["price"])),
                )
            )
        return headers

    def total_page_count(self, document: BeautifulSoup) -> Optional[int]:
        text = _text(document.select_one(SELECTORS["total_pages"]))
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            logger.warning("Unparseable last page indicator %r", text)
            return None

    def listing_ready(self, document: BeautifulSoup) -> bool:
        # Single-page results render offers without a pager.
        return (
            document.select_one(SELECTORS["current_page"]) is not None
            or document.select_one(SELECTORS["offer"]) is not None
        )

    def auth_required(self, document: BeautifulSoup) -> bool:
        return document.select_one(SELECTORS["auth_prompt"]) is not None

    def reveal_is_available(self, document: BeautifulSoup) -> bool:
        return document.select_one(SELECTORS["show_phone_button"]) is not None

    def trigger_reveal(self, page: Page) -> None:
        page.click(SELECTORS["show_phone_button"])

    def revealed_contact(self, document: BeautifulSoup) -> Optional[str]:
        text = _text(document.select_one(SELECTORS["phones"]))
        if not text or MASKED_MARKER in text.lower():
            return None
        return text

    def property_detail_boxes(self, document: BeautifulSoup) -> List[str]:
        return [_text(box) for box in document.select(SELECTORS["property_box"])]

    def detail(self, document: BeautifulSoup, phone: Optional[str]) -> ListingDetail:
        fields = parse_property_boxes(self.property_detail_boxes(document), OLX_LABELS)
        return ListingDetail(
            kind=fields.kind,
            room_count=fields.room_count,
            floor_count=fields.floor_count,
            phone=phone,
            description=_text(document.select_one(SELECTORS["description"])),
        )
