"""Extractor contract and source-independent parsing helpers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Protocol, Sequence, Tuple
from urllib.parse import urlparse

from .browser import Page
from .errors import ExtractionError
from .models import ListingDetail, ListingHeader, RentalKind

logger = logging.getLogger(__name__)

DEFAULT_REQUIRED_HEADER_FIELDS = ("identity", "url", "title", "posted_at", "price")


class PageExtractor(Protocol):
    """Site-specific knowledge the crawl coordinator depends on."""

    source: str
    required_header_fields: Tuple[str, ...]

    def listing_url(self, query: str, page: int) -> str:
        ...

    def listing_headers(self, document: Any) -> List[ListingHeader]:
        ...

    def total_page_count(self, document: Any) -> Optional[int]:
        ...

    def listing_ready(self, document: Any) -> bool:
        """Return True once the listing page has rendered its results."""
        ...

    def auth_required(self, document: Any) -> bool:
        ...

    def reveal_is_available(self, document: Any) -> bool:
        ...

    def trigger_reveal(self, page: Page) -> None:
        ...

    def revealed_contact(self, document: Any) -> Optional[str]:
        """Return the revealed contact, or None while it is still masked."""
        ...

    def property_detail_boxes(self, document: Any) -> List[str]:
        ...

    def detail(self, document: Any, phone: Optional[str]) -> ListingDetail:
        ...


def validate_header(header: ListingHeader, required: Iterable[str]) -> None:
    """Raise ``ExtractionError`` if any required header field is blank."""
    missing = [name for name in required if not (getattr(header, name, None) or "").strip()]
    if missing:
        raise ExtractionError(
            f"Listing header {header.url or header.identity or '<unknown>'} "
            f"is missing required field(s): {', '.join(missing)}"
        )


def slug_from_url(url: str, suffix: str = ".html") -> Optional[str]:
    """Return the last path segment of ``url`` without ``suffix``."""
    path = urlparse(url.strip()).path.rstrip("/")
    if not path:
        return None
    segment = path.rsplit("/", 1)[-1]
    if suffix and segment.endswith(suffix):
        segment = segment[: -len(suffix)]
    return segment or None


@dataclass(frozen=True)
class PropertyLabels:
    """Locale-specific label fragments found in property boxes."""

    kind: str
    house_values: Sequence[str]
    apartment_values: Sequence[str]
    room_count: str
    floor_count: str


@dataclass
class PropertyFields:
    kind: Optional[RentalKind] = None
    room_count: Optional[int] = None
    floor_count: Optional[int] = None


def parse_count(text: str) -> Optional[int]:
    """Parse the number in a ``"label: number"`` string, or return None."""
    _, _, value = text.rpartition(":")
    value = value.strip()
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def classify_kind(text: str, labels: PropertyLabels) -> RentalKind:
    _, _, value = text.partition(":")
    value = value.strip() or text
    if any(fragment in value for fragment in labels.house_values):
        return RentalKind.HOUSE
    if any(fragment in value for fragment in labels.apartment_values):
        return RentalKind.APARTMENT
    return RentalKind.UNKNOWN


def parse_property_boxes(boxes: Iterable[str], labels: PropertyLabels) -> PropertyFields:
    """Derive kind and room/floor counts from free-text property boxes.

    Unrecognized or malformed values are logged and left unset; they never
    raise.
    """
    result = PropertyFields()
    for raw in boxes:
        text = (raw or "").strip()
        if not text:
            continue
        if labels.kind in text:
            result.kind = classify_kind(text, labels)
            if result.kind is RentalKind.UNKNOWN:
                logger.warning("Unknown rental kind %r", text)
            continue
        if labels.room_count in text:
            count = parse_count(text)
            if count is None:
                logger.warning("Malformed room count: %r", text)
            else:
                result.room_count = count
        elif labels.floor_count in text:
            count = parse_count(text)
            if count is None:
                logger.warning("Malformed floor count: %r", text)
            else:
                result.floor_count = count
    return result
