"""Core data models for rentwatcher."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, List, Optional


class RentalKind(str, Enum):
    """Type of dwelling advertised by a listing."""

    HOUSE = "House"
    APARTMENT = "Apartment"
    UNKNOWN = "Unknown"


@dataclass
class ListingDetail:
    """Fields collected from a detail page or a listing card."""

    kind: Optional[RentalKind] = None
    room_count: Optional[int] = None
    floor_count: Optional[int] = None
    guest_count: Optional[int] = None
    bed_count: Optional[int] = None
    bath_count: Optional[float] = None
    phone: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class ListingHeader:
    """Listing fields visible on a paginated feed page."""

    identity: str
    url: str
    title: str
    price: str
    posted_at: Optional[str] = None
    detail: Optional[ListingDetail] = None


# JSON key used for each record attribute in the store file.
_JSON_KEYS = {
    "source": "source",
    "url": "url",
    "title": "title",
    "price": "price",
    "kind": "kind",
    "room_count": "roomCount",
    "floor_count": "floorCount",
    "guest_count": "guestCount",
    "bed_count": "bedCount",
    "bath_count": "bathCount",
    "phone": "phone",
    "description": "description",
    "posted_at": "postedAt",
    "first_scraped_at": "firstScrapedAt",
    "last_scraped_at": "lastScrapedAt",
}


@dataclass
class RentalRecord:
    """A scraped rental listing as persisted in the store."""

    source: str
    url: str
    title: str
    price: str
    kind: Optional[RentalKind] = None
    room_count: Optional[int] = None
    floor_count: Optional[int] = None
    guest_count: Optional[int] = None
    bed_count: Optional[int] = None
    bath_count: Optional[float] = None
    phone: Optional[str] = None
    description: Optional[str] = None
    posted_at: Optional[str] = None
    first_scraped_at: str = ""
    last_scraped_at: str = ""

    @classmethod
    def from_listing(
        cls,
        source: str,
        header: ListingHeader,
        detail: ListingDetail,
    ) -> "RentalRecord":
        """Combine a feed header and its detail into an unstamped record."""
        return cls(
            source=source,
            url=header.url,
            title=header.title,
            price=header.price,
            posted_at=header.posted_at,
            kind=detail.kind,
            room_count=detail.room_count,
            floor_count=detail.floor_count,
            guest_count=detail.guest_count,
            bed_count=detail.bed_count,
            bath_count=detail.bath_count,
            phone=detail.phone,
            description=detail.description,
        )

    def stamped(self, first_scraped_at: str, last_scraped_at: str) -> "RentalRecord":
        return replace(
            self,
            first_scraped_at=first_scraped_at,
            last_scraped_at=last_scraped_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the store's JSON shape, omitting unset fields."""
        payload: Dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if value is None:
                continue
            if isinstance(value, RentalKind):
                value = value.value
            payload[_JSON_KEYS[item.name]] = value
        return payload

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "RentalRecord":
        if not isinstance(payload, dict):
            raise ValueError(f"Record payload must be an object: {payload!r}")
        values: Dict[str, Any] = {}
        for attr, key in _JSON_KEYS.items():
            if key in payload:
                values[attr] = payload[key]
        missing = [
            key for key in ("source", "url", "title", "price")
            if _JSON_KEYS[key] not in payload
        ]
        if missing:
            raise ValueError(f"Record payload is missing fields: {', '.join(missing)}")
        kind = values.get("kind")
        if kind is not None:
            values["kind"] = RentalKind(kind)
        return cls(**values)


@dataclass
class MergeResult:
    """Outcome of reconciling a fresh extraction with the stored record."""

    identity: str
    record: RentalRecord
    previous: Optional[RentalRecord]
    changed_fields: List[str] = field(default_factory=list)

    @property
    def is_new(self) -> bool:
        return self.previous is None

    @property
    def changed(self) -> bool:
        return bool(self.changed_fields)


class CrawlStage(str, Enum):
    """States of the crawl coordinator."""

    INIT = "init"
    QUICK_CHECKING = "quick_checking"
    LISTING_PAGE = "listing_page"
    DETAIL_FETCH = "detail_fetch"
    DONE = "done"
    ABORTED = "aborted"


# Assumed page count until the first listing page reports the real one.
UNKNOWN_TOTAL_PAGES = 999


@dataclass
class CrawlState:
    """Transient, per-run crawl bookkeeping."""

    stage: CrawlStage = CrawlStage.INIT
    current_page: int = 1
    total_pages: int = UNKNOWN_TOTAL_PAGES
    quick_check_passed: Optional[bool] = None
    records_processed: int = 0


@dataclass
class CrawlSummary:
    """Aggregated result returned by a crawl run."""

    source: str
    query: str
    started_at: str
    stage: CrawlStage = CrawlStage.INIT
    pages_fetched: int = 0
    records_processed: int = 0
    records_skipped: int = 0
    listings_failed: int = 0
    flushes: int = 0
    new_identities: List[str] = field(default_factory=list)
