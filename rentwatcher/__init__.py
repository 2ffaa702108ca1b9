"""rentwatcher package initialization."""

from .config import CrawlConfig
from .coordinator import CrawlCoordinator
from .models import (
    CrawlStage,
    CrawlState,
    CrawlSummary,
    ListingDetail,
    ListingHeader,
    MergeResult,
    RentalKind,
    RentalRecord,
)
from .quickcheck import QuickCheckProbe
from .ratelimit import RateLimiter
from .reconcile import important_changes, merge
from .store import JsonStore

__all__ = [
    "CrawlConfig",
    "CrawlCoordinator",
    "CrawlStage",
    "CrawlState",
    "CrawlSummary",
    "JsonStore",
    "ListingDetail",
    "ListingHeader",
    "MergeResult",
    "QuickCheckProbe",
    "RateLimiter",
    "RentalKind",
    "RentalRecord",
    "important_changes",
    "merge",
]
