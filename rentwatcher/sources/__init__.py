"""Registry of supported listing sources."""

from __future__ import annotations

from typing import Callable, Dict, List

from ..errors import UnknownSourceError
from ..extraction import PageExtractor
from .airbnb import AirbnbExtractor
from .olx import OlxExtractor

SOURCES: Dict[str, Callable[[], PageExtractor]] = {
    "olx": OlxExtractor,
    "airbnb": AirbnbExtractor,
}


def available_sources() -> List[str]:
    return sorted(SOURCES)


def get_extractor(name: str) -> PageExtractor:
    """Instantiate the extractor registered under ``name``."""
    try:
        factory = SOURCES[name.strip().lower()]
    except KeyError:
        raise UnknownSourceError(f"Unknown source: {name}") from None
    return factory()


__all__ = [
    "AirbnbExtractor",
    "OlxExtractor",
    "SOURCES",
    "available_sources",
    "get_extractor",
]
