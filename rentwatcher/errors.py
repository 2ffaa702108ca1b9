"""Exception hierarchy for rentwatcher."""

from __future__ import annotations


class RentWatcherError(Exception):
    """Base class for all rentwatcher errors."""


class ExtractionError(RentWatcherError):
    """A required listing-header field is missing or malformed.

    This signals a selector/parsing mismatch with the site and aborts the
    whole crawl.
    """


class WaitTimeout(RentWatcherError):
    """A bounded wait for dynamically rendered content elapsed."""


class PageLoadError(RentWatcherError):
    """The browser could not navigate to or read a page."""


class StoreLoadError(RentWatcherError):
    """The backing store file exists but cannot be parsed."""


class UnknownSourceError(RentWatcherError):
    """No extractor is registered under the requested source tag."""
