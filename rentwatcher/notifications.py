"""Notification sinks for crawl progress and processed records."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List, Protocol

import requests

from .models import RentalRecord

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Protocol defining the notifier contract."""

    def on_page_progress(self, current: int, total: int) -> None:
        ...

    def on_record_processed(self, identity: str, record: RentalRecord) -> None:
        ...


@dataclass
class LoggingNotifier:
    """Relay crawl events to the log."""

    prefix: str = ""

    def on_page_progress(self, current: int, total: int) -> None:
        logger.info("%sScraping page %d/%d", self.prefix, current, total)

    def on_record_processed(self, identity: str, record: RentalRecord) -> None:
        logger.info("%sProcessed %s (%s)", self.prefix, identity, record.url)


@dataclass
class SlackNotifier:
    """Post newly discovered listings to Slack via Incoming Webhook."""

    webhook_url: str
    timeout: int = 10

    def on_page_progress(self, current: int, total: int) -> None:
        return None

    def on_record_processed(self, identity: str, record: RentalRecord) -> None:
        if record.first_scraped_at != record.last_scraped_at:
            return
        response = requests.post(
            self.webhook_url,
            json={"text": format_record_message(record)},
            timeout=self.timeout,
        )
        response.raise_for_status()


@dataclass
class CompositeNotifier:
    """Fan-out notifier that forwards events to multiple sinks."""

    notifiers: List[Notifier] = field(default_factory=list)

    def on_page_progress(self, current: int, total: int) -> None:
        for notifier in self.notifiers:
            try:
                notifier.on_page_progress(current, total)
            except Exception:  # noqa: BLE001
                logger.exception("Failed to deliver page progress via %s", type(notifier).__name__)

    def on_record_processed(self, identity: str, record: RentalRecord) -> None:
        for notifier in self.notifiers:
            try:
                notifier.on_record_processed(identity, record)
            except Exception:  # noqa: BLE001
                logger.exception("Failed to deliver notification via %s", type(notifier).__name__)


def build_notifier_from_env(prefix: str = "") -> CompositeNotifier:
    """Construct the notifier chain; Slack is added when SLACK_WEBHOOK is set."""
    notifiers: List[Notifier] = [LoggingNotifier(prefix=prefix)]

    slack_webhook = (os.getenv("SLACK_WEBHOOK") or "").strip()
    if slack_webhook:
        notifiers.append(SlackNotifier(webhook_url=slack_webhook))

    return CompositeNotifier(notifiers=notifiers)


def format_record_message(record: RentalRecord) -> str:
    """Render a record into a human-friendly notification payload."""
    lines = [
        f":house: New {record.source} listing",
        f"Title: {record.title}",
        f"Price: {record.price}",
    ]
    facts = []
    if record.kind is not None:
        facts.append(record.kind.value)
    if record.room_count is not None:
        facts.append(f"{record.room_count} room(s)")
    if record.floor_count is not None:
        facts.append(f"{record.floor_count} floor(s)")
    if record.guest_count is not None:
        facts.append(f"{record.guest_count} guest(s)")
    if facts:
        lines.append(" / ".join(facts))
    if record.phone:
        lines.append(f"Phone: {record.phone}")
    if record.posted_at:
        lines.append(f"Posted: {record.posted_at}")
    lines.append(f"URL: {record.url}")
    return "\n".join(lines)


__all__ = [
    "CompositeNotifier",
    "LoggingNotifier",
    "Notifier",
    "SlackNotifier",
    "build_notifier_from_env",
    "format_record_message",
]
