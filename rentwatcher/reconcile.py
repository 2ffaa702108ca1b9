"""Merge freshly extracted records against previously stored ones."""

from __future__ import annotations

import json
import logging
from typing import List, Optional, Sequence

from .models import MergeResult, RentalRecord
from .store import JsonStore

logger = logging.getLogger(__name__)

IMPORTANT_FIELDS = ("title", "price", "phone", "description")


def important_changes(
    old: Optional[RentalRecord],
    new: RentalRecord,
    fields: Sequence[str] = IMPORTANT_FIELDS,
) -> List[str]:
    """Return the names of important fields whose values differ."""
    if old is None:
        return []
    return [name for name in fields if getattr(old, name) != getattr(new, name)]


def merge(
    store: JsonStore,
    identity: str,
    incoming: RentalRecord,
    now: str,
    fields: Sequence[str] = IMPORTANT_FIELDS,
) -> MergeResult:
    """Stamp ``incoming`` against the stored record for ``identity``.

    The newest extraction always wins for every attribute except
    ``first_scraped_at``, which is carried over from the previous record.
    The store itself is not modified.
    """
    previous = store.get(identity)
    first_scraped_at = previous.first_scraped_at if previous else now
    record = incoming.stamped(first_scraped_at=first_scraped_at, last_scraped_at=now)
    changed_fields = important_changes(previous, record, fields)

    if previous is not None:
        logger.info("Previously scraped record %s was updated", identity)
        if changed_fields:
            logger.info(
                "Record %s changed (%s); old data: %s",
                identity,
                ", ".join(changed_fields),
                json.dumps(previous.to_dict(), ensure_ascii=False),
            )
    logger.debug("New data for %s: %s", identity, json.dumps(record.to_dict(), ensure_ascii=False))
    return MergeResult(
        identity=identity,
        record=record,
        previous=previous,
        changed_fields=changed_fields,
    )
