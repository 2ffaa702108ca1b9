"""Spreadsheet export of stored records."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from openpyxl import Workbook

from .models import RentalKind, RentalRecord

EXPORT_COLUMNS = (
    "first_scraped_at",
    "last_scraped_at",
    "source",
    "title",
    "price",
    "kind",
    "room_count",
    "floor_count",
    "guest_count",
    "bed_count",
    "bath_count",
    "phone",
    "posted_at",
    "url",
    "description",
)


def export_records_to_xlsx(records: Iterable[RentalRecord], path: Path) -> int:
    """Write records to ``path`` as a single worksheet; return the row count."""
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = "listings"
    worksheet.append(list(EXPORT_COLUMNS))

    count = 0
    for record in records:
        row = []
        for column in EXPORT_COLUMNS:
            value = getattr(record, column)
            if isinstance(value, RentalKind):
                value = value.value
            row.append(value)
        worksheet.append(row)
        count += 1

    path.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(path)
    return count
