"""JSON-file-backed record store."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .errors import StoreLoadError
from .models import RentalRecord

logger = logging.getLogger(__name__)


def resolve_store_path(value: str | os.PathLike[str]) -> Path:
    """Translate a user-supplied store location into an absolute path."""
    if not str(value):
        raise ValueError("store path must not be empty")

    path = Path(value).expanduser()
    if not path.is_absolute():
        path = Path.cwd() / path
    return path.resolve()


@dataclass
class JsonStore:
    """In-memory mapping from identity to record, persisted as one JSON file."""

    path: Path
    _records: Dict[str, RentalRecord] = field(default_factory=dict, init=False, repr=False)

    def load(self) -> None:
        """Replace in-memory contents with the backing file.

        A missing file yields an empty store; an unreadable one raises
        ``StoreLoadError``.
        """
        if not self.path.exists():
            logger.info("No store found at %s; starting empty", self.path)
            self._records = {}
            return

        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise StoreLoadError(f"Cannot read store {self.path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise StoreLoadError(f"Store {self.path} must contain a JSON object")

        records: Dict[str, RentalRecord] = {}
        for identity, raw in payload.items():
            try:
                records[identity] = RentalRecord.from_dict(raw)
            except (TypeError, ValueError) as exc:
                raise StoreLoadError(
                    f"Store {self.path} has an invalid record {identity!r}: {exc}"
                ) from exc
        self._records = records
        logger.info("Loaded %d record(s) from %s", len(records), self.path)

    def save(self) -> None:
        """Atomically rewrite the backing file from in-memory contents."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {identity: record.to_dict() for identity, record in self._records.items()}
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=4, ensure_ascii=False)
                handle.write("\n")
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Saved %d record(s) to %s", len(payload), self.path)

    def get(self, identity: str) -> Optional[RentalRecord]:
        return self._records.get(identity)

    def set(self, identity: str, record: RentalRecord) -> None:
        self._records[identity] = record

    def __contains__(self, identity: object) -> bool:
        return identity in self._records

    def __len__(self) -> int:
        return len(self._records)

    def latest(self, count: int) -> List[RentalRecord]:
        """Return up to ``count`` records, most recently first-seen first."""
        if count <= 0:
            return []
        ordered = sorted(
            self._records.values(),
            key=lambda record: record.first_scraped_at,
            reverse=True,
        )
        return ordered[:count]

    def clear(self) -> bool:
        """Drop all records and delete the backing file if present."""
        self._records = {}
        if self.path.exists():
            self.path.unlink()
            return True
        return False
