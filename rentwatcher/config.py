"""Crawl configuration and environment overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Mapping

DEFAULT_LOGFILE = "~/rentwatcher-log.txt"
DEFAULT_DBFILE = "~/rentwatcher-db.json"

DEFAULT_PAGE_INTERVAL_S = 10.0
DEFAULT_WAIT_TIMEOUT_S = 5.0
DEFAULT_FLUSH_EVERY = 5


@dataclass(frozen=True)
class CrawlConfig:
    """Knobs controlling a single crawl run."""

    quick_check: bool = False
    skip_existing_records: bool = True
    wait_timeout_s: float = DEFAULT_WAIT_TIMEOUT_S
    wait_poll_interval_s: float = 0.25
    page_interval_s: float = DEFAULT_PAGE_INTERVAL_S
    flush_every: int = DEFAULT_FLUSH_EVERY

    def __post_init__(self) -> None:
        if self.wait_timeout_s < 0:
            raise ValueError("wait_timeout_s must be >= 0")
        if self.wait_poll_interval_s <= 0:
            raise ValueError("wait_poll_interval_s must be > 0")
        if self.page_interval_s < 0:
            raise ValueError("page_interval_s must be >= 0")
        if self.flush_every < 1:
            raise ValueError("flush_every must be >= 1")

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> "CrawlConfig":
        """Build a config from RENTWATCHER_* variables, then apply overrides."""
        env = os.environ if environ is None else environ
        config = cls(
            page_interval_s=_env_float(env, "RENTWATCHER_PAGE_INTERVAL", DEFAULT_PAGE_INTERVAL_S),
            wait_timeout_s=_env_float(env, "RENTWATCHER_WAIT_TIMEOUT", DEFAULT_WAIT_TIMEOUT_S),
            flush_every=_env_int(env, "RENTWATCHER_FLUSH_EVERY", DEFAULT_FLUSH_EVERY),
        )
        return replace(config, **overrides) if overrides else config


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
