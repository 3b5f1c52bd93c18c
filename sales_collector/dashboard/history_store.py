"""Retention-bounded collection history kept in a single JSON file.

Layout (shared with the earlier Node tool): ``{"coletas": [entry, ...]}``,
oldest first. Only the most recent ``retention`` entries are kept; eviction is
by insertion order, not by timestamp.
"""
from __future__ import annotations

import json
import re
import threading
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, List, Optional

from sales_collector.common.date_utils import utc_now
from sales_collector.common.files import atomic_write_json

from .errors import HistoryFileError, NoDataError
from .json_logger import JsonLogger, log_event
from .models import CollectionResult, HistoryEntry, HistoryWindow

HISTORY_KEY = "coletas"
DEFAULT_RETENTION = 30
DEFAULT_QUERY_DAYS = 7

# Matches every stored timestamp; used when ``days`` reaches past the calendar.
EARLIEST_CUTOFF = datetime.min.replace(tzinfo=timezone.utc)

_LEADING_INT = re.compile(r"[+-]?\d+")


def coerce_days(raw: Any, default: int = DEFAULT_QUERY_DAYS) -> int:
    """Interpret a ``dias`` query value like ``parseInt``: ``"3.5"`` is 3, ``"5abc"`` is 5.

    Input without a leading integer, or a negative one, falls back to ``default``.
    """

    if raw is None or isinstance(raw, bool):
        return default
    if isinstance(raw, int):
        return raw if raw >= 0 else default
    match = _LEADING_INT.match(str(raw).strip())
    if not match:
        return default
    value = int(match.group(0))
    return value if value >= 0 else default


def window_cutoff(now: datetime, days: int) -> datetime:
    try:
        return now - timedelta(days=days)
    except OverflowError:
        return EARLIEST_CUTOFF


class HistoryStore:
    def __init__(
        self,
        path: Path,
        *,
        retention: int = DEFAULT_RETENTION,
        default_days: int = DEFAULT_QUERY_DAYS,
        clock: Optional[Callable[[], datetime]] = None,
        logger: JsonLogger | None = None,
    ) -> None:
        if retention <= 0:
            raise ValueError("retention must be positive")
        self.path = Path(path)
        self.retention = retention
        self.default_days = default_days
        self.clock = clock or utc_now
        self.logger = logger
        self._lock = threading.Lock()

    def _read(self) -> List[HistoryEntry]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        if not raw.strip():
            return []
        try:
            document = json.loads(raw, parse_float=Decimal)
        except json.JSONDecodeError as exc:
            raise HistoryFileError(f"History file {self.path} is not valid JSON: {exc}") from exc
        if not isinstance(document, dict):
            raise HistoryFileError(
                f"History file {self.path} must hold an object with a '{HISTORY_KEY}' list; "
                f"found {type(document).__name__}"
            )
        items = document.get(HISTORY_KEY) or []
        if not isinstance(items, list):
            raise HistoryFileError(f"History file {self.path}: '{HISTORY_KEY}' is not a list")
        try:
            return [HistoryEntry.from_wire(item) for item in items]
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise HistoryFileError(f"History file {self.path} has a malformed entry: {exc!r}") from exc

    def _write(self, entries: List[HistoryEntry]) -> None:
        atomic_write_json(self.path, {HISTORY_KEY: [entry.to_wire() for entry in entries]})

    def initialize(self) -> None:
        """Create an empty history file when none exists."""

        with self._lock:
            if not self.path.exists():
                self._write([])

    def load(self) -> List[HistoryEntry]:
        with self._lock:
            return self._read()

    def append(self, result: CollectionResult) -> HistoryEntry:
        entry = HistoryEntry.from_result(result, timestamp=self.clock())
        with self._lock:
            entries = self._read()
            entries.append(entry)
            evicted = max(len(entries) - self.retention, 0)
            entries = entries[-self.retention:]
            self._write(entries)

        if self.logger is not None:
            log_event(
                logger=self.logger,
                phase="history",
                message="Collection appended to history",
                history_file=str(self.path),
                period=entry.period,
                entry_count=len(entries),
                evicted=evicted,
            )
        return entry

    def query_recent(self, days: Any = None) -> HistoryWindow:
        resolved_days = coerce_days(days, self.default_days)
        cutoff = window_cutoff(self.clock(), resolved_days)
        matched = [entry for entry in self.load() if entry.timestamp >= cutoff]
        return HistoryWindow(days=resolved_days, entries=tuple(matched))

    def latest(self) -> HistoryEntry:
        entries = self.load()
        if not entries:
            raise NoDataError("Nenhuma coleta realizada ainda")
        return entries[-1]
