"""Shared helpers for timezone-aware report date calculations."""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = "America/Sao_Paulo"


def get_timezone(name: str | None = None) -> ZoneInfo:
    """Return the pipeline timezone.

    The dashboard renders dates in the account's local time, so "yesterday"
    must be computed in that zone regardless of the machine locale.
    """

    return ZoneInfo(name or DEFAULT_TIMEZONE)


def aware_now(tz: ZoneInfo | None = None) -> datetime:
    """Return ``datetime.now`` in the given (or default) timezone."""

    return datetime.now(tz or get_timezone())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def get_daily_report_date(reference: datetime | date | None = None, tz: ZoneInfo | None = None) -> date:
    """Return the standard daily report date (T-1 in the configured timezone)."""

    current = reference or aware_now(tz)
    if isinstance(current, datetime):
        current = current.date()
    return current - timedelta(days=1)


def is_same_month(first: date, second: date) -> bool:
    return first.month == second.month and first.year == second.year


def js_iso_timestamp(moment: datetime) -> str:
    """Format ``moment`` like ``Date.prototype.toISOString`` (UTC, millis, ``Z``)."""

    utc_moment = moment.astimezone(timezone.utc)
    return utc_moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc_moment.microsecond // 1000:03d}Z"


def artifact_timestamp(moment: datetime) -> str:
    """Timestamp safe for filenames: ``2024-03-01T09-15-00``."""

    return js_iso_timestamp(moment).replace(":", "-").replace(".", "-")[:-5]
