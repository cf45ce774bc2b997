"""Time zone resolution and epoch/date helpers shared by the engine."""
from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .const import NO_VALUE, SECONDS_PER_DAY

_LOGGER = logging.getLogger(__name__)


class TimeZoneResolver(Protocol):
    """Looks up named time zones for the parser and expander."""

    @property
    def default(self) -> tzinfo:
        """Zone used when an instant carries no usable zone."""

    def resolve(self, name: str) -> tzinfo | None:
        """Return the zone for an IANA name, or None if unknown."""


class ZoneInfoResolver:
    """TimeZoneResolver backed by the system tz database."""

    def __init__(self, default: tzinfo | None = None) -> None:
        self._default = default or timezone.utc

    @property
    def default(self) -> tzinfo:
        return self._default

    def resolve(self, name: str) -> tzinfo | None:
        name = name.strip().strip('"')
        if not name:
            return None
        if name.upper() in ("UTC", "Z", "ETC/UTC"):
            return timezone.utc
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            return None


def zone_name(tz: tzinfo) -> str:
    """Canonical name of a zone (IANA key where there is one)."""
    if tz is timezone.utc:
        return "UTC"
    key = getattr(tz, "key", None)
    if key:
        return key
    return str(tz)


def to_local(ts: int, tz: tzinfo) -> datetime:
    return datetime.fromtimestamp(ts, tz)


def add_local_days(base: datetime, days: int) -> int:
    """Shift by calendar days keeping the local wall-clock time (DST safe)."""
    naive = base.replace(tzinfo=None) + timedelta(days=days)
    return int(naive.replace(tzinfo=base.tzinfo).timestamp())


def format_iso(ts: int | None, tz: tzinfo) -> str:
    """ISO-8601 with offset, or "-" for a missing/zero instant."""
    if not ts or ts <= 0:
        return NO_VALUE
    return to_local(ts, tz).isoformat()


def format_countdown(seconds: int) -> str:
    """Human countdown: whole days (rounded up) from 24 h on, else hours/minutes."""
    seconds = max(0, seconds)
    if seconds >= SECONDS_PER_DAY:
        days = math.ceil(seconds / SECONDS_PER_DAY)
        return f"Starts in {days} days"
    hours, rest = divmod(seconds, 3600)
    return f"Starts in {hours} h {rest // 60} min"
