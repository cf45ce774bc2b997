"""Recurrence expansion: turn event templates into concrete occurrences.

Supports FREQ=DAILY and FREQ=WEEKLY with INTERVAL, COUNT, UNTIL and BYDAY,
plus RDATE/EXDATE and cancelled instances (RECURRENCE-ID + STATUS:CANCELLED)
or cancelled series (same UID without RECURRENCE-ID).
"""
from __future__ import annotations

import logging
import re
from datetime import datetime, timezone, tzinfo
from typing import Iterable

from .const import (
    MAX_DAILY_ITERATIONS,
    MAX_WEEKLY_ITERATIONS,
    SECONDS_PER_DAY,
    SECONDS_PER_WEEK,
)
from .time_utils import TimeZoneResolver, add_local_days, to_local
from .types import EventTemplate, Occurrence

_LOGGER = logging.getLogger(__name__)

_UNTIL = re.compile(r"(\d{4})(\d{2})(\d{2})(?:T(\d{2})(\d{2})(\d{2})?)?")

WEEKDAYS = {"MO": 0, "TU": 1, "WE": 2, "TH": 3, "FR": 4, "SA": 5, "SU": 6}


def parse_rrule(rrule: str) -> dict[str, str]:
    """'FREQ=WEEKLY;BYDAY=MO' -> {'FREQ': 'WEEKLY', 'BYDAY': 'MO'}."""
    result = {}
    for part in rrule.split(";"):
        key, sep, value = part.strip().partition("=")
        if not sep or not key:
            continue
        result[key.strip().upper()] = value.strip()
    return result


def map_weekday(token: str) -> int | None:
    """Weekday token to Python weekday (Monday = 0). Ordinals like '1MO' are reduced."""
    token = token.strip().upper()
    if not token:
        return None
    return WEEKDAYS.get(token[-2:])


def parse_until(value: str, tz: tzinfo, reference: datetime) -> int | None:
    """
    Parse an RRULE UNTIL value.

    'Z' suffix means UTC, otherwise the event's zone. A date-only value takes
    the time of day of the reference (series start) instant.
    """
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1]
        tz = timezone.utc

    match = _UNTIL.fullmatch(value)
    if not match:
        return None

    year, month, day, hour, minute, second = match.groups()
    try:
        if hour is None:
            ref = reference.astimezone(tz)
            until = datetime(
                int(year), int(month), int(day),
                ref.hour, ref.minute, ref.second, tzinfo=tz,
            )
        else:
            until = datetime(
                int(year), int(month), int(day),
                int(hour), int(minute), int(second or 0), tzinfo=tz,
            )
    except ValueError:
        return None
    return int(until.timestamp())


def _int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return 0


def _zone(tz_name: str | None, resolver: TimeZoneResolver) -> tzinfo:
    if tz_name:
        tz = resolver.resolve(tz_name)
        if tz is not None:
            return tz
    return resolver.default


def generate_rrule_starts(
    base_start: int,
    rrule: str,
    tz_name: str | None,
    window_start: int,
    window_end: int,
    resolver: TimeZoneResolver,
) -> list[int]:
    """
    Generate the additional start instants of a recurring series.

    The base instant itself is never returned. Instants that began before
    window_start are included when they fall in the period just before the
    window, so a running occurrence stays visible.
    """
    rule = parse_rrule(rrule)
    freq = rule.get("FREQ", "").upper()
    if freq not in ("DAILY", "WEEKLY"):
        _LOGGER.debug("Unsupported or missing frequency in rule %r", rrule)
        return []

    interval = max(1, _int(rule.get("INTERVAL"), 1))

    remaining = None
    if "COUNT" in rule:
        count = max(0, _int(rule["COUNT"], 0))
        if count <= 1:
            return []
        # The base instant is the first of COUNT
        remaining = count - 1

    tz = _zone(tz_name, resolver)
    base_dt = to_local(base_start, tz)

    until = None
    if "UNTIL" in rule:
        until = parse_until(rule["UNTIL"], tz, base_dt)
        if until is not None and until < base_start:
            return []

    if freq == "DAILY":
        starts = _daily(base_start, base_dt, interval, remaining, until, window_start, window_end)
    else:
        starts = _weekly(
            base_start, base_dt, interval, remaining, until,
            window_start, window_end, rule.get("BYDAY", ""),
        )

    _LOGGER.debug("Rule %r generated %d instants", rrule, len(starts))
    return starts


def _daily(base_start, base_dt, interval, remaining, until, window_start, window_end) -> list[int]:
    step = SECONDS_PER_DAY * interval
    target = 0
    if window_start > base_start:
        target = (window_start - base_start) // step
    index = max(1, target)

    if remaining is not None:
        skipped = index - 1
        if skipped >= remaining:
            return []
        remaining -= skipped

    starts = []
    for _ in range(MAX_DAILY_ITERATIONS):
        ts = add_local_days(base_dt, index * interval)
        if until is not None and ts > until:
            break
        if ts > window_end:
            break
        starts.append(ts)
        if remaining is not None:
            remaining -= 1
            if remaining <= 0:
                break
        index += 1
    return starts


def _weekly(
    base_start, base_dt, interval, remaining, until, window_start, window_end, byday
) -> list[int]:
    base_weekday = base_dt.weekday()
    days = {map_weekday(token) for token in byday.split(",")}
    days.discard(None)
    if not days:
        days = {base_weekday}
    # Chronological order within a period, starting at the series weekday
    ordered = sorted(days, key=lambda wd: (wd - base_weekday) % 7)

    weeks = max(0, window_start - base_start) // SECONDS_PER_WEEK
    start_period = max(0, weeks // interval - 1)

    if remaining is not None and start_period:
        skipped = start_period * len(ordered)
        if base_weekday in days:
            skipped -= 1
        if skipped >= remaining:
            return []
        remaining -= skipped

    starts = []
    for period in range(start_period, start_period + MAX_WEEKLY_ITERATIONS):
        for weekday in ordered:
            offset = (weekday - base_weekday) % 7 + 7 * interval * period
            if offset == 0:
                continue
            ts = add_local_days(base_dt, offset)
            if ts <= base_start:
                continue
            if until is not None and ts > until:
                return starts
            if ts > window_end:
                return starts
            starts.append(ts)
            if remaining is not None:
                remaining -= 1
                if remaining <= 0:
                    return starts
    return starts


def _cancellations(templates: Iterable[EventTemplate]) -> tuple[set[tuple[str, int]], set[str]]:
    occurrences: set[tuple[str, int]] = set()
    series: set[str] = set()
    for template in templates:
        uid = template.uid.strip()
        if not template.cancelled or not uid:
            continue
        if template.recurrence_id is not None:
            occurrences.add((uid, template.recurrence_id))
        else:
            series.add(uid)
    return occurrences, series


def expand_templates(
    templates: Iterable[EventTemplate],
    window_start: int,
    window_end: int,
    resolver: TimeZoneResolver,
) -> list[Occurrence]:
    """Materialize occurrences up to window_end, sorted by start."""
    templates = list(templates)
    cancelled_occurrences, cancelled_series = _cancellations(templates)
    expanded: list[Occurrence] = []

    for template in templates:
        duration = template.duration
        if duration <= 0:
            continue

        uid = template.uid.strip()

        if template.cancelled:
            # Kept for display only, never expanded
            if template.end > window_start and template.start <= window_end:
                expanded.append(
                    Occurrence(template.start, template.end, template.summary, template.status, template.uid)
                )
            continue

        if uid and uid in cancelled_series:
            _LOGGER.debug("Skipping cancelled series %s", uid)
            continue

        candidates = {template.start, *template.rdates}
        if template.rrule:
            candidates.update(
                generate_rrule_starts(
                    template.start, template.rrule, template.timezone_name,
                    window_start, window_end, resolver,
                )
            )

        for start in sorted(candidates):
            if start in template.exdates:
                continue
            if uid and (uid, start) in cancelled_occurrences:
                _LOGGER.debug("Skipping cancelled occurrence %s at %d", uid, start)
                continue
            if start + duration <= 0 or start > window_end:
                continue
            expanded.append(
                Occurrence(start, start + duration, template.summary, template.status, template.uid)
            )

    expanded.sort(key=lambda occ: occ.start)
    _LOGGER.debug("Expanded %d templates into %d occurrences", len(templates), len(expanded))
    return expanded
