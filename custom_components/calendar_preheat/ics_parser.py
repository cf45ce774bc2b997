"""Minimal iCalendar (RFC 5545) reader for the preheat scheduler.

Content lines are unfolded and tokenized with icalendar's content-line
parser. Instants are interpreted here: besides the RFC forms they accept
DATE-TIME values without minutes or seconds, which icalendar's value types
reject. Only the VEVENT properties the scheduler needs are read. Anything that
cannot be interpreted is skipped; the parser never raises for malformed input.
All-day events (VALUE=DATE or bare 8-digit dates) are not supported and are
dropped for lack of a start/end instant.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime, timezone, tzinfo
from typing import Any, Mapping

from icalendar.parser import Contentline, Contentlines

from .time_utils import TimeZoneResolver, zone_name
from .types import EventStatus, EventTemplate

_LOGGER = logging.getLogger(__name__)

_DATETIME = re.compile(r"(\d{4})(\d{2})(\d{2})T(\d{2})(\d{2})?(\d{2})?")


def unfold_lines(text: str) -> list[str]:
    """Split into logical lines, joining folded continuation lines."""
    # icalendar only splits on CRLF / LF; bare CR also ends a line here
    text = (text or "").replace("\r\n", "\n").replace("\r", "\n")
    try:
        lines = Contentlines.from_ical(text)
    except ValueError as err:
        _LOGGER.debug("Calendar text could not be split into lines: %s", err)
        return []
    return [str(line) for line in lines if line]


def parse_property(line: str) -> tuple[str, dict[str, str], str] | None:
    """
    'DTSTART;TZID=X:2024..' -> ('DTSTART', {'TZID': 'X'}, '2024..').

    Names and parameter keys come back upper-cased. None for a line that is
    not a valid content line.
    """
    try:
        name, params, value = Contentline(line).parts()
    except ValueError:
        return None
    return (
        str(name).strip().upper(),
        {str(key).upper(): str(val) for key, val in params.items()},
        str(value),
    )


def unescape_text(value: str) -> str:
    value = value.replace("\\n", "\n").replace("\\N", "\n")
    value = value.replace("\\,", ",")
    value = value.replace("\\;", ";")
    return value.replace("\\\\", "\\")


def parse_ics_instant(
    params: Mapping[str, Any] | None, value: str, resolver: TimeZoneResolver
) -> tuple[int | None, str | None]:
    """
    Parse a DATE-TIME property value into epoch seconds.

    Returns (timestamp, zone name); (None, None) when the value is a date
    only, malformed, or otherwise unusable.
    """
    params = {str(key).upper(): str(val) for key, val in (params or {}).items()}
    value = value.strip()
    if not value or params.get("VALUE", "").strip().upper() == "DATE":
        return None, None

    tz: tzinfo | None = None
    name = None
    if value.endswith("Z"):
        value = value[:-1]
        tz = timezone.utc
    else:
        tzid = params.get("TZID", "").strip().strip('"')
        if tzid:
            tz = resolver.resolve(tzid)
            if tz is None:
                _LOGGER.warning("Unknown timezone in calendar entry: %s", tzid)
            else:
                name = tzid
        if tz is None:
            tz = resolver.default

    # Bare date: all-day marker, not supported
    if len(value) == 8:
        return None, None

    match = _DATETIME.fullmatch(value)
    if not match:
        return None, None

    year, month, day, hour, minute, second = (int(g) if g else 0 for g in match.groups())
    try:
        local = datetime(year, month, day, hour, minute, second, tzinfo=tz)
    except ValueError:
        return None, None

    return int(local.timestamp()), name or zone_name(tz)


def parse_ics_instants(
    params: Mapping[str, Any] | None, value: str, resolver: TimeZoneResolver
) -> list[int]:
    """Comma separated instant lists (RDATE / EXDATE)."""
    result = []
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        ts, _ = parse_ics_instant(params, part, resolver)
        if ts is not None:
            result.append(ts)
    return result


def build_template(
    properties: list[tuple[str, dict[str, str], str]], resolver: TimeZoneResolver
) -> EventTemplate | None:
    """Build a template from the parsed properties of one VEVENT block."""
    start = end = None
    recurrence_id = None
    timezone_name = None
    summary = status = uid = rrule = ""
    rdates: set[int] = set()
    exdates: set[int] = set()

    for name, params, value in properties:
        if name == "DTSTART":
            start, timezone_name = parse_ics_instant(params, value, resolver)
        elif name == "DTEND":
            end, _ = parse_ics_instant(params, value, resolver)
        elif name == "SUMMARY":
            summary = unescape_text(value).strip()
        elif name == "STATUS":
            status = unescape_text(value).strip().upper()
        elif name == "UID":
            uid = unescape_text(value).strip()
        elif name == "RECURRENCE-ID":
            recurrence_id, _ = parse_ics_instant(params, value, resolver)
        elif name == "RRULE":
            rrule = value.strip()
        elif name == "RDATE":
            rdates.update(parse_ics_instants(params, value, resolver))
        elif name == "EXDATE":
            exdates.update(parse_ics_instants(params, value, resolver))

    if start is None or end is None:
        _LOGGER.debug("Skipping VEVENT without usable start/end (uid=%r)", uid)
        return None
    if end <= start:
        _LOGGER.debug("Skipping VEVENT with non-positive duration start=%d end=%d", start, end)
        return None

    return EventTemplate(
        start=start,
        end=end,
        summary=summary,
        status=EventStatus.from_ics(status),
        uid=uid,
        recurrence_id=recurrence_id,
        timezone_name=timezone_name,
        rrule=rrule,
        rdates=frozenset(rdates),
        exdates=frozenset(exdates),
    )


def parse_calendar(text: str, resolver: TimeZoneResolver) -> list[EventTemplate]:
    """Extract event templates (unexpanded) from calendar text."""
    templates: list[EventTemplate] = []
    in_event = False
    nested = 0
    block: list[tuple[str, dict[str, str], str]] = []

    for line in unfold_lines(text):
        prop = parse_property(line)
        if prop is None:
            continue
        name, _, value = prop
        marker = value.strip().upper()

        if name == "BEGIN" and marker == "VEVENT":
            in_event = True
            nested = 0
            block = []
            continue
        if name == "END" and marker == "VEVENT":
            if in_event and block:
                template = build_template(block, resolver)
                if template is not None:
                    templates.append(template)
            in_event = False
            block = []
            continue
        if not in_event:
            continue

        # Sub-components (VALARM, ...) carry their own SUMMARY etc.
        if name == "BEGIN":
            nested += 1
            continue
        if name == "END" and nested:
            nested -= 1
            continue
        if nested == 0:
            block.append(prop)

    _LOGGER.debug("Parsed %d event templates", len(templates))
    return templates
