"""One evaluation cycle: calendar text in, heating demand and display rows out."""
from __future__ import annotations

import logging
import re
from typing import Iterable

from .const import (
    LABEL_CANCELLED,
    LABEL_COMPLETED,
    LABEL_PREHEATING,
    LABEL_RUNNING,
    LABEL_UNTITLED,
    NO_VALUE,
    STATUS_AUTH_ERROR,
    STATUS_FETCH_ERROR,
    STATUS_OK,
    STATUS_UNCONFIGURED,
    WARN_ENGINE_ERROR,
)
from .demand import DemandEngine, compute_preheat_start
from .ics_parser import parse_calendar
from .planner import EventPlanner, fallback_occurrence, filter_blacklisted
from .recurrence import expand_templates
from .time_utils import TimeZoneResolver, format_countdown, format_iso
from .types import (
    CalendarInput,
    CycleResult,
    DisplayRow,
    Occurrence,
    SchedulerConfig,
    SchedulerState,
    Selection,
)

_LOGGER = logging.getLogger(__name__)

_AUTH_CODES = re.compile(r"\b40[13]\b")

_planner = EventPlanner()
_demand = DemandEngine()


def classify_failure(reason: str | None) -> str:
    """Map a fetch failure reason to a health status."""
    if reason and _AUTH_CODES.search(reason):
        return STATUS_AUTH_ERROR
    return STATUS_FETCH_ERROR


def calendar_status(calendar: CalendarInput) -> str:
    if not calendar.configured:
        return STATUS_UNCONFIGURED
    if calendar.failed:
        return classify_failure(calendar.failure_reason)
    return STATUS_OK


def status_label(
    occ: Occurrence, now: int, preheat_start: int, state: SchedulerState
) -> str:
    """Human status of one displayed occurrence."""
    if occ.cancelled:
        return LABEL_CANCELLED
    if occ.is_active(now):
        return LABEL_RUNNING
    if (
        state.current_demand
        and state.last_operative_start == occ.start
        and state.demand_hold_until > now
        and now < occ.start
    ):
        return LABEL_PREHEATING
    if preheat_start <= now < occ.start:
        return LABEL_PREHEATING
    if now < preheat_start:
        return format_countdown(preheat_start - now)
    return LABEL_COMPLETED


def build_display_rows(
    upcoming: Iterable[Occurrence],
    now: int,
    temperature: float | None,
    config: SchedulerConfig,
    state: SchedulerState,
) -> tuple[DisplayRow, ...]:
    rows = []
    for occ in upcoming:
        preheat_start, _ = compute_preheat_start(occ.start, temperature, config)
        rows.append(
            DisplayRow(
                summary=occ.summary.strip() or LABEL_UNTITLED,
                start=occ.start,
                end=occ.end,
                status_label=status_label(occ, now, preheat_start, state),
                cancelled=occ.cancelled,
            )
        )
    return tuple(rows)


def _select(
    now: int,
    calendar: CalendarInput,
    config: SchedulerConfig,
    state: SchedulerState,
    resolver: TimeZoneResolver,
) -> tuple[Selection, SchedulerState]:
    if not calendar.configured or calendar.text is None:
        return Selection(operative=None), state

    templates = parse_calendar(calendar.text, resolver)
    if not filter_blacklisted(templates, config.blacklist):
        _LOGGER.debug("No events in calendar after blacklist filter")
        return Selection(operative=None), state.forget_operative()

    # Blacklisted cancellations must still cancel, so filtering waits for select()
    horizon = now + config.lookahead_seconds
    occurrences = expand_templates(templates, now, horizon, resolver)
    selection = _planner.select(
        occurrences, config.blacklist, now, horizon, config.upcoming_display_count
    )
    return selection, state


def _evaluate(
    now: int,
    calendar: CalendarInput,
    temperature: float | None,
    config: SchedulerConfig,
    state: SchedulerState,
    resolver: TimeZoneResolver,
) -> CycleResult:
    status = calendar_status(calendar)
    selection, state = _select(now, calendar, config, state, resolver)

    operative = selection.operative
    fallback_used = False
    if operative is None:
        operative = fallback_occurrence(state, now)
        fallback_used = operative is not None
        if fallback_used:
            _LOGGER.debug("Using remembered event %d..%d as fallback", operative.start, operative.end)

    decision = _demand.evaluate(operative, now, temperature, config, state, fallback=fallback_used)

    tz = resolver.default
    return CycleResult(
        demand=decision.demand,
        state=decision.state,
        status=status,
        operative=operative,
        fallback_used=fallback_used,
        preheat_start=decision.preheat_start,
        next_event_iso=format_iso(operative.start, tz) if operative else NO_VALUE,
        preheat_iso=NO_VALUE if fallback_used else format_iso(decision.preheat_start, tz),
        rows=build_display_rows(selection.upcoming, now, temperature, config, decision.state),
        warnings=decision.warnings,
    )


def evaluate_cycle(
    now: int,
    calendar: CalendarInput,
    temperature: float | None,
    config: SchedulerConfig,
    state: SchedulerState,
    resolver: TimeZoneResolver,
) -> CycleResult:
    """
    Run parse, expand, select and decide for one instant.

    Pure: identical inputs give identical results. Never raises; an
    unexpected error keeps the previous demand under the fallback rules.
    """
    try:
        return _evaluate(now, calendar, temperature, config, state, resolver)
    except Exception:
        _LOGGER.exception("Unexpected error during evaluation cycle")

    fallback = fallback_occurrence(state, now)
    demand = state.current_demand and (fallback is not None or state.demand_hold_until > now)
    return CycleResult(
        demand=demand,
        state=SchedulerState(
            last_operative_start=state.last_operative_start,
            last_operative_end=state.last_operative_end,
            demand_hold_until=state.demand_hold_until,
            current_demand=demand,
        ),
        status=calendar_status(calendar),
        operative=fallback,
        fallback_used=fallback is not None,
        warnings=(WARN_ENGINE_ERROR,),
    )
