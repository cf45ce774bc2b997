"""Type definitions for the Calendar Preheat scheduler."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any, Mapping

from .const import (
    CONF_SETPOINT_WARM,
    CONF_HEATING_RATE,
    CONF_LOOKAHEAD_HOURS,
    CONF_BUFFER_MIN,
    CONF_HOLD_STRATEGY,
    CONF_UPCOMING_COUNT,
    DEFAULT_SETPOINT_WARM,
    DEFAULT_HEATING_RATE,
    DEFAULT_LOOKAHEAD_HOURS,
    DEFAULT_BUFFER_MIN,
    DEFAULT_HOLD_STRATEGY,
    DEFAULT_UPCOMING_COUNT,
    HOLD_SUSTAIN,
    STATUS_OK,
)


class EventStatus(StrEnum):
    """Calendar STATUS values the scheduler distinguishes."""
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    OTHER = "OTHER"

    @classmethod
    def from_ics(cls, value: str) -> EventStatus:
        value = value.strip().upper()
        if value == cls.CONFIRMED:
            return cls.CONFIRMED
        if value == cls.CANCELLED:
            return cls.CANCELLED
        return cls.OTHER


@dataclass(frozen=True)
class EventTemplate:
    """A VEVENT as parsed, possibly describing a recurring series."""
    start: int
    end: int
    summary: str = ""
    status: EventStatus = EventStatus.OTHER
    uid: str = ""
    recurrence_id: int | None = None
    timezone_name: str | None = None
    rrule: str = ""
    rdates: frozenset[int] = frozenset()
    exdates: frozenset[int] = frozenset()

    @property
    def duration(self) -> int:
        return self.end - self.start

    @property
    def cancelled(self) -> bool:
        return self.status == EventStatus.CANCELLED


@dataclass(frozen=True)
class Occurrence:
    """One concrete, non-recurring instance of a template."""
    start: int
    end: int
    summary: str = ""
    status: EventStatus = EventStatus.OTHER
    uid: str = ""

    @property
    def cancelled(self) -> bool:
        return self.status == EventStatus.CANCELLED

    def is_active(self, now: int) -> bool:
        return self.start <= now < self.end


@dataclass(frozen=True)
class BlacklistRule:
    """Summary filter. Fragments are stored lower-cased; empty means don't care."""
    starts_with: str = ""
    ends_with: str = ""

    def matches(self, summary: str) -> bool:
        text = summary.lower()
        if self.starts_with and not text.startswith(self.starts_with):
            return False
        if self.ends_with and not text.endswith(self.ends_with):
            return False
        return True


@dataclass(frozen=True)
class SchedulerState:
    """State carried from one evaluation cycle to the next (0 = none)."""
    last_operative_start: int = 0
    last_operative_end: int = 0
    demand_hold_until: int = 0
    current_demand: bool = False

    @property
    def remembered(self) -> Occurrence | None:
        """The last real operative occurrence, if a valid one is stored."""
        start, end = self.last_operative_start, self.last_operative_end
        if start > 0 and end > start:
            return Occurrence(start=start, end=end)
        return None

    def forget_operative(self) -> SchedulerState:
        return replace(self, last_operative_start=0, last_operative_end=0)

    def as_dict(self) -> dict[str, Any]:
        return {
            "last_operative_start": self.last_operative_start,
            "last_operative_end": self.last_operative_end,
            "demand_hold_until": self.demand_hold_until,
            "current_demand": self.current_demand,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> SchedulerState:
        if not data:
            return cls()
        try:
            return cls(
                last_operative_start=int(data.get("last_operative_start", 0)),
                last_operative_end=int(data.get("last_operative_end", 0)),
                demand_hold_until=int(data.get("demand_hold_until", 0)),
                current_demand=bool(data.get("current_demand", False)),
            )
        except (TypeError, ValueError):
            return cls()


@dataclass(frozen=True)
class SchedulerConfig:
    """Engine configuration, already clamped to valid ranges."""
    setpoint_warm: float = DEFAULT_SETPOINT_WARM
    heating_rate: float = DEFAULT_HEATING_RATE
    lookahead_hours: int = DEFAULT_LOOKAHEAD_HOURS
    preheat_buffer_minutes: int = DEFAULT_BUFFER_MIN
    hold_strategy: int = DEFAULT_HOLD_STRATEGY
    blacklist: tuple[BlacklistRule, ...] = ()
    upcoming_display_count: int = DEFAULT_UPCOMING_COUNT

    @property
    def lookahead_seconds(self) -> int:
        return max(1, self.lookahead_hours) * 3600

    @property
    def buffer_seconds(self) -> int:
        return max(0, self.preheat_buffer_minutes) * 60

    @property
    def sustain_through_event(self) -> bool:
        return self.hold_strategy == HOLD_SUSTAIN

    @classmethod
    def from_options(
        cls,
        options: Mapping[str, Any],
        blacklist: tuple[BlacklistRule, ...] = (),
    ) -> SchedulerConfig:
        """Build from config entry values; bad numbers fall back to defaults."""
        def _num(key: str, default: float, cast=float):
            try:
                return cast(options.get(key, default))
            except (TypeError, ValueError):
                return cast(default)

        return cls(
            setpoint_warm=_num(CONF_SETPOINT_WARM, DEFAULT_SETPOINT_WARM),
            heating_rate=_num(CONF_HEATING_RATE, DEFAULT_HEATING_RATE),
            lookahead_hours=max(1, _num(CONF_LOOKAHEAD_HOURS, DEFAULT_LOOKAHEAD_HOURS, int)),
            preheat_buffer_minutes=max(0, _num(CONF_BUFFER_MIN, DEFAULT_BUFFER_MIN, int)),
            hold_strategy=_num(CONF_HOLD_STRATEGY, DEFAULT_HOLD_STRATEGY, int),
            blacklist=tuple(blacklist),
            upcoming_display_count=max(1, _num(CONF_UPCOMING_COUNT, DEFAULT_UPCOMING_COUNT, int)),
        )


@dataclass(frozen=True)
class CalendarInput:
    """What the host hands the engine: calendar text, a failure, or nothing."""
    text: str | None = None
    configured: bool = True
    failure_reason: str | None = None

    @property
    def failed(self) -> bool:
        return self.configured and self.text is None

    @classmethod
    def unconfigured(cls) -> CalendarInput:
        return cls(text=None, configured=False)

    @classmethod
    def from_text(cls, text: str) -> CalendarInput:
        return cls(text=text)

    @classmethod
    def failure(cls, reason: str | None = None) -> CalendarInput:
        return cls(text=None, failure_reason=reason or "")


@dataclass(frozen=True)
class Selection:
    """Result of the event selection pass."""
    operative: Occurrence | None
    upcoming: tuple[Occurrence, ...] = ()


@dataclass(frozen=True)
class DemandDecision:
    """Result of one demand evaluation."""
    demand: bool
    preheat_start: int
    state: SchedulerState
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class DisplayRow:
    summary: str
    start: int
    end: int
    status_label: str
    cancelled: bool = False

    def as_dict(self, start_iso: str, end_iso: str) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "start": start_iso,
            "end": end_iso,
            "status": self.status_label,
            "cancelled": self.cancelled,
        }


@dataclass(frozen=True)
class CycleResult:
    """Everything one evaluation cycle produces."""
    demand: bool
    state: SchedulerState
    status: str = STATUS_OK
    operative: Occurrence | None = None
    fallback_used: bool = False
    preheat_start: int = 0
    next_event_iso: str = "-"
    preheat_iso: str = "-"
    rows: tuple[DisplayRow, ...] = ()
    warnings: tuple[str, ...] = field(default_factory=tuple)
