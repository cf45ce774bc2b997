"""Coordinator for Calendar Preheat integration."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
import logging
from typing import Any, TYPE_CHECKING

from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.issue_registry import async_create_issue, async_delete_issue, IssueSeverity
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed
from homeassistant.helpers.event import async_track_state_change_event
from homeassistant.helpers.storage import Store
from homeassistant.util import dt as dt_util

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry

from .const import (
    DOMAIN,
    CONF_CALENDAR_URL,
    CONF_CAL_USER,
    CONF_CAL_PASS,
    CONF_TEMPERATURE,
    CONF_EVAL_INTERVAL,
    CONF_EVENT_BLACKLIST,
    DEFAULT_EVAL_INTERVAL,
    DEFAULT_EVENT_BLACKLIST,
    MIN_EVAL_INTERVAL,
    STATUS_AUTH_ERROR,
    STORAGE_VERSION,
    STORAGE_KEY_TEMPLATE,
    WARN_BLACKLIST_LEGACY,
    WARN_HEATING_RATE,
    WARN_NO_TEMPERATURE,
)
from .calendar_source import CalendarSource
from .engine import evaluate_cycle
from .planner import parse_blacklist
from .time_utils import ZoneInfoResolver
from .types import CycleResult, Occurrence, SchedulerConfig, SchedulerState

_LOGGER = logging.getLogger(__name__)

# Warnings logged once when they first appear, then again only after clearing
_WARNING_MESSAGES = {
    WARN_NO_TEMPERATURE: "Temperature sensor not set or unavailable, preheat uses buffer only",
    WARN_HEATING_RATE: "Heating rate must be greater than zero, preheat uses buffer only",
}


@dataclass(frozen=True)
class CalendarPreheatData:
    """Class to hold coordinator data."""
    heating_demand: bool
    status: str
    next_event_start: datetime | None
    next_event_end: datetime | None
    next_event_iso: str
    preheat_start: datetime | None
    preheat_iso: str
    hold_until: datetime | None
    fallback_used: bool
    temperature: float | None
    upcoming: list[dict[str, Any]] = field(default_factory=list)
    warnings: tuple[str, ...] = ()


def _as_datetime(ts: int) -> datetime | None:
    if not ts or ts <= 0:
        return None
    return dt_util.as_local(dt_util.utc_from_timestamp(ts))


class CalendarPreheatCoordinator(DataUpdateCoordinator[CalendarPreheatData]):
    """Coordinator that fetches the calendar and runs one evaluation per update."""

    def __init__(self, hass: HomeAssistant, entry: ConfigEntry) -> None:
        """Initialize coordinator."""
        interval = self._eval_interval(entry)
        super().__init__(
            hass,
            _LOGGER,
            name=f"{DOMAIN}_{entry.entry_id}",
            update_interval=timedelta(seconds=interval),
            config_entry=entry,
        )
        self.entry = entry
        self.device_name = entry.title

        self._store = Store(hass, STORAGE_VERSION, STORAGE_KEY_TEMPLATE.format(entry.entry_id))
        self.state = SchedulerState()
        self.last_result: CycleResult | None = None
        self._active_warnings: set[str] = set()

        self.source = CalendarSource(
            hass,
            self._get_conf(CONF_CALENDAR_URL, ""),
            self._get_conf(CONF_CAL_USER, ""),
            self._get_conf(CONF_CAL_PASS, ""),
        )

        rules, warnings = parse_blacklist(self._get_conf(CONF_EVENT_BLACKLIST, DEFAULT_EVENT_BLACKLIST))
        self.config = SchedulerConfig.from_options({**entry.data, **entry.options}, rules)
        # Once per coordinator instance
        self.legacy_blacklist_warned = False
        if WARN_BLACKLIST_LEGACY in warnings:
            self.legacy_blacklist_warned = True
            _LOGGER.warning(
                "%s: Regex blacklist entries are no longer supported. "
                "Please update the blacklist configuration.",
                self.device_name,
            )

        self._setup_listeners()

    @staticmethod
    def _eval_interval(entry: ConfigEntry) -> int:
        raw = entry.options.get(CONF_EVAL_INTERVAL, entry.data.get(CONF_EVAL_INTERVAL, DEFAULT_EVAL_INTERVAL))
        try:
            return max(MIN_EVAL_INTERVAL, int(raw))
        except (TypeError, ValueError):
            return DEFAULT_EVAL_INTERVAL

    def _get_conf(self, key: str, default: Any = None) -> Any:
        """Get config value from options, falling back to data > defaults."""
        options = self.entry.options
        if key in options:
            return options[key]
        if key in self.entry.data:
            return self.entry.data[key]
        return default

    async def async_load_data(self) -> None:
        """Load scheduler state from storage."""
        try:
            data = await self._store.async_load()
            if data:
                self.state = SchedulerState.from_dict(data.get("state"))
                _LOGGER.debug("Restored scheduler state: %s", self.state)
        except Exception:
            _LOGGER.exception("Failed loading data")

    def _get_data_for_storage(self) -> dict:
        """Prepare data for storage (sync helper)."""
        return {"version": 1, "state": self.state.as_dict()}

    async def _async_save_data(self) -> None:
        """Save scheduler state to storage."""
        try:
            await self._store.async_save(self._get_data_for_storage())
        except Exception as err:
            _LOGGER.error("Failed to save scheduler state: %s", err)

    def _setup_listeners(self) -> None:
        temp_sensor = self._get_conf(CONF_TEMPERATURE)
        if temp_sensor:
            self.entry.async_on_unload(
                async_track_state_change_event(
                    self.hass, [temp_sensor], self._handle_temperature_change
                )
            )

    @callback
    def _handle_temperature_change(self, event) -> None:
        new_state = event.data.get("new_state")
        old_state = event.data.get("old_state")
        if new_state is None:
            return
        if old_state is not None and old_state.state == new_state.state:
            return
        _LOGGER.debug("Temperature changed to %s, re-evaluating", new_state.state)
        self.hass.async_create_task(self.async_request_refresh())

    def _get_temperature(self) -> float | None:
        temp_sensor = self._get_conf(CONF_TEMPERATURE)
        if not temp_sensor:
            return None
        state = self.hass.states.get(temp_sensor)
        if state is None or state.state in ("unknown", "unavailable"):
            return None
        try:
            return float(state.state)
        except (ValueError, TypeError):
            return None

    def _update_auth_issue(self, status: str) -> None:
        issue_id = f"calendar_auth_{self.entry.entry_id}"
        if status == STATUS_AUTH_ERROR:
            async_create_issue(
                self.hass, DOMAIN, issue_id,
                is_fixable=False, severity=IssueSeverity.ERROR,
                translation_key="calendar_auth",
                translation_placeholders={"name": self.device_name},
            )
        else:
            async_delete_issue(self.hass, DOMAIN, issue_id)

    def _log_warnings(self, warnings: tuple[str, ...]) -> None:
        current = set(warnings)
        for code in sorted(current - self._active_warnings):
            message = _WARNING_MESSAGES.get(code)
            if message:
                _LOGGER.warning("%s: %s", self.device_name, message)
        self._active_warnings = current

    def _build_data(self, result: CycleResult, temperature: float | None) -> CalendarPreheatData:
        operative: Occurrence | None = result.operative
        upcoming = []
        for row in result.rows:
            start = _as_datetime(row.start)
            end = _as_datetime(row.end)
            upcoming.append(row.as_dict(
                start.isoformat() if start else "-",
                end.isoformat() if end else "-",
            ))

        return CalendarPreheatData(
            heating_demand=result.demand,
            status=result.status,
            next_event_start=_as_datetime(operative.start) if operative else None,
            next_event_end=_as_datetime(operative.end) if operative else None,
            next_event_iso=result.next_event_iso,
            preheat_start=None if result.fallback_used else _as_datetime(result.preheat_start),
            preheat_iso=result.preheat_iso,
            hold_until=_as_datetime(result.state.demand_hold_until),
            fallback_used=result.fallback_used,
            temperature=temperature,
            upcoming=upcoming,
            warnings=result.warnings,
        )

    async def _async_update_data(self) -> CalendarPreheatData:
        """Main Loop."""
        try:
            calendar = await self.source.async_fetch()
            temperature = self._get_temperature()
            now = int(dt_util.utcnow().timestamp())
            resolver = ZoneInfoResolver(dt_util.get_default_time_zone())

            result = evaluate_cycle(now, calendar, temperature, self.config, self.state, resolver)

            self._update_auth_issue(result.status)
            self._log_warnings(result.warnings)

            if result.state != self.state:
                self.state = result.state
                self._store.async_delay_save(self._get_data_for_storage, 10.0)

            self.last_result = result
            _LOGGER.debug(
                "Cycle done: demand=%s status=%s next=%s preheat=%s",
                result.demand, result.status, result.next_event_iso, result.preheat_iso,
            )
            return self._build_data(result, temperature)

        except Exception as err:
            raise UpdateFailed(f"Update failed: {err}") from err

    async def async_force_refresh(self) -> None:
        """Evaluate immediately (manual refresh)."""
        _LOGGER.info("Manual refresh requested for %s", self.device_name)
        await self.async_refresh()

    @property
    def heating_demand(self) -> bool:
        """Return True if heating is demanded."""
        return bool(self.data and self.data.heating_demand)
