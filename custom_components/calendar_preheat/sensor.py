"""Sensor platform for Calendar Preheat."""
from __future__ import annotations

from typing import Any
from datetime import datetime

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntity,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN, VERSION, STATUS_OPTIONS
from .coordinator import CalendarPreheatCoordinator

async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up sensors."""
    coordinator: CalendarPreheatCoordinator = entry.runtime_data

    sensors = [
        NextEventSensor(coordinator, entry),
        NextPreheatSensor(coordinator, entry),
        CalendarStatusSensor(coordinator, entry),
        UpcomingEventsSensor(coordinator, entry),
    ]

    async_add_entities(sensors)

class CalendarPreheatBaseSensor(CoordinatorEntity[CalendarPreheatCoordinator], SensorEntity):
    """Base sensor."""
    _attr_has_entity_name = True

    def __init__(self, coordinator: CalendarPreheatCoordinator, entry: ConfigEntry) -> None:
        super().__init__(coordinator)
        self._entry = entry
        self._attr_device_info = {
            "identifiers": {(DOMAIN, entry.entry_id)},
            "name": entry.title,
            "manufacturer": "Calendar Preheat",
            "model": "Calendar Preheat Scheduler",
            "sw_version": VERSION,
        }

class NextEventSensor(CalendarPreheatBaseSensor):
    """Start of the operative event (or the remembered one during an outage)."""
    _attr_translation_key = "next_event"
    _attr_device_class = SensorDeviceClass.TIMESTAMP
    _attr_icon = "mdi:calendar-clock"

    @property
    def unique_id(self) -> str:
        return f"{self._entry.entry_id}_next_event"

    @property
    def native_value(self) -> datetime | None:
        return self.coordinator.data.next_event_start

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        data = self.coordinator.data
        return {
            "iso": data.next_event_iso,
            "end": data.next_event_end.isoformat() if data.next_event_end else None,
            "fallback_used": data.fallback_used,
        }

class NextPreheatSensor(CalendarPreheatBaseSensor):
    """When heating has to start for the next event."""
    _attr_translation_key = "next_preheat"
    _attr_device_class = SensorDeviceClass.TIMESTAMP
    _attr_icon = "mdi:radiator"

    @property
    def unique_id(self) -> str:
        return f"{self._entry.entry_id}_next_preheat"

    @property
    def native_value(self) -> datetime | None:
        return self.coordinator.data.preheat_start

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        return {"iso": self.coordinator.data.preheat_iso}

class CalendarStatusSensor(CalendarPreheatBaseSensor):
    """Health of the calendar source."""
    _attr_translation_key = "calendar_status"
    _attr_device_class = SensorDeviceClass.ENUM
    _attr_options = STATUS_OPTIONS
    _attr_icon = "mdi:calendar-alert"

    @property
    def unique_id(self) -> str:
        return f"{self._entry.entry_id}_calendar_status"

    @property
    def native_value(self) -> str:
        return self.coordinator.data.status

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        return {"warnings": list(self.coordinator.data.warnings)}

class UpcomingEventsSensor(CalendarPreheatBaseSensor):
    """Number of upcoming events, with the display rows as attribute."""
    _attr_translation_key = "upcoming_events"
    _attr_icon = "mdi:calendar-multiple"

    @property
    def unique_id(self) -> str:
        return f"{self._entry.entry_id}_upcoming_events"

    @property
    def native_value(self) -> int:
        return len(self.coordinator.data.upcoming)

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        return {"events": self.coordinator.data.upcoming}
