"""Binary Sensor platform for Calendar Preheat."""
from __future__ import annotations

from typing import Any

from homeassistant.components.binary_sensor import (
    BinarySensorEntity,
    BinarySensorDeviceClass,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN, VERSION
from .coordinator import CalendarPreheatCoordinator

async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up binary sensors."""
    coordinator: CalendarPreheatCoordinator = entry.runtime_data
    async_add_entities([HeatingDemandBinarySensor(coordinator, entry)])

class CalendarPreheatBaseBinarySensor(CoordinatorEntity[CalendarPreheatCoordinator], BinarySensorEntity):
    """Base binary sensor."""
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

class HeatingDemandBinarySensor(CalendarPreheatBaseBinarySensor):
    """On while the room should be heated (preheat window, running event or hold)."""
    _attr_translation_key = "heating_demand"
    _attr_device_class = BinarySensorDeviceClass.HEAT

    @property
    def unique_id(self) -> str:
        return f"{self._entry.entry_id}_heating_demand"

    @property
    def is_on(self) -> bool:
        return self.coordinator.data.heating_demand

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        data = self.coordinator.data
        return {
            "hold_until": data.hold_until.isoformat() if data.hold_until else None,
            "fallback_used": data.fallback_used,
            "calendar_status": data.status,
            "current_temp": data.temperature,
        }
