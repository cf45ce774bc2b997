"""Button platform for Calendar Preheat integration."""
from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import TYPE_CHECKING

from homeassistant.components.button import (
    ButtonEntity,
    ButtonEntityDescription,
)
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN, VERSION
from .coordinator import CalendarPreheatCoordinator

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback
    from . import CalendarPreheatConfigEntry

@dataclass(frozen=True, kw_only=True)
class CalendarPreheatButtonDescription(ButtonEntityDescription):
    """Class to describe a Calendar Preheat button."""
    press_action: str

BUTTONS: tuple[CalendarPreheatButtonDescription, ...] = (
    CalendarPreheatButtonDescription(
        key="refresh",
        translation_key="refresh",
        icon="mdi:calendar-refresh",
        press_action="async_force_refresh",
    ),
)

async def async_setup_entry(
    hass: HomeAssistant,
    entry: CalendarPreheatConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up the buttons."""
    coordinator = entry.runtime_data
    async_add_entities(
        CalendarPreheatButton(coordinator, entry, description)
        for description in BUTTONS
    )

class CalendarPreheatButton(CoordinatorEntity[CalendarPreheatCoordinator], ButtonEntity):
    """Representation of a Calendar Preheat button."""

    _attr_has_entity_name = True
    entity_description: CalendarPreheatButtonDescription

    def __init__(
        self,
        coordinator: CalendarPreheatCoordinator,
        entry: CalendarPreheatConfigEntry,
        description: CalendarPreheatButtonDescription,
    ) -> None:
        """Initialize the button."""
        super().__init__(coordinator)
        self.entity_description = description
        self.entry_id = entry.entry_id
        self._attr_unique_id = f"{entry.entry_id}_{description.key}"

    @cached_property
    def device_info(self) -> DeviceInfo:
        """Return device information."""
        return DeviceInfo(
            identifiers={(DOMAIN, self.entry_id)},
            name=self.coordinator.device_name,
            manufacturer="Calendar Preheat",
            model="Calendar Preheat Scheduler",
            sw_version=VERSION,
        )

    async def async_press(self) -> None:
        """Handle the button press."""
        await getattr(self.coordinator, self.entity_description.press_action)()
