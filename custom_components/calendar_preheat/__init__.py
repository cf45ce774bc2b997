"""The Calendar Preheat integration."""
from __future__ import annotations

import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant

from homeassistant.helpers import config_validation as cv

from .const import DOMAIN

_LOGGER = logging.getLogger(__name__)

PLATFORMS: list[Platform] = [Platform.SENSOR, Platform.BINARY_SENSOR, Platform.BUTTON]

CONFIG_SCHEMA = cv.config_entry_only_config_schema(DOMAIN)

CalendarPreheatConfigEntry = ConfigEntry

async def async_setup(hass: HomeAssistant, config: dict) -> bool:
    """Set up the Calendar Preheat component globally."""
    return True

async def async_setup_entry(hass: HomeAssistant, entry: CalendarPreheatConfigEntry) -> bool:
    """Set up Calendar Preheat from a config entry."""
    from .coordinator import CalendarPreheatCoordinator
    coordinator = CalendarPreheatCoordinator(hass, entry)

    await coordinator.async_load_data()
    await coordinator.async_config_entry_first_refresh()

    entry.runtime_data = coordinator

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    entry.async_on_unload(entry.add_update_listener(async_reload_entry))

    return True

async def async_unload_entry(hass: HomeAssistant, entry: CalendarPreheatConfigEntry) -> bool:
    """Unload a config entry."""
    unloaded = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unloaded:
        # Flush pending state writes
        await entry.runtime_data._async_save_data()
    return unloaded

async def async_reload_entry(hass: HomeAssistant, entry: CalendarPreheatConfigEntry) -> None:
    """Reload config entry when options change."""
    await hass.config_entries.async_reload(entry.entry_id)
