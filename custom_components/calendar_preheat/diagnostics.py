"""Diagnostics support for Calendar Preheat."""
from __future__ import annotations

from typing import Any

from homeassistant.components.diagnostics import async_redact_data
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from .coordinator import CalendarPreheatCoordinator

from .const import CONF_CALENDAR_URL, CONF_CAL_USER, CONF_CAL_PASS, CONF_TEMPERATURE

TO_REDACT = {
    "unique_id", "entry_id",
    CONF_CALENDAR_URL, CONF_CAL_USER, CONF_CAL_PASS, CONF_TEMPERATURE,
}

async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry
) -> dict[str, Any]:
    """Return diagnostics for a config entry."""
    coordinator: CalendarPreheatCoordinator = entry.runtime_data
    config = coordinator.config

    last_cycle = None
    result = coordinator.last_result
    if result is not None:
        last_cycle = {
            "demand": result.demand,
            "status": result.status,
            "fallback_used": result.fallback_used,
            "next_event": result.next_event_iso,
            "preheat_start": result.preheat_iso,
            "upcoming_count": len(result.rows),
            "warnings": list(result.warnings),
        }

    return {
        "entry_data": async_redact_data(entry.data, TO_REDACT),
        "entry_options": async_redact_data(entry.options, TO_REDACT),
        "config": {
            "setpoint_warm": config.setpoint_warm,
            "heating_rate": config.heating_rate,
            "lookahead_hours": config.lookahead_hours,
            "buffer_minutes": config.preheat_buffer_minutes,
            "hold_strategy": config.hold_strategy,
            "blacklist_rules": len(config.blacklist),
            "legacy_blacklist_warned": coordinator.legacy_blacklist_warned,
        },
        "state": coordinator.state.as_dict(),
        "last_cycle": last_cycle,
    }
