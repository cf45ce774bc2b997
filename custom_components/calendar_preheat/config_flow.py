"""Config flow for Calendar Preheat integration."""
from __future__ import annotations

import json
from typing import Any
import voluptuous as vol

from homeassistant import config_entries
from homeassistant.const import CONF_NAME
from homeassistant.core import callback
from homeassistant.data_entry_flow import FlowResult
from homeassistant.helpers import selector

from .const import (
    DOMAIN,
    CONF_CALENDAR_URL,
    CONF_CAL_USER,
    CONF_CAL_PASS,
    CONF_TEMPERATURE,
    CONF_SETPOINT_WARM,
    CONF_HEATING_RATE,
    CONF_LOOKAHEAD_HOURS,
    CONF_BUFFER_MIN,
    CONF_EVAL_INTERVAL,
    CONF_HOLD_STRATEGY,
    CONF_EVENT_BLACKLIST,
    CONF_UPCOMING_COUNT,
    HOLD_SUSTAIN,
    HOLD_PREHEAT_ONLY,
    DEFAULT_NAME,
    DEFAULT_SETPOINT_WARM,
    DEFAULT_HEATING_RATE,
    DEFAULT_LOOKAHEAD_HOURS,
    DEFAULT_BUFFER_MIN,
    DEFAULT_EVAL_INTERVAL,
    DEFAULT_HOLD_STRATEGY,
    DEFAULT_EVENT_BLACKLIST,
    DEFAULT_UPCOMING_COUNT,
    MIN_EVAL_INTERVAL,
)

HOLD_OPTIONS = [
    {"value": str(HOLD_SUSTAIN), "label": "Keep heating until the event ends"},
    {"value": str(HOLD_PREHEAT_ONLY), "label": "Preheat only (release at event start)"},
]

def validate_input(user_input: dict[str, Any]) -> dict[str, str]:
    """Return form errors keyed by field."""
    errors = {}
    try:
        if float(user_input.get(CONF_HEATING_RATE, DEFAULT_HEATING_RATE)) <= 0:
            errors[CONF_HEATING_RATE] = "heating_rate_invalid"
    except (TypeError, ValueError):
        errors[CONF_HEATING_RATE] = "heating_rate_invalid"

    raw = user_input.get(CONF_EVENT_BLACKLIST, DEFAULT_EVENT_BLACKLIST)
    if raw:
        try:
            decoded = json.loads(raw)
        except (TypeError, ValueError):
            decoded = None
        if not isinstance(decoded, list):
            errors[CONF_EVENT_BLACKLIST] = "blacklist_invalid"
    return errors

def normalize_input(user_input: dict[str, Any]) -> dict[str, Any]:
    """Coerce selector values (numbers arrive as float, selects as str)."""
    data = dict(user_input)
    for key in (CONF_LOOKAHEAD_HOURS, CONF_BUFFER_MIN, CONF_EVAL_INTERVAL, CONF_UPCOMING_COUNT, CONF_HOLD_STRATEGY):
        if key in data and data[key] is not None:
            data[key] = int(float(data[key]))
    if CONF_EVAL_INTERVAL in data:
        data[CONF_EVAL_INTERVAL] = max(MIN_EVAL_INTERVAL, data[CONF_EVAL_INTERVAL])
    if not data.get(CONF_EVENT_BLACKLIST):
        data[CONF_EVENT_BLACKLIST] = DEFAULT_EVENT_BLACKLIST
    return data

def _schema_fields() -> dict:
    return {
        vol.Optional(CONF_CALENDAR_URL, default=""): selector.TextSelector(
            selector.TextSelectorConfig(type=selector.TextSelectorType.URL)
        ),
        vol.Optional(CONF_CAL_USER, default=""): selector.TextSelector(),
        vol.Optional(CONF_CAL_PASS, default=""): selector.TextSelector(
            selector.TextSelectorConfig(type=selector.TextSelectorType.PASSWORD)
        ),
        vol.Optional(CONF_TEMPERATURE): selector.EntitySelector(
            selector.EntitySelectorConfig(domain=["sensor", "input_number"])
        ),
        vol.Optional(CONF_SETPOINT_WARM, default=DEFAULT_SETPOINT_WARM): selector.NumberSelector(
            selector.NumberSelectorConfig(min=5.0, max=30.0, step=0.5, unit_of_measurement="°C", mode="box")
        ),
        vol.Optional(CONF_HEATING_RATE, default=DEFAULT_HEATING_RATE): selector.NumberSelector(
            selector.NumberSelectorConfig(min=0.0, max=20.0, step=0.1, unit_of_measurement="K/h", mode="box")
        ),
        vol.Optional(CONF_LOOKAHEAD_HOURS, default=DEFAULT_LOOKAHEAD_HOURS): selector.NumberSelector(
            selector.NumberSelectorConfig(min=1, max=336, unit_of_measurement="h", mode="box")
        ),
        vol.Optional(CONF_BUFFER_MIN, default=DEFAULT_BUFFER_MIN): selector.NumberSelector(
            selector.NumberSelectorConfig(min=0, max=240, unit_of_measurement="min", mode="box")
        ),
        vol.Optional(CONF_EVAL_INTERVAL, default=DEFAULT_EVAL_INTERVAL): selector.NumberSelector(
            selector.NumberSelectorConfig(min=MIN_EVAL_INTERVAL, max=3600, unit_of_measurement="s", mode="box")
        ),
        vol.Optional(CONF_HOLD_STRATEGY, default=str(DEFAULT_HOLD_STRATEGY)): selector.SelectSelector(
            selector.SelectSelectorConfig(
                options=HOLD_OPTIONS,
                mode=selector.SelectSelectorMode.DROPDOWN,
                translation_key="hold_strategy"
            )
        ),
        vol.Optional(CONF_EVENT_BLACKLIST, default=DEFAULT_EVENT_BLACKLIST): selector.TextSelector(
            selector.TextSelectorConfig(multiline=True)
        ),
        vol.Optional(CONF_UPCOMING_COUNT, default=DEFAULT_UPCOMING_COUNT): selector.NumberSelector(
            selector.NumberSelectorConfig(min=1, max=50, mode="box")
        ),
    }

class CalendarPreheatConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Calendar Preheat."""

    VERSION = 1

    async def async_step_user(self, user_input: dict[str, Any] | None = None) -> FlowResult:
        """Handle the initial step."""
        errors = {}

        if user_input is not None:
            errors = validate_input(user_input)
            if not errors:
                data = normalize_input(user_input)
                return self.async_create_entry(title=data.pop(CONF_NAME), data=data)

        data_schema = vol.Schema({
            vol.Required(CONF_NAME, default=DEFAULT_NAME): str,
            **_schema_fields(),
        })
        if user_input is not None:
            data_schema = self.add_suggested_values_to_schema(data_schema, user_input)

        return self.async_show_form(step_id="user", data_schema=data_schema, errors=errors)

    @staticmethod
    @callback
    def async_get_options_flow(config_entry: config_entries.ConfigEntry) -> CalendarPreheatOptionsFlow:
        return CalendarPreheatOptionsFlow()

class CalendarPreheatOptionsFlow(config_entries.OptionsFlow):
    """Handle options flow."""

    async def async_step_init(self, user_input: dict[str, Any] | None = None) -> FlowResult:
        """Manage options."""
        errors = {}

        if user_input is not None:
            errors = validate_input(user_input)
            if not errors:
                return self.async_create_entry(title="", data=normalize_input(user_input))

        # Stored values first, then whatever was just submitted
        data = {**self.config_entry.data, **self.config_entry.options}
        if user_input:
            data.update(user_input)
        if CONF_HOLD_STRATEGY in data:
            data[CONF_HOLD_STRATEGY] = str(data[CONF_HOLD_STRATEGY])

        schema = self.add_suggested_values_to_schema(vol.Schema(_schema_fields()), data)
        return self.async_show_form(step_id="init", data_schema=schema, errors=errors)
