"""Test Diagnostics."""
import sys
import os
import unittest
from unittest.mock import MagicMock

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from custom_components.calendar_preheat.const import (
    CONF_CAL_PASS,
    CONF_CAL_USER,
    CONF_CALENDAR_URL,
    CONF_TEMPERATURE,
)
from custom_components.calendar_preheat.diagnostics import async_get_config_entry_diagnostics
from custom_components.calendar_preheat.types import (
    BlacklistRule,
    CycleResult,
    SchedulerConfig,
    SchedulerState,
)

REDACTED = "**REDACTED**"


def make_entry(last_result=None):
    entry = MagicMock()
    entry.data = {
        CONF_CALENDAR_URL: "https://cal.example/secret-token",
        CONF_CAL_USER: "room",
        CONF_CAL_PASS: "hunter2",
        CONF_TEMPERATURE: "sensor.room",
    }
    entry.options = {"lookahead_hours": 24}

    coordinator = MagicMock()
    coordinator.config = SchedulerConfig(blacklist=(BlacklistRule(starts_with="private"),))
    coordinator.legacy_blacklist_warned = False
    coordinator.state = SchedulerState(demand_hold_until=1700000000, current_demand=True)
    coordinator.last_result = last_result
    entry.runtime_data = coordinator
    return entry


class TestDiagnostics(unittest.IsolatedAsyncioTestCase):

    async def test_credentials_are_redacted(self):
        diag = await async_get_config_entry_diagnostics(MagicMock(), make_entry())

        for key in (CONF_CALENDAR_URL, CONF_CAL_USER, CONF_CAL_PASS, CONF_TEMPERATURE):
            self.assertEqual(diag["entry_data"][key], REDACTED)
        self.assertEqual(diag["entry_options"], {"lookahead_hours": 24})
        self.assertNotIn("hunter2", str(diag))

    async def test_structure(self):
        result = CycleResult(
            demand=True,
            state=SchedulerState(),
            next_event_iso="2024-01-08T11:00:00+00:00",
            warnings=("temperature_unavailable",),
        )
        diag = await async_get_config_entry_diagnostics(MagicMock(), make_entry(result))

        self.assertEqual(diag["config"]["blacklist_rules"], 1)
        self.assertFalse(diag["config"]["legacy_blacklist_warned"])
        self.assertEqual(diag["state"]["demand_hold_until"], 1700000000)
        self.assertTrue(diag["last_cycle"]["demand"])
        self.assertEqual(diag["last_cycle"]["next_event"], "2024-01-08T11:00:00+00:00")
        self.assertEqual(diag["last_cycle"]["warnings"], ["temperature_unavailable"])

    async def test_before_first_cycle(self):
        diag = await async_get_config_entry_diagnostics(MagicMock(), make_entry())
        self.assertIsNone(diag["last_cycle"])


if __name__ == "__main__":
    unittest.main()
