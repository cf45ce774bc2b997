"""Unit tests for the demand engine (preheat lead and hold latch)."""
import sys
import os
import unittest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from custom_components.calendar_preheat.const import (
    HOLD_PREHEAT_ONLY,
    HOLD_SUSTAIN,
    WARN_HEATING_RATE,
    WARN_NO_TEMPERATURE,
)
from custom_components.calendar_preheat.demand import DemandEngine, compute_preheat_start
from custom_components.calendar_preheat.types import Occurrence, SchedulerConfig, SchedulerState
from ics_fixtures import HOUR, T0


class TestPreheatStart(unittest.TestCase):

    def test_lead_from_temperature_gap(self):
        config = SchedulerConfig(setpoint_warm=21.0, heating_rate=1.0)
        start, warnings = compute_preheat_start(T0 + 2 * HOUR, 19.0, config)
        self.assertEqual(start, T0)
        self.assertEqual(warnings, ())

    def test_buffer_is_added(self):
        config = SchedulerConfig(setpoint_warm=21.0, heating_rate=2.0, preheat_buffer_minutes=15)
        start, _ = compute_preheat_start(T0, 20.0, config)
        self.assertEqual(start, T0 - 1800 - 900)

    def test_warm_room_needs_no_lead(self):
        config = SchedulerConfig(setpoint_warm=21.0, heating_rate=1.0, preheat_buffer_minutes=10)
        start, _ = compute_preheat_start(T0, 23.5, config)
        self.assertEqual(start, T0 - 600)

    def test_unknown_temperature_uses_buffer_only(self):
        config = SchedulerConfig(preheat_buffer_minutes=30)
        start, warnings = compute_preheat_start(T0, None, config)
        self.assertEqual(start, T0 - 1800)
        self.assertEqual(warnings, (WARN_NO_TEMPERATURE,))

    def test_non_positive_rate_uses_buffer_only(self):
        for rate in (0.0, -1.0):
            config = SchedulerConfig(heating_rate=rate)
            start, warnings = compute_preheat_start(T0, 15.0, config)
            self.assertEqual(start, T0)
            self.assertEqual(warnings, (WARN_HEATING_RATE,))

    def test_bad_rate_reported_without_temperature(self):
        config = SchedulerConfig(heating_rate=0.0, preheat_buffer_minutes=5)
        start, warnings = compute_preheat_start(T0, None, config)
        self.assertEqual(start, T0 - 300)
        self.assertEqual(warnings, (WARN_HEATING_RATE, WARN_NO_TEMPERATURE))

    def test_clamped_at_zero(self):
        config = SchedulerConfig(setpoint_warm=21.0, heating_rate=0.001)
        start, _ = compute_preheat_start(3600, 10.0, config)
        self.assertEqual(start, 0)

    def test_lead_is_rounded(self):
        config = SchedulerConfig(setpoint_warm=21.0, heating_rate=3.0)
        start, _ = compute_preheat_start(T0, 20.0, config)
        self.assertEqual(start, T0 - 1200)


class TestDemandDecision(unittest.TestCase):

    def setUp(self):
        self.engine = DemandEngine()
        self.config = SchedulerConfig(setpoint_warm=21.0, heating_rate=1.0)
        self.event = Occurrence(start=T0 + 2 * HOUR, end=T0 + 3 * HOUR, summary="Meeting")

    def test_preheat_starts_exactly_on_time(self):
        decision = self.engine.evaluate(self.event, T0, 19.0, self.config, SchedulerState())
        self.assertTrue(decision.demand)
        self.assertEqual(decision.preheat_start, T0)
        self.assertEqual(decision.state.demand_hold_until, self.event.end)
        self.assertEqual(decision.state.last_operative_start, self.event.start)
        self.assertEqual(decision.state.last_operative_end, self.event.end)
        self.assertTrue(decision.state.current_demand)

    def test_off_before_preheat_window(self):
        decision = self.engine.evaluate(self.event, T0 - 60, 19.0, self.config, SchedulerState())
        self.assertFalse(decision.demand)
        self.assertEqual(decision.state.demand_hold_until, 0)
        # Operative is remembered even while off
        self.assertEqual(decision.state.last_operative_start, self.event.start)

    def test_sustain_through_event(self):
        decision = self.engine.evaluate(self.event, self.event.start + 1800, 21.0, self.config, SchedulerState())
        self.assertTrue(decision.demand)

    def test_preheat_only_releases_at_start_but_running_event_forces_on(self):
        config = SchedulerConfig(setpoint_warm=21.0, heating_rate=1.0, hold_strategy=HOLD_PREHEAT_ONLY)
        before = self.engine.evaluate(self.event, self.event.start - 60, 20.0, config, SchedulerState())
        self.assertTrue(before.demand)
        during = self.engine.evaluate(self.event, self.event.start + 60, 21.0, config, before.state)
        self.assertTrue(during.demand)

    def test_off_after_event(self):
        state = SchedulerState(
            last_operative_start=self.event.start,
            last_operative_end=self.event.end,
            demand_hold_until=self.event.end,
            current_demand=True,
        )
        decision = self.engine.evaluate(None, self.event.end, 21.0, self.config, state)
        self.assertFalse(decision.demand)
        # Elapsed hold is cleared
        self.assertEqual(decision.state.demand_hold_until, 0)

    def test_hold_latch_bridges_switch_to_later_event(self):
        later = Occurrence(start=T0 + 10 * HOUR, end=T0 + 11 * HOUR)
        state = SchedulerState(
            last_operative_start=self.event.start,
            last_operative_end=self.event.end,
            demand_hold_until=self.event.end,
            current_demand=True,
        )
        now = self.event.start - 600
        decision = self.engine.evaluate(later, now, 21.0, self.config, state)
        self.assertTrue(decision.demand)
        # Latch now follows the selected occurrence
        self.assertEqual(decision.state.demand_hold_until, later.end)

    def test_hold_latch_needs_demand_already_on(self):
        later = Occurrence(start=T0 + 10 * HOUR, end=T0 + 11 * HOUR)
        state = SchedulerState(demand_hold_until=T0 + 5 * HOUR, current_demand=False)
        decision = self.engine.evaluate(later, T0, 21.0, self.config, state)
        self.assertFalse(decision.demand)
        # Hold not yet elapsed, so it is kept
        self.assertEqual(decision.state.demand_hold_until, T0 + 5 * HOUR)

    def test_fallback_only_sustains(self):
        remembered = Occurrence(start=T0 - HOUR, end=T0 + HOUR)
        on_state = SchedulerState(last_operative_start=T0 - HOUR, last_operative_end=T0 + HOUR, current_demand=True)
        off_state = SchedulerState(last_operative_start=T0 - HOUR, last_operative_end=T0 + HOUR, current_demand=False)

        kept = self.engine.evaluate(remembered, T0, 15.0, self.config, on_state, fallback=True)
        self.assertTrue(kept.demand)
        self.assertEqual(kept.preheat_start, 0)
        self.assertEqual(kept.state.demand_hold_until, remembered.end)

        not_started = self.engine.evaluate(remembered, T0, 15.0, self.config, off_state, fallback=True)
        self.assertFalse(not_started.demand)

    def test_fallback_does_not_overwrite_remembered_event(self):
        remembered = Occurrence(start=T0 - HOUR, end=T0 + HOUR)
        state = SchedulerState(last_operative_start=T0 - HOUR, last_operative_end=T0 + HOUR, current_demand=True)
        decision = self.engine.evaluate(remembered, T0, 20.0, self.config, state, fallback=True)
        self.assertEqual(decision.state.last_operative_start, T0 - HOUR)
        self.assertEqual(decision.state.last_operative_end, T0 + HOUR)

    def test_no_operative_and_no_hold(self):
        decision = self.engine.evaluate(None, T0, 20.0, self.config, SchedulerState(current_demand=True))
        self.assertFalse(decision.demand)
        self.assertEqual(decision.preheat_start, 0)

    def test_bad_rate_reported_in_every_cycle(self):
        config = SchedulerConfig(heating_rate=-1.0)
        idle = self.engine.evaluate(None, T0, 20.0, config, SchedulerState())
        self.assertEqual(idle.warnings, (WARN_HEATING_RATE,))

        remembered = Occurrence(start=T0 - HOUR, end=T0 + HOUR)
        state = SchedulerState(current_demand=True)
        fallback = self.engine.evaluate(remembered, T0, None, config, state, fallback=True)
        self.assertEqual(fallback.warnings, (WARN_HEATING_RATE,))

        selected = self.engine.evaluate(self.event, T0, None, config, SchedulerState())
        self.assertEqual(selected.warnings, (WARN_HEATING_RATE, WARN_NO_TEMPERATURE))

    def test_state_is_not_mutated(self):
        state = SchedulerState()
        self.engine.evaluate(self.event, T0, 19.0, self.config, state)
        self.assertEqual(state, SchedulerState())

    def test_hold_strategy_constants(self):
        self.assertTrue(SchedulerConfig(hold_strategy=HOLD_SUSTAIN).sustain_through_event)
        self.assertFalse(SchedulerConfig(hold_strategy=HOLD_PREHEAT_ONLY).sustain_through_event)
        self.assertFalse(SchedulerConfig(hold_strategy=7).sustain_through_event)


if __name__ == "__main__":
    unittest.main()
