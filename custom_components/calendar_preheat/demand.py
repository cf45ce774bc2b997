"""Demand engine: preheat lead time and the hysteretic heating decision."""
from __future__ import annotations

import logging
from dataclasses import replace

from .const import WARN_HEATING_RATE, WARN_NO_TEMPERATURE
from .types import DemandDecision, Occurrence, SchedulerConfig, SchedulerState

_LOGGER = logging.getLogger(__name__)


def compute_preheat_start(
    event_start: int, temperature: float | None, config: SchedulerConfig
) -> tuple[int, tuple[str, ...]]:
    """
    When heating must start so the setpoint is reached at event_start.

    lead = (setpoint - temperature) / heating_rate hours, never negative.
    Without a temperature or with a non-positive rate only the buffer applies.
    Returns (preheat_start, warnings); the instant is clamped to >= 0.
    """
    buffer = config.buffer_seconds

    warnings: tuple[str, ...] = ()
    if config.heating_rate <= 0:
        warnings += (WARN_HEATING_RATE,)
    if temperature is None:
        warnings += (WARN_NO_TEMPERATURE,)
    if warnings:
        return max(0, event_start - buffer), warnings

    delta = max(0.0, config.setpoint_warm - temperature)
    lead = int(round(delta / config.heating_rate * 3600))
    return max(0, event_start - lead - buffer), ()


class DemandEngine:
    """Turns the operative occurrence and temperature into an on/off demand."""

    def evaluate(
        self,
        operative: Occurrence | None,
        now: int,
        temperature: float | None,
        config: SchedulerConfig,
        state: SchedulerState,
        fallback: bool = False,
    ) -> DemandDecision:
        """
        Decide heating demand for this cycle and return the next state.

        A fallback occurrence (remembered from an earlier cycle) can only keep
        an already running demand alive, it never starts a preheat. Once on,
        demand_hold_until latches to the occurrence end so a momentary gap in
        the calendar does not switch heating off early.
        """
        currently_on = state.current_demand
        hold_until = state.demand_hold_until
        warnings: tuple[str, ...] = ()
        preheat_start = 0
        demand = False
        active_end = None

        if operative is not None and not fallback:
            preheat_start, warnings = compute_preheat_start(operative.start, temperature, config)

            window_end = operative.end if config.sustain_through_event else operative.start
            window_end = max(window_end, operative.start)

            if preheat_start <= now < window_end:
                demand = True
                _LOGGER.debug("Demand on: inside preheat window (%d..%d)", preheat_start, window_end)
            if operative.is_active(now):
                demand = True
                _LOGGER.debug("Demand on: event running")
            active_end = operative.end

        elif operative is not None:
            active_end = operative.end
            if now < operative.end and currently_on:
                demand = True
                _LOGGER.debug("Demand sustained by remembered event ending %d", operative.end)

        # Misconfiguration is reported every cycle, with or without an event
        if config.heating_rate <= 0 and WARN_HEATING_RATE not in warnings:
            warnings = (WARN_HEATING_RATE,) + warnings

        if currently_on and not demand and hold_until > now:
            demand = True
            _LOGGER.debug("Demand held until %d", hold_until)

        if demand:
            if active_end is not None:
                hold_until = active_end
        elif hold_until and hold_until <= now:
            hold_until = 0

        new_state = replace(state, demand_hold_until=hold_until, current_demand=demand)
        if operative is not None and not fallback:
            new_state = replace(
                new_state,
                last_operative_start=operative.start,
                last_operative_end=operative.end,
            )

        if demand != currently_on:
            _LOGGER.info("Heating demand changed to %s", "on" if demand else "off")

        return DemandDecision(
            demand=demand,
            preheat_start=preheat_start,
            state=new_state,
            warnings=warnings,
        )
