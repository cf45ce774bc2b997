"""Planner module: blacklist handling and operative event selection."""
from __future__ import annotations

import json
import logging
from typing import Any, Iterable

from .const import WARN_BLACKLIST_DECODE, WARN_BLACKLIST_LEGACY
from .types import BlacklistRule, Occurrence, SchedulerState, Selection

_LOGGER = logging.getLogger(__name__)


def parse_blacklist(raw: Any) -> tuple[tuple[BlacklistRule, ...], tuple[str, ...]]:
    """
    Decode the blacklist configuration.

    Accepts JSON text or an already decoded list of
    {"starts_with": ..., "ends_with": ...} objects.
    Returns (rules, warnings). Undecodable input yields no rules (fail open).
    Legacy {"pattern": ...} entries are ignored and reported once per call.
    """
    if raw is None or raw == "":
        return (), ()

    decoded = raw
    if isinstance(raw, str):
        try:
            decoded = json.loads(raw)
        except ValueError as err:
            _LOGGER.warning("Unable to decode event blacklist: %s", err)
            return (), (WARN_BLACKLIST_DECODE,)

    if not isinstance(decoded, list):
        _LOGGER.debug("Blacklist configuration is not a list, ignoring")
        return (), ()

    rules: list[BlacklistRule] = []
    warnings: list[str] = []
    for entry in decoded:
        if not isinstance(entry, dict):
            continue

        if "pattern" in entry:
            if WARN_BLACKLIST_LEGACY not in warnings:
                warnings.append(WARN_BLACKLIST_LEGACY)
            continue

        starts_with = str(entry.get("starts_with") or "").strip().lower()
        ends_with = str(entry.get("ends_with") or "").strip().lower()
        if not starts_with and not ends_with:
            continue
        rules.append(BlacklistRule(starts_with=starts_with, ends_with=ends_with))

    _LOGGER.debug("Loaded %d blacklist rules", len(rules))
    return tuple(rules), tuple(warnings)


def is_blacklisted(summary: str, rules: Iterable[BlacklistRule]) -> bool:
    return any(rule.matches(summary) for rule in rules)


def filter_blacklisted(items: Iterable[Any], rules: Iterable[BlacklistRule]) -> list[Any]:
    """Drop templates/occurrences whose summary matches a rule."""
    rules = tuple(rules)
    if not rules:
        return list(items)
    kept = []
    for item in items:
        if is_blacklisted(item.summary, rules):
            _LOGGER.debug("Event filtered by blacklist: %s", item.summary)
            continue
        kept.append(item)
    return kept


def fallback_occurrence(state: SchedulerState, now: int) -> Occurrence | None:
    """The remembered operative occurrence, if it has not ended yet."""
    remembered = state.remembered
    if remembered is not None and remembered.end > now:
        return remembered
    return None


class EventPlanner:
    """Picks the operative occurrence and the list shown to the user."""

    def select(
        self,
        occurrences: Iterable[Occurrence],
        blacklist: Iterable[BlacklistRule],
        now: int,
        horizon: int,
        display_count: int,
    ) -> Selection:
        """
        Partition occurrences into active, future and cancelled.

        Active (running, not cancelled) wins over future ones; among each
        group the earliest start wins. Cancelled occurrences are displayed
        but never operative.
        """
        operative: Occurrence | None = None
        operative_active = False
        displayed: list[Occurrence] = []

        for occ in filter_blacklisted(occurrences, blacklist):
            if occ.end <= now:
                continue

            if occ.cancelled:
                if occ.start <= horizon:
                    displayed.append(occ)
                continue

            if occ.is_active(now):
                if not operative_active or occ.start < operative.start:
                    operative = occ
                    operative_active = True
                displayed.append(occ)
                continue

            if occ.start > horizon:
                continue

            # Future
            if not operative_active and (operative is None or occ.start < operative.start):
                operative = occ
            displayed.append(occ)

        displayed.sort(key=lambda occ: occ.start)
        upcoming = tuple(displayed[:max(1, display_count)])

        if operative is not None:
            _LOGGER.debug(
                "Operative event selected: start=%d end=%d active=%s",
                operative.start, operative.end, operative_active,
            )
        else:
            _LOGGER.debug("No operative event within horizon")

        return Selection(operative=operative, upcoming=upcoming)
