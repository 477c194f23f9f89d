"""Declarative filter/relabel rules evaluated against calendar events."""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError

from calendarapi.calendar.models import CalendarEvent

logger = logging.getLogger(__name__)

# Rule calendar values that apply to every calendar
_ANY_CALENDAR = frozenset({"", "*", "all"})

MATCH_ANYTHING = "*"


def _bool_text(value: bool) -> str:
    return "true" if value else "false"


class Rule(BaseModel):
    """Filter/relabel directive matched against one event field by substring.

    Rules are evaluated in configured order and the first matching rule
    decides the event's fate.
    """

    name: str = Field(default="", description="Label used in logs")
    calendar: str = Field(default="", description="Target calendar name; empty, '*' or 'all' = any")
    key: str = Field(default="", description="Field to match: title, all_day, busy or '*'")
    contains: list[str] = Field(default_factory=list, description="Case-insensitive substrings")
    skip: bool = Field(default=False, description="Drop matching events")
    message: str = Field(default="", description="Message written onto matching events")
    important: bool = Field(default=False, description="Importance written onto matching events")

    def applies_to(self, event: CalendarEvent) -> bool:
        """Whether the rule targets the event's calendar."""
        return self.calendar in _ANY_CALENDAR or self.calendar == event.calendar_name

    def field_value(self, event: CalendarEvent) -> str:
        """Text of the event field selected by ``key``."""
        if self.key == "title":
            return event.title
        if self.key == "all_day":
            return _bool_text(event.all_day)
        if self.key == "busy":
            return event.busy.value
        if self.key == MATCH_ANYTHING:
            # Searching everywhere: concatenate every matchable field
            return f"{event.title}{_bool_text(event.all_day)}{event.busy.value}"
        return ""

    def matching_pattern(self, event: CalendarEvent) -> Optional[str]:
        """Return the first pattern that matches the event, if any."""
        if not self.applies_to(event):
            return None

        value = self.field_value(event).lower()
        for pattern in self.contains:
            if pattern == MATCH_ANYTHING or pattern.lower() in value:
                return pattern
        return None

    def evaluate(self, event: CalendarEvent) -> tuple[bool, bool, CalendarEvent]:
        """Evaluate the rule against an event.

        Events are immutable, so a match returns a relabeled copy carrying
        the rule's message and important flag.

        Returns:
            ``(matched, skip, event)``; ``(False, False, event)`` with the
            original event when the rule does not match
        """
        pattern = self.matching_pattern(event)
        if pattern is None:
            return False, False, event

        changes: dict[str, Any] = {}
        if event.message != self.message:
            changes["message"] = self.message
        if event.important != self.important:
            changes["important"] = self.important
        relabeled = event.model_copy(update=changes) if changes else event

        logger.debug(
            "Rule %r matched %r (calendar=%s key=%s contains=%r skip=%s important=%s message=%r)",
            self.name,
            event.title,
            self.calendar,
            self.key,
            pattern,
            self.skip,
            relabeled.important,
            relabeled.message,
        )
        return True, self.skip, relabeled


def apply_rules(rules: list[Rule], event: CalendarEvent) -> Optional[CalendarEvent]:
    """Run rules in order and decide whether the event is kept.

    The first matching rule ends evaluation: the event is kept unless that
    rule is a skip rule. An event no rule matches is dropped.

    Returns:
        The event as relabeled by the matching rule, or None when dropped
    """
    for rule in rules:
        matched, skip, relabeled = rule.evaluate(event)
        if matched:
            return None if skip else relabeled
    return None


def parse_rules(raw_rules: Any) -> list[Rule]:
    """Build Rule objects from configuration, skipping invalid entries.

    A non-list value yields an empty rule list.
    """
    if raw_rules is None:
        return []
    if not isinstance(raw_rules, list):
        logger.error("Failed to parse rules: expected a list, got %s", type(raw_rules).__name__)
        return []

    rules: list[Rule] = []
    for index, raw in enumerate(raw_rules):
        if not isinstance(raw, dict):
            logger.error("Failed to parse rule #%d: expected a mapping, got %r", index, raw)
            continue
        raw = {k: v for k, v in raw.items() if v is not None}
        if isinstance(raw.get("contains"), str):
            raw["contains"] = [raw["contains"]]
        try:
            rules.append(Rule.model_validate(raw))
        except ValidationError as e:
            logger.error("Failed to parse rule #%d (%s): %s", index, raw.get("name", ""), e)
    return rules
