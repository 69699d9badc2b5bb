"""Core heating control for Hotpot."""

from __future__ import annotations

from .arbitrator import ActuatorArbitrator
from .calendar import Calendar, FileCalendar
from .controller import Controller
from .historian import Historian
from .pin import Pin
from .request import BOOST, CLEAR, OFF, Request
from .rule_engine import CentralHeatingRule, HotWaterRule, Rule, RuleDecision
from .scheduled_event import ScheduledEvent, parse_event_text
from .thermostat import Thermostat
from .timeline import Timeline, Timepoint

__all__ = [
    "BOOST",
    "CLEAR",
    "OFF",
    "ActuatorArbitrator",
    "Calendar",
    "CentralHeatingRule",
    "Controller",
    "FileCalendar",
    "Historian",
    "HotWaterRule",
    "Pin",
    "Request",
    "Rule",
    "RuleDecision",
    "ScheduledEvent",
    "Thermostat",
    "Timeline",
    "Timepoint",
    "parse_event_text",
]
