"""Domain enums for Hotpot."""

from enum import IntEnum, StrEnum


class Service(StrEnum):
    CH = "CH"
    HW = "HW"


class PinState(IntEnum):
    off = 0
    on = 1


class EventState(StrEnum):
    pending = "pending"
    live = "live"
    ended = "ended"
    cancelled = "cancelled"


class Reason(StrEnum):
    overheat = "Overheat"
    warm_enough = "Warm enough"
    hot_enough = "Hot enough"
    too_cold = "Too cold"
    reset = "Reset"
    spring_return = "Spring return"
