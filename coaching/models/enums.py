from enum import Enum

class Role(str, Enum):
    COACH = "COACH"
    CLIENT = "CLIENT"


class DrillType(str, Enum):
    EXERCISE = "exercise"
    ROUTINE = "routine"


class EventStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
