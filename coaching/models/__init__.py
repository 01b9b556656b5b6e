from coaching.models.user import Client, User
from coaching.models.event import Event
from coaching.models.program import (
    Program,
    ProgramAssignment,
    ProgramDay,
    ProgramDayReplacement,
    ProgramDrill,
    ProgramWeek,
)
from coaching.models.routine import Routine, RoutineAssignment, RoutineExercise
from coaching.models.completion import (
    DrillCompletion,
    ExerciseCompletion,
    ProgramDrillCompletion,
    RoutineExerciseCompletion,
)
from coaching.models.video import VideoAssignment
from coaching.models.notification import Notification, NotificationDeliveryLog


__all__ = [
    "User",
    "Client",
    "Event",
    "Program",
    "ProgramWeek",
    "ProgramDay",
    "ProgramDrill",
    "ProgramAssignment",
    "ProgramDayReplacement",
    "Routine",
    "RoutineExercise",
    "RoutineAssignment",
    "DrillCompletion",
    "ProgramDrillCompletion",
    "ExerciseCompletion",
    "RoutineExerciseCompletion",
    "VideoAssignment",
    "Notification",
    "NotificationDeliveryLog",
]
