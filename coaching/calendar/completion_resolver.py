"""Resolves one completion boolean per expanded item from the four completion tables.

The index is built once per request from a client's rows, so resolution is a
pure function of (item, date, assignment) and never depends on query order.
Keys are tried in a fixed order and the first hit wins; a miss is ``False``.
"""
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Iterable

from coaching.calendar.types import (
    ExpandedItem,
    ProgramDrillItem,
    RoutineExerciseItem,
    StandaloneRoutineItem,
)
from coaching.models.completion import (
    STANDALONE_DRILL,
    STANDALONE_ROUTINE,
    DrillCompletion,
    ExerciseCompletion,
    ProgramDrillCompletion,
    RoutineExerciseCompletion,
)

ExerciseKey = tuple[str, str | None, date | None]


def normalize_ref(value: uuid.UUID | str | None) -> str | None:
    """Canonical string form used for the free-form id columns of ExerciseCompletion."""
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return str(value)
    text = value.strip()
    try:
        return str(uuid.UUID(text))
    except ValueError:
        return text


@dataclass(frozen=True)
class ResolutionContext:
    on_date: date
    program_assignment_id: uuid.UUID | None = None


@dataclass(frozen=True)
class CompletionIndex:
    program_drills: frozenset[tuple[uuid.UUID, uuid.UUID]] = frozenset()
    drills: frozenset[uuid.UUID] = frozenset()
    exercises: frozenset[ExerciseKey] = frozenset()
    routine_exercises: frozenset[tuple[uuid.UUID, uuid.UUID]] = frozenset()

    @classmethod
    def from_rows(
        cls,
        *,
        drill_completions: Iterable[DrillCompletion] = (),
        program_drill_completions: Iterable[ProgramDrillCompletion] = (),
        exercise_completions: Iterable[ExerciseCompletion] = (),
        routine_exercise_completions: Iterable[RoutineExerciseCompletion] = (),
    ) -> "CompletionIndex":
        return cls(
            program_drills=frozenset(
                (row.drill_id, row.program_assignment_id) for row in program_drill_completions
            ),
            drills=frozenset(row.drill_id for row in drill_completions),
            exercises=frozenset(
                (normalize_ref(row.exercise_id), normalize_ref(row.program_drill_id), row.completion_date)
                for row in exercise_completions
                if row.completed
            ),
            routine_exercises=frozenset(
                (row.routine_assignment_id, row.exercise_id) for row in routine_exercise_completions
            ),
        )

    def has_program_drill(self, drill_id: uuid.UUID, assignment_id: uuid.UUID | None) -> bool:
        return assignment_id is not None and (drill_id, assignment_id) in self.program_drills

    def has_drill(self, drill_id: uuid.UUID) -> bool:
        return drill_id in self.drills

    def has_exercise(self, exercise_id: uuid.UUID, program_drill_id: str | None, on_date: date) -> bool:
        return (str(exercise_id), program_drill_id, on_date) in self.exercises

    def has_routine_exercise(self, assignment_id: uuid.UUID, exercise_id: uuid.UUID) -> bool:
        return (assignment_id, exercise_id) in self.routine_exercises


def resolve(item: ExpandedItem, context: ResolutionContext, index: CompletionIndex) -> bool:
    if isinstance(item, RoutineExerciseItem):
        # Program-embedded routines complete at the parent drill level.
        return (
            index.has_program_drill(item.original_drill_id, context.program_assignment_id)
            or index.has_exercise(item.exercise_id, str(item.original_drill_id), context.on_date)
            or index.has_drill(item.original_drill_id)
        )
    if isinstance(item, ProgramDrillItem):
        return (
            index.has_program_drill(item.drill_id, context.program_assignment_id)
            or index.has_drill(item.drill_id)
            or index.has_exercise(item.drill_id, None, context.on_date)
            or index.has_exercise(item.drill_id, STANDALONE_DRILL, context.on_date)
        )
    if isinstance(item, StandaloneRoutineItem):
        return (
            index.has_routine_exercise(item.routine_assignment_id, item.exercise_id)
            or index.has_exercise(item.exercise_id, STANDALONE_ROUTINE, context.on_date)
        )
    return False
