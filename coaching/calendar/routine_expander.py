"""Flattens program days and routine assignments into ordered expanded items."""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Mapping

from coaching.calendar.types import (
    CoachInstructions,
    ExerciseFields,
    ExpandedItem,
    ProgramDrillItem,
    RoutineExerciseItem,
    StandaloneRoutineItem,
)
from coaching.models.enums import DrillType
from coaching.models.program import ProgramDay, ProgramDrill
from coaching.models.routine import Routine, RoutineAssignment, RoutineExercise

logger = logging.getLogger(__name__)

ROUTINE_ID_SEPARATOR = "-routine-"


@dataclass
class Expansion:
    items: list[ExpandedItem] = field(default_factory=list)
    orphaned: int = 0


@dataclass(frozen=True)
class DrillReference:
    drill_id: uuid.UUID


@dataclass(frozen=True)
class RoutineExerciseReference:
    original_drill_id: uuid.UUID
    exercise_id: uuid.UUID


def is_routine_drill(drill: ProgramDrill) -> bool:
    return drill.type == DrillType.ROUTINE.value and drill.routine_id is not None


def ordered_exercises(routine: Routine) -> list[RoutineExercise]:
    return sorted(routine.exercises, key=lambda exercise: exercise.order or 0)


def _coach_instructions(drill: ProgramDrill) -> CoachInstructions | None:
    has_instructions = (
        drill.coach_instructions_what_to_do
        or drill.coach_instructions_how_to_do_it
        or drill.coach_instructions_key_points
        or drill.coach_instructions_common_mistakes
        or drill.coach_instructions_equipment
    )
    if not has_instructions:
        return None
    return CoachInstructions(
        what_to_do=drill.coach_instructions_what_to_do or "",
        how_to_do_it=drill.coach_instructions_how_to_do_it or "",
        key_points=tuple(drill.coach_instructions_key_points or ()),
        common_mistakes=tuple(drill.coach_instructions_common_mistakes or ()),
        easier=drill.coach_instructions_easier or "",
        harder=drill.coach_instructions_harder or "",
        equipment=drill.coach_instructions_equipment or "",
        setup=drill.coach_instructions_setup or "",
    )


def expand_day(day: ProgramDay, routines: Mapping[uuid.UUID, Routine]) -> Expansion:
    """Expand a day's drills in order, replacing routine drills with their exercises.

    A routine drill whose routine is missing from ``routines`` (deleted after the
    program was built) is skipped and counted as orphaned.
    """
    expansion = Expansion()
    for drill in sorted(day.drills, key=lambda d: d.order or 0):
        if not is_routine_drill(drill):
            expansion.items.append(
                ProgramDrillItem(
                    drill_id=drill.id,
                    fields=ExerciseFields.from_row(drill),
                    coach_instructions=_coach_instructions(drill),
                )
            )
            continue

        routine = routines.get(drill.routine_id)
        if routine is None:
            logger.warning("Drill %s references missing routine %s; skipping", drill.id, drill.routine_id)
            expansion.orphaned += 1
            continue
        for exercise in ordered_exercises(routine):
            expansion.items.append(
                RoutineExerciseItem(
                    exercise_id=exercise.id,
                    routine_id=drill.routine_id,
                    original_drill_id=drill.id,
                    fields=ExerciseFields.from_row(exercise),
                )
            )
    return expansion


def expand_routine_assignment(assignment: RoutineAssignment) -> Expansion:
    expansion = Expansion()
    if assignment.routine is None:
        logger.warning("Routine assignment %s references a missing routine", assignment.id)
        expansion.orphaned += 1
        return expansion
    for exercise in ordered_exercises(assignment.routine):
        expansion.items.append(
            StandaloneRoutineItem(
                exercise_id=exercise.id,
                routine_id=assignment.routine_id,
                routine_assignment_id=assignment.id,
                fields=ExerciseFields.from_row(exercise),
            )
        )
    return expansion


def parse_item_id(item_id: str) -> DrillReference | RoutineExerciseReference:
    """Turn a client-facing drill or ``{drill}-routine-{exercise}`` id back into a typed reference.

    Raises ValueError for anything that is not a drill UUID or a well-formed composite.
    """
    value = item_id.strip()
    if ROUTINE_ID_SEPARATOR in value:
        drill_part, _, exercise_part = value.partition(ROUTINE_ID_SEPARATOR)
        try:
            return RoutineExerciseReference(
                original_drill_id=uuid.UUID(drill_part),
                exercise_id=uuid.UUID(exercise_part),
            )
        except ValueError:
            raise ValueError(f"Malformed routine exercise id: {item_id!r}") from None
    try:
        return DrillReference(drill_id=uuid.UUID(value))
    except ValueError:
        raise ValueError(f"Malformed drill id: {item_id!r}") from None
