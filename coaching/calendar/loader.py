import uuid
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from coaching.calendar.aggregator import CalendarSource
from coaching.calendar.completion_resolver import CompletionIndex
from coaching.calendar.routine_expander import is_routine_drill
from coaching.models.completion import (
    DrillCompletion,
    ExerciseCompletion,
    ProgramDrillCompletion,
    RoutineExerciseCompletion,
)
from coaching.models.program import (
    Program,
    ProgramAssignment,
    ProgramDay,
    ProgramDayReplacement,
    ProgramWeek,
)
from coaching.models.routine import Routine, RoutineAssignment
from coaching.models.video import VideoAssignment


def _program_tree(path):
    return path.selectinload(Program.weeks).selectinload(ProgramWeek.days).selectinload(ProgramDay.drills)


def _referenced_routine_ids(assignments: list[ProgramAssignment]) -> set[uuid.UUID]:
    programs: list[Program] = []
    for assignment in assignments:
        if assignment.program is not None:
            programs.append(assignment.program)
        programs.extend(
            replacement.substitute_program
            for replacement in assignment.replacements
            if replacement.substitute_program is not None
        )
    return {
        drill.routine_id
        for program in programs
        for week in program.weeks
        for day in week.days
        for drill in day.drills
        if is_routine_drill(drill)
    }


async def load_calendar_source(
    db: AsyncSession,
    client_id: uuid.UUID,
    *,
    start: date | None = None,
    end: date | None = None,
) -> CalendarSource:
    """Load every row the projection needs for ``client_id`` in a fixed number of queries.

    Only active program assignments (``completed_at`` is null) are loaded. When
    ``start``/``end`` are given, date-scoped rows outside the range are skipped.
    """
    assignment_stmt = (
        select(ProgramAssignment)
        .where(ProgramAssignment.client_id == client_id, ProgramAssignment.completed_at.is_(None))
        .options(
            _program_tree(selectinload(ProgramAssignment.program)),
            _program_tree(
                selectinload(ProgramAssignment.replacements).selectinload(ProgramDayReplacement.substitute_program)
            ),
        )
        .order_by(ProgramAssignment.assigned_at.desc())
        .execution_options(populate_existing=True)
    )
    program_assignments = list((await db.execute(assignment_stmt)).scalars().unique().all())

    routines: dict[uuid.UUID, Routine] = {}
    routine_ids = _referenced_routine_ids(program_assignments)
    if routine_ids:
        routine_stmt = (
            select(Routine)
            .where(Routine.id.in_(routine_ids))
            .options(selectinload(Routine.exercises))
            .execution_options(populate_existing=True)
        )
        routines = {routine.id: routine for routine in (await db.execute(routine_stmt)).scalars().all()}

    routine_assignment_stmt = (
        select(RoutineAssignment)
        .where(RoutineAssignment.client_id == client_id)
        .options(selectinload(RoutineAssignment.routine).selectinload(Routine.exercises))
        .order_by(RoutineAssignment.assigned_at.desc())
        .execution_options(populate_existing=True)
    )
    routine_assignments = list((await db.execute(routine_assignment_stmt)).scalars().all())

    exercise_stmt = select(ExerciseCompletion).where(ExerciseCompletion.client_id == client_id)
    if start is not None:
        exercise_stmt = exercise_stmt.where(ExerciseCompletion.completion_date >= start)
    if end is not None:
        exercise_stmt = exercise_stmt.where(ExerciseCompletion.completion_date <= end)

    completions = CompletionIndex.from_rows(
        drill_completions=(
            await db.execute(select(DrillCompletion).where(DrillCompletion.client_id == client_id))
        ).scalars().all(),
        program_drill_completions=(
            await db.execute(select(ProgramDrillCompletion).where(ProgramDrillCompletion.client_id == client_id))
        ).scalars().all(),
        exercise_completions=(await db.execute(exercise_stmt)).scalars().all(),
        routine_exercise_completions=(
            await db.execute(
                select(RoutineExerciseCompletion).where(RoutineExerciseCompletion.client_id == client_id)
            )
        ).scalars().all(),
    )

    video_stmt = select(VideoAssignment).where(
        VideoAssignment.client_id == client_id, VideoAssignment.due_date.is_not(None)
    )
    if start is not None:
        video_stmt = video_stmt.where(VideoAssignment.due_date >= start)
    if end is not None:
        video_stmt = video_stmt.where(VideoAssignment.due_date <= end)
    video_assignments = list((await db.execute(video_stmt.order_by(VideoAssignment.due_date))).scalars().all())

    return CalendarSource(
        client_id=client_id,
        program_assignments=program_assignments,
        routine_assignments=routine_assignments,
        routines=routines,
        completions=completions,
        video_assignments=video_assignments,
    )
