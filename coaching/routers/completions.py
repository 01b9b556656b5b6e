import datetime as dt
from datetime import date, datetime, timezone
from typing import Annotated, List
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from sqlalchemy import Select, delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from coaching.auth import dependencies
from coaching.calendar.aggregator import routine_assignment_window
from coaching.calendar.completion_resolver import normalize_ref
from coaching.calendar.routine_expander import RoutineExerciseReference, parse_item_id
from coaching.core.responses import StandardResponse
from coaching.database import get_db
from coaching.models.completion import (
    STANDALONE_DRILL,
    DrillCompletion,
    ExerciseCompletion,
    ProgramDrillCompletion,
    RoutineExerciseCompletion,
)
from coaching.models.program import (
    ProgramAssignment,
    ProgramDay,
    ProgramDayReplacement,
    ProgramDrill,
    ProgramWeek,
)
from coaching.models.routine import Routine, RoutineAssignment
from coaching.models.user import Client
from coaching.models.video import VideoAssignment
from coaching.services.timezone_service import today_in_app_tz

logger = logging.getLogger(__name__)

router = APIRouter()

CurrentClient = Annotated[Client, Depends(dependencies.get_current_client)]


# --- Pydantic Models ---

class DrillCompletionRequest(BaseModel):
    drill_id: str = Field(min_length=1)
    completed: bool = True
    date: dt.date | None = None


class ProgramDrillCompletionRequest(BaseModel):
    drill_id: uuid.UUID
    program_assignment_id: uuid.UUID
    completed: bool = True
    date: dt.date | None = None


class ExerciseCompletionRequest(BaseModel):
    exercise_id: str = Field(min_length=1)
    program_drill_id: str | None = None
    date: date
    completed: bool = True


class RoutineExerciseCompletionRequest(BaseModel):
    routine_assignment_id: uuid.UUID
    exercise_id: uuid.UUID
    completed: bool = True


class ProgramCompletionRequest(BaseModel):
    program_assignment_id: uuid.UUID
    completed: bool = True


class ExerciseStatusItem(BaseModel):
    exercise_id: str
    program_drill_id: str | None = None


class ExerciseStatusRequest(BaseModel):
    date: date
    items: List[ExerciseStatusItem] = Field(default_factory=list)


class ExerciseStatusResponse(BaseModel):
    exercise_id: str
    program_drill_id: str | None = None
    completed: bool


class ExerciseCompletionResponse(BaseModel):
    id: uuid.UUID
    exercise_id: str
    program_drill_id: str | None = None
    date: dt.date | None = Field(default=None, validation_alias=AliasChoices("completion_date", "date"))
    completed: bool
    completed_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class VideoAssignmentCompletionRequest(BaseModel):
    completed: bool = True


# --- Helpers ---

def _ensure_not_future(on_date: date | None) -> None:
    if on_date is not None and on_date > today_in_app_tz():
        raise HTTPException(status_code=400, detail="Cannot complete items for future dates")


def _client_program_filter(client_id: uuid.UUID):
    """Programs a client can see: assigned ones and any substitutes on their replacements."""
    return or_(
        ProgramWeek.program_id.in_(
            select(ProgramAssignment.program_id).where(ProgramAssignment.client_id == client_id)
        ),
        ProgramWeek.program_id.in_(
            select(ProgramDayReplacement.substitute_program_id)
            .join(ProgramAssignment, ProgramAssignment.id == ProgramDayReplacement.assignment_id)
            .where(
                ProgramAssignment.client_id == client_id,
                ProgramDayReplacement.substitute_program_id.is_not(None),
            )
        ),
    )


def _assignment_program_filter(assignment_id: uuid.UUID):
    """Programs an assignment can show: its own and the substitutes on its replacements."""
    return or_(
        ProgramWeek.program_id.in_(
            select(ProgramAssignment.program_id).where(ProgramAssignment.id == assignment_id)
        ),
        ProgramWeek.program_id.in_(
            select(ProgramDayReplacement.substitute_program_id).where(
                ProgramDayReplacement.assignment_id == assignment_id,
                ProgramDayReplacement.substitute_program_id.is_not(None),
            )
        ),
    )


async def _get_drill(db: AsyncSession, drill_id: uuid.UUID, program_filter) -> ProgramDrill:
    stmt = (
        select(ProgramDrill)
        .join(ProgramDay, ProgramDay.id == ProgramDrill.day_id)
        .join(ProgramWeek, ProgramWeek.id == ProgramDay.week_id)
        .where(ProgramDrill.id == drill_id, program_filter)
    )
    drill = (await db.execute(stmt)).scalar_one_or_none()
    if drill is None:
        raise HTTPException(status_code=404, detail="Drill not found or not assigned to client")
    return drill


async def insert_once(db: AsyncSession, row, existing: Select) -> None:
    """Insert ``row`` and commit.

    A concurrent request may insert the same key between our lookup and this
    insert. That request's row satisfies ours, so the unique violation is
    dropped when ``existing`` now finds a row; any other violation propagates.
    """
    db.add(row)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        if (await db.execute(existing)).first() is None:
            raise
        logger.info("%s already recorded by a concurrent request", type(row).__name__)


def _exercise_drill_key(program_drill_id: str | None) -> str:
    """Stored program_drill_id for ExerciseCompletion; a missing drill becomes the standalone sentinel."""
    return normalize_ref(program_drill_id) or STANDALONE_DRILL


async def _get_client_assignment(db: AsyncSession, client: Client, assignment_id: uuid.UUID) -> ProgramAssignment:
    stmt = select(ProgramAssignment).where(
        ProgramAssignment.id == assignment_id, ProgramAssignment.client_id == client.id
    )
    assignment = (await db.execute(stmt)).scalar_one_or_none()
    if assignment is None:
        raise HTTPException(status_code=404, detail="Program assignment not found")
    return assignment


# --- Endpoints ---

@router.post("/drill", response_model=StandardResponse)
async def mark_drill(
    data: DrillCompletionRequest,
    client: CurrentClient,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Legacy drill completion. A ``{drill}-routine-{exercise}`` id completes its parent drill."""
    try:
        reference = parse_item_id(data.drill_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    _ensure_not_future(data.date)

    drill_id = (
        reference.original_drill_id if isinstance(reference, RoutineExerciseReference) else reference.drill_id
    )
    await _get_drill(db, drill_id, _client_program_filter(client.id))

    match = (DrillCompletion.drill_id == drill_id, DrillCompletion.client_id == client.id)
    if data.completed:
        existing = select(DrillCompletion).where(*match)
        if (await db.execute(existing)).scalar_one_or_none() is None:
            await insert_once(db, DrillCompletion(drill_id=drill_id, client_id=client.id), existing)
    else:
        await db.execute(delete(DrillCompletion).where(*match))
        await db.commit()
    return StandardResponse(
        message="Drill marked complete" if data.completed else "Drill marked incomplete",
        data={"drill_id": str(drill_id), "completed": data.completed},
    )


@router.post("/program-drill", response_model=StandardResponse)
async def mark_program_drill(
    data: ProgramDrillCompletionRequest,
    client: CurrentClient,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    _ensure_not_future(data.date)
    await _get_client_assignment(db, client, data.program_assignment_id)
    await _get_drill(db, data.drill_id, _assignment_program_filter(data.program_assignment_id))

    match = (
        ProgramDrillCompletion.drill_id == data.drill_id,
        ProgramDrillCompletion.program_assignment_id == data.program_assignment_id,
    )
    if data.completed:
        existing = select(ProgramDrillCompletion).where(*match)
        if (await db.execute(existing)).scalar_one_or_none() is None:
            row = ProgramDrillCompletion(
                drill_id=data.drill_id,
                program_assignment_id=data.program_assignment_id,
                client_id=client.id,
            )
            await insert_once(db, row, existing)
    else:
        await db.execute(delete(ProgramDrillCompletion).where(*match))
        await db.commit()
    return StandardResponse(
        message="Drill marked complete" if data.completed else "Drill marked incomplete",
        data={
            "drill_id": str(data.drill_id),
            "program_assignment_id": str(data.program_assignment_id),
            "completed": data.completed,
        },
    )


def _exercise_filters(client_id: uuid.UUID, exercise_id: str, program_drill_key: str, on_date: date):
    drill_filter = ExerciseCompletion.program_drill_id == program_drill_key
    if program_drill_key == STANDALONE_DRILL:
        # Older rows left the drill empty.
        drill_filter = or_(drill_filter, ExerciseCompletion.program_drill_id.is_(None))
    return (
        ExerciseCompletion.client_id == client_id,
        ExerciseCompletion.exercise_id == exercise_id,
        drill_filter,
        ExerciseCompletion.completion_date == on_date,
    )


@router.post("/exercise", response_model=StandardResponse)
async def mark_exercise(
    data: ExerciseCompletionRequest,
    client: CurrentClient,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Date-scoped completion. Completing upserts one row; un-completing deletes it."""
    _ensure_not_future(data.date)
    exercise_id = normalize_ref(data.exercise_id)
    program_drill_id = _exercise_drill_key(data.program_drill_id)
    filters = _exercise_filters(client.id, exercise_id, program_drill_id, data.date)

    if data.completed:
        lookup = select(ExerciseCompletion).where(*filters)
        existing = (await db.execute(lookup)).scalars().first()
        now = datetime.now(timezone.utc)
        if existing is None:
            row = ExerciseCompletion(
                client_id=client.id,
                exercise_id=exercise_id,
                program_drill_id=program_drill_id,
                completion_date=data.date,
                completed=True,
                completed_at=now,
            )
            await insert_once(db, row, lookup)
        else:
            if not existing.completed:
                existing.completed = True
                existing.completed_at = now
            await db.commit()
    else:
        await db.execute(delete(ExerciseCompletion).where(*filters))
        await db.commit()
    return StandardResponse(
        message="Exercise marked complete" if data.completed else "Exercise marked incomplete",
        data={
            "exercise_id": exercise_id,
            "program_drill_id": program_drill_id,
            "date": data.date.isoformat(),
            "completed": data.completed,
        },
    )


@router.post("/routine-exercise", response_model=StandardResponse)
async def mark_routine_exercise(
    data: RoutineExerciseCompletionRequest,
    client: CurrentClient,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    stmt = (
        select(RoutineAssignment)
        .where(RoutineAssignment.id == data.routine_assignment_id, RoutineAssignment.client_id == client.id)
        .options(selectinload(RoutineAssignment.routine).selectinload(Routine.exercises))
    )
    assignment = (await db.execute(stmt)).scalar_one_or_none()
    if assignment is None:
        raise HTTPException(status_code=404, detail="Routine assignment not found")
    if assignment.routine is None or all(exercise.id != data.exercise_id for exercise in assignment.routine.exercises):
        raise HTTPException(status_code=404, detail="Exercise not found in routine")
    _ensure_not_future(routine_assignment_window(assignment)[0])

    match = (
        RoutineExerciseCompletion.routine_assignment_id == data.routine_assignment_id,
        RoutineExerciseCompletion.exercise_id == data.exercise_id,
        RoutineExerciseCompletion.client_id == client.id,
    )
    if data.completed:
        existing = select(RoutineExerciseCompletion).where(*match)
        if (await db.execute(existing)).scalar_one_or_none() is None:
            row = RoutineExerciseCompletion(
                routine_assignment_id=data.routine_assignment_id,
                exercise_id=data.exercise_id,
                client_id=client.id,
            )
            await insert_once(db, row, existing)
    else:
        await db.execute(delete(RoutineExerciseCompletion).where(*match))
        await db.commit()
    return StandardResponse(
        message="Exercise marked complete" if data.completed else "Exercise marked incomplete",
        data={
            "routine_assignment_id": str(data.routine_assignment_id),
            "exercise_id": str(data.exercise_id),
            "completed": data.completed,
        },
    )


@router.post("/program", response_model=StandardResponse)
async def mark_program(
    data: ProgramCompletionRequest,
    client: CurrentClient,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Completed assignments drop out of the calendar; un-completing brings them back."""
    assignment = await _get_client_assignment(db, client, data.program_assignment_id)
    assignment.completed_at = datetime.now(timezone.utc) if data.completed else None
    await db.commit()
    return StandardResponse(
        message="Program marked complete" if data.completed else "Program marked incomplete",
        data={"program_assignment_id": str(assignment.id), "completed": data.completed},
    )


@router.get("/exercise", response_model=StandardResponse[List[ExerciseCompletionResponse]])
async def list_exercise_completions(
    client: CurrentClient,
    db: Annotated[AsyncSession, Depends(get_db)],
    on_date: date = Query(..., alias="date"),
    program_drill_id: str | None = None,
):
    stmt = select(ExerciseCompletion).where(
        ExerciseCompletion.client_id == client.id,
        ExerciseCompletion.completion_date == on_date,
        ExerciseCompletion.completed.is_(True),
    )
    if program_drill_id is not None:
        stmt = stmt.where(ExerciseCompletion.program_drill_id == normalize_ref(program_drill_id))
    rows = (await db.execute(stmt.order_by(ExerciseCompletion.created_at))).scalars().all()
    return StandardResponse(data=[ExerciseCompletionResponse.model_validate(row) for row in rows])


@router.post("/exercise/status", response_model=StandardResponse[List[ExerciseStatusResponse]])
async def get_exercise_status(
    data: ExerciseStatusRequest,
    client: CurrentClient,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    rows = (
        await db.execute(
            select(ExerciseCompletion).where(
                ExerciseCompletion.client_id == client.id,
                ExerciseCompletion.completion_date == data.date,
                ExerciseCompletion.completed.is_(True),
            )
        )
    ).scalars().all()
    completed_keys = {(normalize_ref(row.exercise_id), _exercise_drill_key(row.program_drill_id)) for row in rows}

    statuses = []
    for item in data.items:
        exercise_id = normalize_ref(item.exercise_id)
        program_drill_id = normalize_ref(item.program_drill_id)
        statuses.append(
            ExerciseStatusResponse(
                exercise_id=exercise_id,
                program_drill_id=program_drill_id,
                completed=(exercise_id, _exercise_drill_key(program_drill_id)) in completed_keys,
            )
        )
    return StandardResponse(data=statuses)


@router.post("/video-assignments/{assignment_id}", response_model=StandardResponse)
async def mark_video_assignment(
    assignment_id: uuid.UUID,
    data: VideoAssignmentCompletionRequest,
    client: CurrentClient,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    stmt = select(VideoAssignment).where(VideoAssignment.id == assignment_id, VideoAssignment.client_id == client.id)
    video = (await db.execute(stmt)).scalar_one_or_none()
    if video is None:
        raise HTTPException(status_code=404, detail="Video assignment not found")
    video.completed = data.completed
    video.completed_at = datetime.now(timezone.utc) if data.completed else None
    await db.commit()
    return StandardResponse(
        message="Video assignment updated",
        data={"id": str(video.id), "completed": video.completed},
    )
