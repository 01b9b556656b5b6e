from datetime import date, datetime
from typing import Annotated, List
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from coaching.auth import dependencies
from coaching.auth.schemas import AuthenticatedUser
from coaching.core.responses import StandardResponse
from coaching.database import get_db
from coaching.models.enums import DrillType
from coaching.models.program import (
    Program,
    ProgramAssignment,
    ProgramDay,
    ProgramDayReplacement,
    ProgramDrill,
    ProgramWeek,
)
from coaching.models.routine import Routine
from coaching.models.user import Client, User
from coaching.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter()

CurrentCoach = Annotated[AuthenticatedUser, Depends(dependencies.get_current_coach)]


# --- Pydantic Models ---

class ExerciseData(BaseModel):
    title: str = Field(min_length=1)
    description: str | None = None
    duration: str | None = None
    video_url: str | None = None
    video_id: str | None = None
    video_title: str | None = None
    video_thumbnail: str | None = None
    notes: str | None = None
    sets: int | None = Field(default=None, ge=0)
    reps: int | None = Field(default=None, ge=0)
    tempo: str | None = None
    type: DrillType = DrillType.EXERCISE
    superset_id: str | None = None
    superset_order: int | None = None
    superset_description: str | None = None
    superset_instructions: str | None = None
    superset_notes: str | None = None


class CoachInstructionsData(BaseModel):
    what_to_do: str | None = None
    how_to_do_it: str | None = None
    key_points: List[str] = Field(default_factory=list)
    common_mistakes: List[str] = Field(default_factory=list)
    easier: str | None = None
    harder: str | None = None
    equipment: str | None = None
    setup: str | None = None


class DrillCreate(ExerciseData):
    order: int | None = None
    routine_id: uuid.UUID | None = None
    coach_instructions: CoachInstructionsData | None = None

    @model_validator(mode="after")
    def _routine_drills_need_routine(self):
        if self.type == DrillType.ROUTINE and self.routine_id is None:
            raise ValueError("routine_id is required for routine drills")
        return self


class DayCreate(BaseModel):
    day_number: int = Field(ge=1, le=7)
    title: str | None = None
    is_rest_day: bool = False
    warmup_title: str | None = None
    warmup_description: str | None = None
    drills: List[DrillCreate] = Field(default_factory=list)


class WeekCreate(BaseModel):
    week_number: int = Field(ge=1)
    title: str | None = None
    days: List[DayCreate] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_days(self):
        numbers = [day.day_number for day in self.days]
        if len(numbers) != len(set(numbers)):
            raise ValueError("day_number must be unique within a week")
        return self


class ProgramCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str | None = None
    duration_weeks: int | None = Field(default=None, ge=1)
    weeks: List[WeekCreate] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_weeks(self):
        numbers = [week.week_number for week in self.weeks]
        if len(numbers) != len(set(numbers)):
            raise ValueError("week_number must be unique within a program")
        return self


class ProgramDrillResponse(BaseModel):
    id: uuid.UUID
    order: int
    title: str
    description: str | None = None
    duration: str | None = None
    video_url: str | None = None
    video_id: str | None = None
    video_title: str | None = None
    video_thumbnail: str | None = None
    notes: str | None = None
    sets: int | None = None
    reps: int | None = None
    tempo: str | None = None
    type: str | None = None
    routine_id: uuid.UUID | None = None
    superset_id: str | None = None
    superset_order: int | None = None

    model_config = ConfigDict(from_attributes=True)


class ProgramDayResponse(BaseModel):
    id: uuid.UUID
    day_number: int
    title: str | None = None
    is_rest_day: bool
    warmup_title: str | None = None
    warmup_description: str | None = None
    drills: List[ProgramDrillResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class ProgramWeekResponse(BaseModel):
    id: uuid.UUID
    week_number: int
    title: str | None = None
    days: List[ProgramDayResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class ProgramResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: str | None = None
    duration_weeks: int
    created_at: datetime
    weeks: List[ProgramWeekResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class ProgramSummaryResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: str | None = None
    duration_weeks: int
    created_at: datetime
    active_assignments: int = 0


class RestDayToggle(BaseModel):
    is_rest_day: bool | None = None


class ProgramAssignRequest(BaseModel):
    client_ids: List[uuid.UUID] = Field(min_length=1)
    start_date: date | None = None


class ProgramAssignmentResponse(BaseModel):
    id: uuid.UUID
    program_id: uuid.UUID
    client_id: uuid.UUID
    assigned_at: datetime
    start_date: date | None = None
    completed_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


# --- Helpers ---

def _program_tree_options():
    return selectinload(Program.weeks).selectinload(ProgramWeek.days).selectinload(ProgramDay.drills)


async def get_coach_program(
    db: AsyncSession, coach: AuthenticatedUser, program_id: uuid.UUID, *options
) -> Program:
    stmt = select(Program).where(Program.id == program_id)
    if options:
        stmt = stmt.options(*options).execution_options(populate_existing=True)
    program = (await db.execute(stmt)).scalar_one_or_none()
    if program is None:
        raise HTTPException(status_code=404, detail="Program not found")
    if program.coach_id != coach.id:
        raise HTTPException(status_code=403, detail="Program belongs to another coach")
    return program


async def _check_routines(db: AsyncSession, coach: AuthenticatedUser, routine_ids: set[uuid.UUID]) -> None:
    if not routine_ids:
        return
    found = set(
        (
            await db.execute(select(Routine.id).where(Routine.id.in_(routine_ids), Routine.coach_id == coach.id))
        ).scalars().all()
    )
    missing = routine_ids - found
    if missing:
        raise HTTPException(status_code=404, detail=f"Routine not found: {sorted(str(m) for m in missing)[0]}")


def _build_drill(index: int, data: DrillCreate) -> ProgramDrill:
    instructions = data.coach_instructions
    return ProgramDrill(
        order=data.order if data.order is not None else index + 1,
        title=data.title,
        description=data.description,
        duration=data.duration,
        video_url=data.video_url,
        video_id=data.video_id,
        video_title=data.video_title,
        video_thumbnail=data.video_thumbnail,
        notes=data.notes,
        sets=data.sets,
        reps=data.reps,
        tempo=data.tempo,
        type=data.type.value,
        routine_id=data.routine_id if data.type == DrillType.ROUTINE else None,
        superset_id=data.superset_id,
        superset_order=data.superset_order,
        superset_description=data.superset_description,
        superset_instructions=data.superset_instructions,
        superset_notes=data.superset_notes,
        coach_instructions_what_to_do=instructions.what_to_do if instructions else None,
        coach_instructions_how_to_do_it=instructions.how_to_do_it if instructions else None,
        coach_instructions_key_points=instructions.key_points if instructions else None,
        coach_instructions_common_mistakes=instructions.common_mistakes if instructions else None,
        coach_instructions_easier=instructions.easier if instructions else None,
        coach_instructions_harder=instructions.harder if instructions else None,
        coach_instructions_equipment=instructions.equipment if instructions else None,
        coach_instructions_setup=instructions.setup if instructions else None,
    )


# --- Endpoints ---

@router.post("", response_model=StandardResponse[ProgramResponse])
async def create_program(
    data: ProgramCreate,
    current_user: CurrentCoach,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create a program with its nested weeks, days and drills in one commit."""
    routine_ids = {
        drill.routine_id
        for week in data.weeks
        for day in week.days
        for drill in day.drills
        if drill.type == DrillType.ROUTINE and drill.routine_id is not None
    }
    await _check_routines(db, current_user, routine_ids)

    duration = data.duration_weeks or max((week.week_number for week in data.weeks), default=1)
    program = Program(
        title=data.title,
        description=data.description,
        duration_weeks=duration,
        coach_id=current_user.id,
        weeks=[
            ProgramWeek(
                week_number=week.week_number,
                title=week.title,
                days=[
                    ProgramDay(
                        day_number=day.day_number,
                        title=day.title,
                        is_rest_day=day.is_rest_day,
                        warmup_title=day.warmup_title,
                        warmup_description=day.warmup_description,
                        drills=[_build_drill(index, drill) for index, drill in enumerate(day.drills)],
                    )
                    for day in week.days
                ],
            )
            for week in data.weeks
        ],
    )
    db.add(program)
    await db.commit()

    program = await get_coach_program(db, current_user, program.id, _program_tree_options())
    return StandardResponse(message="Program created", data=ProgramResponse.model_validate(program))


@router.get("", response_model=StandardResponse[List[ProgramSummaryResponse]])
async def list_programs(
    current_user: CurrentCoach,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    active_counts = (
        select(ProgramAssignment.program_id, func.count(ProgramAssignment.id).label("active"))
        .where(ProgramAssignment.completed_at.is_(None))
        .group_by(ProgramAssignment.program_id)
        .subquery()
    )
    stmt = (
        select(Program, func.coalesce(active_counts.c.active, 0))
        .outerjoin(active_counts, active_counts.c.program_id == Program.id)
        .where(Program.coach_id == current_user.id)
        .order_by(Program.created_at.desc())
    )
    rows = (await db.execute(stmt)).all()
    return StandardResponse(
        data=[
            ProgramSummaryResponse(
                id=program.id,
                title=program.title,
                description=program.description,
                duration_weeks=program.duration_weeks,
                created_at=program.created_at,
                active_assignments=active,
            )
            for program, active in rows
        ]
    )


@router.get("/{program_id}", response_model=StandardResponse[ProgramResponse])
async def get_program(
    program_id: uuid.UUID,
    current_user: CurrentCoach,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    program = await get_coach_program(db, current_user, program_id, _program_tree_options())
    return StandardResponse(data=ProgramResponse.model_validate(program))


@router.delete("/{program_id}", response_model=StandardResponse)
async def delete_program(
    program_id: uuid.UUID,
    current_user: CurrentCoach,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    program = await get_coach_program(
        db,
        current_user,
        program_id,
        _program_tree_options(),
        selectinload(Program.assignments).selectinload(ProgramAssignment.replacements),
    )
    # Replacements on other assignments that borrowed this program lose their content.
    own_assignments = select(ProgramAssignment.id).where(ProgramAssignment.program_id == program.id)
    await db.execute(
        delete(ProgramDayReplacement).where(
            ProgramDayReplacement.substitute_program_id == program.id,
            ProgramDayReplacement.assignment_id.not_in(own_assignments),
        )
    )
    await db.delete(program)
    await db.commit()
    return StandardResponse(message="Program deleted")


@router.patch(
    "/{program_id}/weeks/{week_number}/days/{day_number}/rest-day",
    response_model=StandardResponse[ProgramDayResponse],
)
async def toggle_rest_day(
    program_id: uuid.UUID,
    week_number: int,
    day_number: int,
    data: RestDayToggle,
    current_user: CurrentCoach,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Set or flip a day's rest flag. Drills are kept so the day can be restored."""
    await get_coach_program(db, current_user, program_id)
    stmt = (
        select(ProgramDay)
        .join(ProgramWeek, ProgramWeek.id == ProgramDay.week_id)
        .where(
            ProgramWeek.program_id == program_id,
            ProgramWeek.week_number == week_number,
            ProgramDay.day_number == day_number,
        )
        .options(selectinload(ProgramDay.drills))
    )
    day = (await db.execute(stmt)).scalar_one_or_none()
    if day is None:
        raise HTTPException(status_code=404, detail="Program day not found")

    day.is_rest_day = (not day.is_rest_day) if data.is_rest_day is None else data.is_rest_day
    await db.commit()
    return StandardResponse(
        message="Rest day updated",
        data=ProgramDayResponse.model_validate(day),
    )


@router.post("/{program_id}/assign", response_model=StandardResponse[List[ProgramAssignmentResponse]])
async def assign_program(
    program_id: uuid.UUID,
    data: ProgramAssignRequest,
    current_user: CurrentCoach,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    program = await get_coach_program(db, current_user, program_id)
    clients: list[Client] = []
    for client_id in dict.fromkeys(data.client_ids):
        clients.append(await dependencies.get_owned_client(client_id, current_user, db))

    assignments = [
        ProgramAssignment(program_id=program.id, client_id=client.id, start_date=data.start_date)
        for client in clients
    ]
    db.add_all(assignments)
    await db.commit()
    for assignment in assignments:
        await db.refresh(assignment)
    payload = [ProgramAssignmentResponse.model_validate(assignment) for assignment in assignments]

    program_ref, program_title = str(program.id), program.title
    recipients = [(client.user_id, assignment.id) for client, assignment in zip(clients, payload) if client.user_id]
    logger.info("Assigned program %s to %s client(s)", program_ref, len(payload))
    for user_id, assignment_ref in recipients:
        user = await db.get(User, user_id)
        if user is None:
            continue
        await NotificationService.notify_user(
            db,
            user=user,
            type="PROGRAM_ASSIGNED",
            title="New program assigned",
            message=f"Your coach assigned you {program_title}.",
            event_ref=str(assignment_ref),
            data={"program_id": program_ref, "assignment_id": str(assignment_ref)},
        )
    return StandardResponse(message="Program assigned", data=payload)


@router.delete("/assignments/{assignment_id}", response_model=StandardResponse)
async def unassign_program(
    assignment_id: uuid.UUID,
    current_user: CurrentCoach,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    stmt = (
        select(ProgramAssignment)
        .where(ProgramAssignment.id == assignment_id)
        .options(selectinload(ProgramAssignment.program), selectinload(ProgramAssignment.replacements))
    )
    assignment = (await db.execute(stmt)).scalar_one_or_none()
    if assignment is None:
        raise HTTPException(status_code=404, detail="Program assignment not found")
    if assignment.program is None or assignment.program.coach_id != current_user.id:
        raise HTTPException(status_code=403, detail="Program belongs to another coach")

    await db.delete(assignment)
    await db.commit()
    return StandardResponse(message="Program unassigned")
