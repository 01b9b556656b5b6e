from datetime import date, datetime
from typing import Annotated, List
import uuid

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from coaching.auth import dependencies
from coaching.auth.schemas import AuthenticatedUser
from coaching.core.responses import StandardResponse
from coaching.database import get_db
from coaching.models.routine import Routine, RoutineAssignment, RoutineExercise
from coaching.routers.programs import ExerciseData

router = APIRouter()

CurrentCoach = Annotated[AuthenticatedUser, Depends(dependencies.get_current_coach)]


class RoutineExerciseCreate(ExerciseData):
    order: int | None = None


class RoutineCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None
    exercises: List[RoutineExerciseCreate] = Field(default_factory=list)


class RoutineExerciseResponse(BaseModel):
    id: uuid.UUID
    order: int
    title: str
    description: str | None = None
    duration: str | None = None
    video_url: str | None = None
    notes: str | None = None
    sets: int | None = None
    reps: int | None = None
    tempo: str | None = None
    superset_id: str | None = None
    superset_order: int | None = None

    model_config = ConfigDict(from_attributes=True)


class RoutineResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None = None
    created_at: datetime
    exercises: List[RoutineExerciseResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class RoutineAssignRequest(BaseModel):
    client_ids: List[uuid.UUID] = Field(min_length=1)
    start_date: date | None = None
    end_date: date | None = None

    @model_validator(mode="after")
    def _ordered_window(self):
        if self.end_date is not None and self.start_date is None:
            raise ValueError("start_date is required when end_date is set")
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class RoutineAssignmentResponse(BaseModel):
    id: uuid.UUID
    routine_id: uuid.UUID
    client_id: uuid.UUID
    assigned_at: datetime
    start_date: date | None = None
    end_date: date | None = None

    model_config = ConfigDict(from_attributes=True)


async def _get_coach_routine(db: AsyncSession, coach: AuthenticatedUser, routine_id: uuid.UUID) -> Routine:
    stmt = (
        select(Routine)
        .where(Routine.id == routine_id)
        .options(selectinload(Routine.exercises))
        .execution_options(populate_existing=True)
    )
    routine = (await db.execute(stmt)).scalar_one_or_none()
    if routine is None:
        raise HTTPException(status_code=404, detail="Routine not found")
    if routine.coach_id != coach.id:
        raise HTTPException(status_code=403, detail="Routine belongs to another coach")
    return routine


@router.post("", response_model=StandardResponse[RoutineResponse])
async def create_routine(
    data: RoutineCreate,
    current_user: CurrentCoach,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    routine = Routine(
        name=data.name,
        description=data.description,
        coach_id=current_user.id,
        exercises=[
            RoutineExercise(
                order=exercise.order if exercise.order is not None else index + 1,
                **exercise.model_dump(exclude={"order", "type"}),
                type=exercise.type.value,
            )
            for index, exercise in enumerate(data.exercises)
        ],
    )
    db.add(routine)
    await db.commit()
    routine = await _get_coach_routine(db, current_user, routine.id)
    return StandardResponse(message="Routine created", data=RoutineResponse.model_validate(routine))


@router.get("", response_model=StandardResponse[List[RoutineResponse]])
async def list_routines(
    current_user: CurrentCoach,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    stmt = (
        select(Routine)
        .where(Routine.coach_id == current_user.id)
        .options(selectinload(Routine.exercises))
        .order_by(Routine.created_at.desc())
    )
    routines = (await db.execute(stmt)).scalars().all()
    return StandardResponse(data=[RoutineResponse.model_validate(routine) for routine in routines])


@router.post("/{routine_id}/assign", response_model=StandardResponse[List[RoutineAssignmentResponse]])
async def assign_routine(
    routine_id: uuid.UUID,
    data: RoutineAssignRequest,
    current_user: CurrentCoach,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Assign a standalone routine. Without an end date it shows on its start date only."""
    routine = await _get_coach_routine(db, current_user, routine_id)
    for client_id in dict.fromkeys(data.client_ids):
        await dependencies.get_owned_client(client_id, current_user, db)

    assignments = [
        RoutineAssignment(
            routine_id=routine.id,
            client_id=client_id,
            start_date=data.start_date,
            end_date=data.end_date,
        )
        for client_id in dict.fromkeys(data.client_ids)
    ]
    db.add_all(assignments)
    await db.commit()
    for assignment in assignments:
        await db.refresh(assignment)
    return StandardResponse(
        message="Routine assigned",
        data=[RoutineAssignmentResponse.model_validate(assignment) for assignment in assignments],
    )


@router.delete("/assignments/{assignment_id}", response_model=StandardResponse)
async def unassign_routine(
    assignment_id: uuid.UUID,
    current_user: CurrentCoach,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    stmt = (
        select(RoutineAssignment)
        .where(RoutineAssignment.id == assignment_id)
        .options(selectinload(RoutineAssignment.routine))
    )
    assignment = (await db.execute(stmt)).scalar_one_or_none()
    if assignment is None:
        raise HTTPException(status_code=404, detail="Routine assignment not found")
    if assignment.routine is None or assignment.routine.coach_id != current_user.id:
        raise HTTPException(status_code=403, detail="Routine belongs to another coach")

    await db.delete(assignment)
    await db.commit()
    return StandardResponse(message="Routine unassigned")
