from datetime import date, datetime, time, timedelta, timezone
from typing import Annotated, List, Literal
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from coaching.auth import dependencies
from coaching.auth.schemas import AuthenticatedUser
from coaching.config import settings
from coaching.core.responses import StandardResponse
from coaching.database import get_db
from coaching.models.enums import EventStatus
from coaching.models.event import Event
from coaching.models.program import ProgramAssignment, ProgramDayReplacement
from coaching.models.user import Client, User
from coaching.models.video import VideoAssignment
from coaching.routers.calendar import full_calendar, validate_range
from coaching.routers.programs import get_coach_program
from coaching.services.compliance_service import ComplianceService
from coaching.services.notification_service import NotificationService
from coaching.services.timezone_service import get_app_timezone

logger = logging.getLogger(__name__)

router = APIRouter()

CurrentCoach = Annotated[AuthenticatedUser, Depends(dependencies.get_current_coach)]


# --- Pydantic Models ---

class LessonData(BaseModel):
    title: str = Field(default="Lesson", min_length=1)
    description: str | None = None
    start_time: time
    duration_minutes: int = Field(default=settings.DEFAULT_LESSON_MINUTES, ge=5, le=24 * 60)


class ReplaceWorkoutRequest(BaseModel):
    program_assignment_id: uuid.UUID
    date: date
    lesson: LessonData | None = None
    substitute_program_id: uuid.UUID | None = None
    substitute_start_date: date | None = None
    substitute_end_date: date | None = None
    reason: str | None = None

    @model_validator(mode="after")
    def _one_replacement_kind(self):
        if (self.lesson is None) == (self.substitute_program_id is None):
            raise ValueError("Provide either a lesson or a substitute_program_id")
        # The substitute range starts on the replaced date unless given.
        start = self.substitute_start_date or self.date
        if self.substitute_end_date and self.substitute_end_date < start:
            raise ValueError("substitute_end_date must not be before the substitute start")
        return self


class DeleteDayRequest(BaseModel):
    program_assignment_id: uuid.UUID
    date: date
    reason: str | None = None


class ReplacementResponse(BaseModel):
    id: uuid.UUID
    assignment_id: uuid.UUID
    replaced_date: datetime
    lesson_id: uuid.UUID | None = None
    substitute_program_id: uuid.UUID | None = None
    substitute_start_date: date | None = None
    substitute_end_date: date | None = None
    reason: str | None = None

    model_config = ConfigDict(from_attributes=True)


class VideoAssignmentCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str | None = None
    video_url: str | None = None
    thumbnail_url: str | None = None
    due_date: date | None = None


class VideoAssignmentResponse(BaseModel):
    id: uuid.UUID
    client_id: uuid.UUID
    title: str
    description: str | None = None
    video_url: str | None = None
    thumbnail_url: str | None = None
    due_date: date | None = None
    completed: bool
    assigned_at: datetime

    model_config = ConfigDict(from_attributes=True)


# --- Helpers ---

def replacement_instant(day: date) -> datetime:
    """Replacements are keyed by UTC midnight of the replaced calendar date."""
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


def lesson_window(day: date, lesson: LessonData) -> tuple[datetime, datetime]:
    start = datetime.combine(day, lesson.start_time, tzinfo=get_app_timezone()).astimezone(timezone.utc)
    return start, start + timedelta(minutes=lesson.duration_minutes)


async def _get_client_assignment(
    db: AsyncSession, coach: AuthenticatedUser, client: Client, assignment_id: uuid.UUID
) -> ProgramAssignment:
    stmt = (
        select(ProgramAssignment)
        .where(ProgramAssignment.id == assignment_id, ProgramAssignment.client_id == client.id)
        .options(selectinload(ProgramAssignment.program))
    )
    assignment = (await db.execute(stmt)).scalar_one_or_none()
    if assignment is None:
        raise HTTPException(status_code=404, detail="Program assignment not found")
    if assignment.program is None or assignment.program.coach_id != coach.id:
        raise HTTPException(status_code=403, detail="Program belongs to another coach")
    return assignment


async def _ensure_day_free(db: AsyncSession, assignment_id: uuid.UUID, day: date) -> None:
    stmt = select(ProgramDayReplacement.id).where(
        ProgramDayReplacement.assignment_id == assignment_id,
        ProgramDayReplacement.replaced_date == replacement_instant(day),
    )
    if (await db.execute(stmt)).first() is not None:
        raise HTTPException(status_code=409, detail="This day has already been replaced")


async def _ensure_slot_free(db: AsyncSession, coach_id: uuid.UUID, start: datetime, end: datetime) -> None:
    stmt = select(Event.id).where(
        Event.coach_id == coach_id,
        Event.status != EventStatus.CANCELLED,
        Event.date < end,
        Event.end_time > start,
    )
    if (await db.execute(stmt)).first() is not None:
        raise HTTPException(status_code=409, detail="You already have a lesson booked at this time")


async def _notify_client(db: AsyncSession, user_id: uuid.UUID | None, **kwargs) -> None:
    if user_id is None:
        return
    user = await db.get(User, user_id)
    if user is not None:
        await NotificationService.notify_user(db, user=user, **kwargs)


# --- Endpoints ---

@router.post("/{client_id}/replace-workout", response_model=StandardResponse[ReplacementResponse])
async def replace_workout(
    client_id: uuid.UUID,
    data: ReplaceWorkoutRequest,
    current_user: CurrentCoach,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Replace one program day with a lesson or with content from another program.

    The lesson event and the replacement row are committed together; the client
    notification is sent afterwards and never fails the request.
    """
    client = await dependencies.get_owned_client(client_id, current_user, db)
    assignment = await _get_client_assignment(db, current_user, client, data.program_assignment_id)
    await _ensure_day_free(db, assignment.id, data.date)

    replacement = ProgramDayReplacement(
        assignment_id=assignment.id,
        replaced_date=replacement_instant(data.date),
        reason=data.reason,
        coach_id=current_user.id,
    )
    if data.lesson is not None:
        start, end = lesson_window(data.date, data.lesson)
        await _ensure_slot_free(db, current_user.id, start, end)
        lesson = Event(
            title=data.lesson.title,
            description=data.lesson.description,
            date=start,
            end_time=end,
            status=EventStatus.PENDING,
            client_id=client.id,
            coach_id=current_user.id,
        )
        db.add(lesson)
        await db.flush()
        replacement.lesson_id = lesson.id
        message = f"Your workout on {data.date.isoformat()} was replaced with a lesson."
    else:
        substitute = await get_coach_program(db, current_user, data.substitute_program_id)
        replacement.substitute_program_id = substitute.id
        replacement.substitute_start_date = data.substitute_start_date
        replacement.substitute_end_date = data.substitute_end_date
        message = f"Your workout on {data.date.isoformat()} was replaced with {substitute.title}."

    db.add(replacement)
    await db.commit()
    await db.refresh(replacement)
    payload = ReplacementResponse.model_validate(replacement)
    logger.info("Replaced %s for assignment %s", data.date.isoformat(), assignment.id)

    await _notify_client(
        db,
        client.user_id,
        type="WORKOUT_REPLACED",
        title="Workout replaced",
        message=message,
        event_ref=str(payload.id),
        data={"date": data.date.isoformat(), "lesson_id": str(payload.lesson_id) if payload.lesson_id else None},
    )
    return StandardResponse(message="Workout replaced", data=payload)


@router.post("/{client_id}/delete-day", response_model=StandardResponse[ReplacementResponse])
async def delete_day(
    client_id: uuid.UUID,
    data: DeleteDayRequest,
    current_user: CurrentCoach,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    client = await dependencies.get_owned_client(client_id, current_user, db)
    assignment = await _get_client_assignment(db, current_user, client, data.program_assignment_id)
    await _ensure_day_free(db, assignment.id, data.date)

    replacement = ProgramDayReplacement(
        assignment_id=assignment.id,
        replaced_date=replacement_instant(data.date),
        reason=data.reason,
        coach_id=current_user.id,
    )
    db.add(replacement)
    await db.commit()
    await db.refresh(replacement)
    return StandardResponse(message="Day deleted", data=ReplacementResponse.model_validate(replacement))


@router.delete("/{client_id}/replacements/{replacement_id}", response_model=StandardResponse)
async def restore_day(
    client_id: uuid.UUID,
    replacement_id: uuid.UUID,
    current_user: CurrentCoach,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Undo a replacement so the base program shows again. A linked lesson is cancelled."""
    client = await dependencies.get_owned_client(client_id, current_user, db)
    stmt = (
        select(ProgramDayReplacement)
        .join(ProgramAssignment, ProgramAssignment.id == ProgramDayReplacement.assignment_id)
        .where(ProgramDayReplacement.id == replacement_id, ProgramAssignment.client_id == client.id)
        .options(selectinload(ProgramDayReplacement.lesson))
    )
    replacement = (await db.execute(stmt)).scalar_one_or_none()
    if replacement is None:
        raise HTTPException(status_code=404, detail="Replacement not found")
    if replacement.lesson is not None:
        replacement.lesson.status = EventStatus.CANCELLED
    await db.delete(replacement)
    await db.commit()
    return StandardResponse(message="Day restored")


@router.get("/{client_id}/calendar", response_model=StandardResponse[dict])
async def get_client_calendar(
    client_id: uuid.UUID,
    current_user: CurrentCoach,
    db: Annotated[AsyncSession, Depends(get_db)],
    start_date: date,
    end_date: date,
):
    client = await dependencies.get_owned_client(client_id, current_user, db)
    validate_range(start_date, end_date)
    return StandardResponse(data=await full_calendar(db, client, start_date, end_date))


@router.get("/{client_id}/compliance", response_model=StandardResponse[dict])
async def get_client_compliance(
    client_id: uuid.UUID,
    current_user: CurrentCoach,
    db: Annotated[AsyncSession, Depends(get_db)],
    period: Literal["4", "6", "8", "all"] = Query("4"),
):
    client = await dependencies.get_owned_client(client_id, current_user, db)
    return StandardResponse(data=await ComplianceService.get_compliance(db, client.id, period))


@router.post("/{client_id}/video-assignments", response_model=StandardResponse[VideoAssignmentResponse])
async def create_video_assignment(
    client_id: uuid.UUID,
    data: VideoAssignmentCreate,
    current_user: CurrentCoach,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    client = await dependencies.get_owned_client(client_id, current_user, db)
    video = VideoAssignment(client_id=client.id, coach_id=current_user.id, **data.model_dump())
    db.add(video)
    await db.commit()
    await db.refresh(video)
    payload = VideoAssignmentResponse.model_validate(video)

    await _notify_client(
        db,
        client.user_id,
        type="VIDEO_ASSIGNED",
        title="New video assigned",
        message=f"Your coach assigned you {payload.title}.",
        event_ref=str(payload.id),
        data={"video_assignment_id": str(payload.id)},
    )
    return StandardResponse(message="Video assigned", data=payload)


@router.get("/{client_id}/video-assignments", response_model=StandardResponse[List[VideoAssignmentResponse]])
async def list_video_assignments(
    client_id: uuid.UUID,
    current_user: CurrentCoach,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    client = await dependencies.get_owned_client(client_id, current_user, db)
    stmt = (
        select(VideoAssignment)
        .where(VideoAssignment.client_id == client.id)
        .order_by(VideoAssignment.assigned_at.desc())
    )
    videos = (await db.execute(stmt)).scalars().all()
    return StandardResponse(data=[VideoAssignmentResponse.model_validate(video) for video in videos])
