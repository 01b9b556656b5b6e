"""Builds calendar projections by merging every assignment's contribution per date.

Stateless: every call recomputes from a ``CalendarSource``. Two surfaces exist
and intentionally differ for dates without content: the full-detail calendar
omits them, the light summary reports them as rest days with zero counts.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date

from coaching.calendar.completion_resolver import CompletionIndex, ResolutionContext, resolve
from coaching.calendar.date_mapper import format_date_key, iter_dates, resolve_program_day
from coaching.calendar.routine_expander import expand_day, expand_routine_assignment
from coaching.calendar.types import (
    DayProjection,
    LightDaySummary,
    ProgramDayEntry,
    ResolvedItem,
    VideoAssignmentEntry,
)
from coaching.models.program import ProgramAssignment
from coaching.models.routine import Routine, RoutineAssignment
from coaching.models.video import VideoAssignment
from coaching.services.timezone_service import to_local_date

logger = logging.getLogger(__name__)


@dataclass
class CalendarSource:
    """Everything the projection reads for one client, loaded up front."""

    client_id: uuid.UUID
    program_assignments: list[ProgramAssignment] = field(default_factory=list)
    routine_assignments: list[RoutineAssignment] = field(default_factory=list)
    routines: dict[uuid.UUID, Routine] = field(default_factory=dict)
    completions: CompletionIndex = field(default_factory=CompletionIndex)
    video_assignments: list[VideoAssignment] = field(default_factory=list)


def routine_assignment_window(assignment: RoutineAssignment) -> tuple[date, date]:
    # Without an end date a routine shows only on its start date.
    start = assignment.start_date or to_local_date(assignment.assigned_at)
    end = assignment.end_date or start
    return start, end


def project_program_entry(
    source: CalendarSource, assignment: ProgramAssignment, on_date: date
) -> ProgramDayEntry | None:
    if assignment.completed_at is not None:
        return None
    resolved_day = resolve_program_day(assignment, on_date)
    if resolved_day is None:
        return None

    expansion = expand_day(resolved_day.day, source.routines)
    context = ResolutionContext(on_date=on_date, program_assignment_id=assignment.id)
    items = [ResolvedItem(item, resolve(item, context, source.completions)) for item in expansion.items]
    program = resolved_day.program
    return ProgramDayEntry(
        kind="program",
        assignment_id=assignment.id,
        program_id=program.id,
        title=program.title,
        description=program.description,
        week_number=resolved_day.coordinate.week_number,
        day_number=resolved_day.coordinate.day_number,
        warmup_title=resolved_day.day.warmup_title,
        warmup_description=resolved_day.day.warmup_description,
        is_rest_day=resolved_day.day.is_rest_day or not items,
        items=items,
        substituted=resolved_day.substituted,
        orphaned_items=expansion.orphaned,
    )


def project_routine_entry(
    source: CalendarSource, assignment: RoutineAssignment, on_date: date
) -> ProgramDayEntry | None:
    start, end = routine_assignment_window(assignment)
    if not start <= on_date <= end:
        return None
    if assignment.routine is None:
        logger.warning("Routine assignment %s references a missing routine", assignment.id)
        return None
    expansion = expand_routine_assignment(assignment)

    context = ResolutionContext(on_date=on_date)
    items = [ResolvedItem(item, resolve(item, context, source.completions)) for item in expansion.items]
    return ProgramDayEntry(
        kind="routine",
        assignment_id=assignment.id,
        routine_id=assignment.routine_id,
        title=assignment.routine.name,
        description=assignment.routine.description,
        is_rest_day=not items,
        items=items,
        orphaned_items=expansion.orphaned,
    )


def _video_entry(video: VideoAssignment) -> VideoAssignmentEntry:
    return VideoAssignmentEntry(
        id=video.id,
        title=video.title,
        description=video.description,
        video_url=video.video_url,
        thumbnail_url=video.thumbnail_url,
        due_date=video.due_date,
        completed=video.completed,
    )


def project_date(source: CalendarSource, on_date: date, *, include_videos: bool = True) -> DayProjection | None:
    projection = DayProjection(date=on_date)
    for assignment in source.program_assignments:
        entry = project_program_entry(source, assignment, on_date)
        if entry is not None:
            projection.add_entry(entry)
    for routine_assignment in source.routine_assignments:
        entry = project_routine_entry(source, routine_assignment, on_date)
        if entry is not None:
            projection.add_entry(entry)
    if include_videos:
        for video in source.video_assignments:
            if video.due_date == on_date:
                projection.add_video_assignment(_video_entry(video))

    if not projection.programs and not projection.video_assignments:
        return None
    if projection.orphaned_items:
        logger.debug(
            "Skipped %s orphaned item(s) for client %s on %s",
            projection.orphaned_items,
            source.client_id,
            format_date_key(on_date),
        )
    return projection


def build_calendar(source: CalendarSource, start: date, end: date) -> dict[str, DayProjection]:
    calendar: dict[str, DayProjection] = {}
    for on_date in iter_dates(start, end):
        projection = project_date(source, on_date)
        if projection is not None:
            calendar[format_date_key(on_date)] = projection
    return calendar


def build_light_calendar(source: CalendarSource, start: date, end: date) -> dict[str, LightDaySummary]:
    summaries: dict[str, LightDaySummary] = {}
    for on_date in iter_dates(start, end):
        projection = project_date(source, on_date)
        if projection is None:
            summaries[format_date_key(on_date)] = LightDaySummary(date=on_date)
        else:
            summaries[format_date_key(on_date)] = LightDaySummary.from_projection(projection)
    return summaries


def build_day(source: CalendarSource, on_date: date) -> DayProjection | None:
    return project_date(source, on_date)
