"""Maps program (week, day) coordinates onto calendar dates and back.

All arithmetic is on ``datetime.date`` values, i.e. local midnight. Instants
(``assigned_at``) are first converted to the app timezone and truncated, so a
program assigned late in the evening does not drift onto the next day.
"""
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable

from coaching.calendar.types import DayCoordinate
from coaching.models.program import (
    Program,
    ProgramAssignment,
    ProgramDay,
    ProgramDayReplacement,
    ProgramWeek,
)
from coaching.services.timezone_service import to_local_date, to_utc_date

logger = logging.getLogger(__name__)

DAYS_PER_WEEK = 7


@dataclass(frozen=True)
class ResolvedDay:
    program: Program
    week: ProgramWeek
    day: ProgramDay
    coordinate: DayCoordinate
    replacement: ProgramDayReplacement | None = None

    @property
    def substituted(self) -> bool:
        return self.replacement is not None


def effective_start_date(assignment: ProgramAssignment) -> date:
    if assignment.start_date is not None:
        return to_local_date(assignment.start_date)
    return to_local_date(assignment.assigned_at)


def map_day_to_date(start: date, week_number: int, day_number: int) -> date:
    return start + timedelta(days=(week_number - 1) * DAYS_PER_WEEK + (day_number - 1))


def map_date_to_coordinate(start: date, target: date) -> DayCoordinate | None:
    days_since_start = (target - start).days
    if days_since_start < 0:
        return None
    return DayCoordinate(
        week_number=days_since_start // DAYS_PER_WEEK + 1,
        day_number=days_since_start % DAYS_PER_WEEK + 1,
    )


def format_date_key(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def iter_dates(start: date, end: date) -> Iterable[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def find_replacement(
    replacements: Iterable[ProgramDayReplacement], target: date
) -> ProgramDayReplacement | None:
    for replacement in replacements:
        if to_utc_date(replacement.replaced_date) == target:
            return replacement
    return None


def is_deleted_day(replacement: ProgramDayReplacement) -> bool:
    return replacement.lesson_id is None and replacement.substitute_program_id is None


def find_week(program: Program, week_number: int) -> ProgramWeek | None:
    return next((week for week in program.weeks if week.week_number == week_number), None)


def find_day(week: ProgramWeek, day_number: int) -> ProgramDay | None:
    return next((day for day in week.days if day.day_number == day_number), None)


def lookup_day(program: Program, coordinate: DayCoordinate) -> tuple[ProgramWeek, ProgramDay] | None:
    week = find_week(program, coordinate.week_number)
    if week is None:
        return None
    day = find_day(week, coordinate.day_number)
    if day is None:
        return None
    return week, day


def substitute_window(replacement: ProgramDayReplacement) -> tuple[date, date]:
    """Dates a substitute program covers. Both ends default to the replaced date."""
    start = replacement.substitute_start_date or to_utc_date(replacement.replaced_date)
    end = replacement.substitute_end_date or start
    return start, end


def _substitute_covers(replacement: ProgramDayReplacement, target: date) -> bool:
    if replacement.substitute_program_id is None or replacement.substitute_program is None:
        return False
    start, end = substitute_window(replacement)
    return start <= target <= end


def find_substitute(
    replacements: Iterable[ProgramDayReplacement], target: date
) -> ProgramDayReplacement | None:
    """The most recently replaced substitute whose range covers ``target``."""
    covering = [replacement for replacement in replacements if _substitute_covers(replacement, target)]
    if not covering:
        return None
    return max(covering, key=lambda replacement: to_utc_date(replacement.replaced_date))


def _resolve_substitute(replacement: ProgramDayReplacement, target: date) -> ResolvedDay | None:
    substitute = replacement.substitute_program
    coordinate = map_date_to_coordinate(substitute_window(replacement)[0], target)
    if coordinate is None:
        return None
    found = lookup_day(substitute, coordinate)
    if found is None:
        return None
    week, day = found
    return ResolvedDay(substitute, week, day, coordinate, replacement)


def resolve_program_day(assignment: ProgramAssignment, target: date) -> ResolvedDay | None:
    """Resolve which program day, if any, an assignment shows on ``target``.

    A replacement keyed on ``target`` wins: deleted days and lessons hide the
    day, a substitute shows only if its range covers it. Otherwise any
    substitute range covering ``target`` supplies the day before the base
    program does.

    Returns None for "no content": the program has not started, the day was
    deleted or taken by a lesson, or the week/day does not exist.
    """
    replacement = find_replacement(assignment.replacements, target)
    if replacement is not None:
        if not _substitute_covers(replacement, target):
            return None
        return _resolve_substitute(replacement, target)

    replacement = find_substitute(assignment.replacements, target)
    if replacement is not None:
        return _resolve_substitute(replacement, target)

    coordinate = map_date_to_coordinate(effective_start_date(assignment), target)
    if coordinate is None:
        return None
    if assignment.program is None:
        logger.warning("Program assignment %s has no program", assignment.id)
        return None
    found = lookup_day(assignment.program, coordinate)
    if found is None:
        return None
    week, day = found
    return ResolvedDay(assignment.program, week, day, coordinate)
