from coaching.calendar.aggregator import (
    CalendarSource,
    build_calendar,
    build_day,
    build_light_calendar,
    project_date,
)
from coaching.calendar.completion_resolver import CompletionIndex, ResolutionContext, resolve
from coaching.calendar.date_mapper import (
    format_date_key,
    map_date_to_coordinate,
    map_day_to_date,
    resolve_program_day,
)
from coaching.calendar.loader import load_calendar_source
from coaching.calendar.routine_expander import expand_day, expand_routine_assignment, parse_item_id


__all__ = [
    "CalendarSource",
    "CompletionIndex",
    "ResolutionContext",
    "build_calendar",
    "build_day",
    "build_light_calendar",
    "expand_day",
    "expand_routine_assignment",
    "format_date_key",
    "load_calendar_source",
    "map_date_to_coordinate",
    "map_day_to_date",
    "parse_item_id",
    "project_date",
    "resolve",
    "resolve_program_day",
]
