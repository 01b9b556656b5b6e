import uuid
from datetime import date, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from coaching.calendar.aggregator import CalendarSource, project_date, routine_assignment_window
from coaching.calendar.date_mapper import effective_start_date, format_date_key, iter_dates
from coaching.calendar.loader import load_calendar_source
from coaching.services.timezone_service import today_in_app_tz

PERIODS = {"4": 4, "6": 6, "8": 8, "all": None}


def _completion_rate(completed: int, total: int) -> float:
    if total == 0:
        return 0.0
    return round(completed * 100 / total, 1)


def earliest_start(source: CalendarSource) -> date | None:
    starts = [effective_start_date(assignment) for assignment in source.program_assignments]
    starts.extend(routine_assignment_window(assignment)[0] for assignment in source.routine_assignments)
    return min(starts) if starts else None


def period_start(source: CalendarSource, period: str, today: date) -> date | None:
    weeks = PERIODS[period]
    if weeks is None:
        return earliest_start(source)
    return today - timedelta(weeks=weeks) + timedelta(days=1)


def summarize(source: CalendarSource, start: date | None, end: date) -> dict:
    """Scheduled vs completed items per week from ``start`` through ``end`` inclusive.

    Rest days contribute nothing. Video assignments are not counted.
    """
    total = 0
    completed = 0
    weeks: list[dict] = []
    if start is not None and start <= end:
        week_start = start
        while week_start <= end:
            week_end = min(week_start + timedelta(days=6), end)
            week_total = 0
            week_completed = 0
            for on_date in iter_dates(week_start, week_end):
                projection = project_date(source, on_date, include_videos=False)
                if projection is None or projection.is_rest_day:
                    continue
                week_total += projection.total_drills
                week_completed += projection.completed_drills
            weeks.append(
                {
                    "week_start": format_date_key(week_start),
                    "week_end": format_date_key(week_end),
                    "total": week_total,
                    "completed": week_completed,
                    "completion_rate": _completion_rate(week_completed, week_total),
                }
            )
            total += week_total
            completed += week_completed
            week_start = week_end + timedelta(days=1)

    return {
        "start_date": format_date_key(start) if start is not None and start <= end else None,
        "end_date": format_date_key(end),
        "total": total,
        "completed": completed,
        "completion_rate": _completion_rate(completed, total),
        "weeks": weeks,
    }


class ComplianceService:
    @staticmethod
    async def get_compliance(db: AsyncSession, client_id: uuid.UUID, period: str) -> dict:
        if period not in PERIODS:
            raise ValueError(f"Unsupported period: {period}")
        today = today_in_app_tz()
        source = await load_calendar_source(db, client_id, end=today)
        start = period_start(source, period, today)
        result = summarize(source, start, today)
        result["period"] = period
        return result
