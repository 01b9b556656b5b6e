import calendar as month_calendar
from datetime import date
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from coaching.auth import dependencies
from coaching.calendar import build_calendar, build_day, build_light_calendar, load_calendar_source
from coaching.config import settings
from coaching.core.responses import StandardResponse
from coaching.database import get_db
from coaching.models.user import Client

router = APIRouter()


def month_bounds(year: int, month: int) -> tuple[date, date]:
    if not 1 <= month <= 12:
        raise HTTPException(status_code=400, detail="month must be between 1 and 12")
    last_day = month_calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def validate_range(start_date: date, end_date: date) -> None:
    if end_date < start_date:
        raise HTTPException(status_code=400, detail="end_date must not be before start_date")
    span = (end_date - start_date).days + 1
    if span > settings.MAX_CALENDAR_RANGE_DAYS:
        raise HTTPException(
            status_code=400,
            detail=f"Date range cannot exceed {settings.MAX_CALENDAR_RANGE_DAYS} days",
        )


async def full_calendar(db: AsyncSession, client: Client, start: date, end: date) -> dict[str, Any]:
    source = await load_calendar_source(db, client.id, start=start, end=end)
    return {key: projection.to_dict() for key, projection in build_calendar(source, start, end).items()}


@router.get("/month", response_model=StandardResponse[dict])
async def get_month_calendar(
    client: Annotated[Client, Depends(dependencies.get_current_client)],
    db: Annotated[AsyncSession, Depends(get_db)],
    year: int = Query(..., ge=1970, le=9999),
    month: int = Query(..., ge=1, le=12),
):
    """Full-detail calendar for a month; dates without content are omitted."""
    start, end = month_bounds(year, month)
    return StandardResponse(data=await full_calendar(db, client, start, end))


@router.get("/light", response_model=StandardResponse[dict])
async def get_light_calendar(
    client: Annotated[Client, Depends(dependencies.get_current_client)],
    db: Annotated[AsyncSession, Depends(get_db)],
    year: int = Query(..., ge=1970, le=9999),
    month: int = Query(..., ge=1, le=12),
):
    """Counts-only summary for every day of the month."""
    start, end = month_bounds(year, month)
    source = await load_calendar_source(db, client.id, start=start, end=end)
    summaries = build_light_calendar(source, start, end)
    return StandardResponse(data={key: summary.to_dict() for key, summary in summaries.items()})


@router.get("/range", response_model=StandardResponse[dict])
async def get_range_calendar(
    client: Annotated[Client, Depends(dependencies.get_current_client)],
    db: Annotated[AsyncSession, Depends(get_db)],
    start_date: date,
    end_date: date,
):
    validate_range(start_date, end_date)
    return StandardResponse(data=await full_calendar(db, client, start_date, end_date))


@router.get("/day", response_model=StandardResponse[dict | None])
async def get_day(
    client: Annotated[Client, Depends(dependencies.get_current_client)],
    db: Annotated[AsyncSession, Depends(get_db)],
    on_date: date = Query(..., alias="date"),
):
    source = await load_calendar_source(db, client.id, start=on_date, end=on_date)
    projection = build_day(source, on_date)
    return StandardResponse(data=projection.to_dict() if projection is not None else None)
