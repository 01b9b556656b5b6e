import uuid
from datetime import date, datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from coaching.config import settings
from coaching.models.completion import (
    STANDALONE_DRILL,
    DrillCompletion,
    ExerciseCompletion,
    ProgramDrillCompletion,
    RoutineExerciseCompletion,
)
from coaching.models.program import ProgramDayReplacement
from coaching.models.routine import RoutineAssignment
from coaching.models.video import VideoAssignment
from coaching.routers.completions import insert_once
from coaching.services.timezone_service import today_in_app_tz

BASE = f"{settings.API_V1_STR}/completions"
CALENDAR = f"{settings.API_V1_STR}/calendar"


async def _count(db_session: AsyncSession, model) -> int:
    return (await db_session.execute(select(func.count()).select_from(model))).scalar_one()


async def _day(client: AsyncClient, headers, on: str) -> dict:
    response = await client.get(f"{CALENDAR}/day", params={"date": on}, headers=headers)
    assert response.status_code == 200
    return response.json()["data"]


@pytest.mark.asyncio
async def test_program_drill_completion_is_idempotent(
    client: AsyncClient, db_session: AsyncSession, client_headers, client_profile, make_program, assign_program
):
    program = await make_program({1: {1: ["Shooting", "Passing"]}})
    assignment = await assign_program(program, client_profile, date(2024, 1, 1))
    drill = program.weeks[0].days[0].drills[0]
    payload = {"drill_id": str(drill.id), "program_assignment_id": str(assignment.id)}

    for _ in range(2):
        response = await client.post(f"{BASE}/program-drill", json=payload, headers=client_headers)
        assert response.status_code == 200
    assert await _count(db_session, ProgramDrillCompletion) == 1

    day = await _day(client, client_headers, "2024-01-01")
    assert day["completed_drills"] == 1
    assert [item["completed"] for item in day["programs"][0]["items"]] == [True, False]

    response = await client.post(
        f"{BASE}/program-drill", json={**payload, "completed": False}, headers=client_headers
    )
    assert response.status_code == 200
    assert await _count(db_session, ProgramDrillCompletion) == 0
    assert (await _day(client, client_headers, "2024-01-01"))["completed_drills"] == 0


@pytest.mark.asyncio
async def test_routine_composite_id_completes_parent_drill(
    client: AsyncClient, db_session: AsyncSession, client_headers, client_profile, make_program, assign_program, routine
):
    program = await make_program({1: {1: ["routine"]}}, routine_id=routine.id)
    await assign_program(program, client_profile, date(2024, 1, 1))
    parent = program.weeks[0].days[0].drills[0]
    composite = f"{parent.id}-routine-{routine.exercises[0].id}"

    response = await client.post(f"{BASE}/drill", json={"drill_id": composite}, headers=client_headers)
    assert response.status_code == 200
    rows = (await db_session.execute(select(DrillCompletion))).scalars().all()
    assert [row.drill_id for row in rows] == [parent.id]

    day = await _day(client, client_headers, "2024-01-01")
    assert day["total_drills"] == 2
    assert day["completed_drills"] == 2


@pytest.mark.asyncio
async def test_malformed_drill_id_is_bad_request(client: AsyncClient, client_headers):
    response = await client.post(f"{BASE}/drill", json={"drill_id": "abc-routine-def"}, headers=client_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_unassigned_drill_is_not_found(
    client: AsyncClient, client_headers, client_profile, make_program
):
    program = await make_program({1: {1: ["Shooting"]}})
    drill = program.weeks[0].days[0].drills[0]
    response = await client.post(f"{BASE}/drill", json={"drill_id": str(drill.id)}, headers=client_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_exercise_completion_is_date_scoped(
    client: AsyncClient, db_session: AsyncSession, client_headers, client_profile, make_program, assign_program
):
    program = await make_program({1: {n: ["Shooting"] for n in range(1, 8)}})
    await assign_program(program, client_profile, date(2024, 3, 4))
    drill = program.weeks[0].days[1].drills[0]

    payload = {"exercise_id": str(drill.id), "program_drill_id": None, "date": "2024-03-05"}
    for _ in range(2):
        response = await client.post(f"{BASE}/exercise", json=payload, headers=client_headers)
        assert response.status_code == 200
    assert await _count(db_session, ExerciseCompletion) == 1
    stored = (await db_session.execute(select(ExerciseCompletion))).scalar_one()
    assert stored.program_drill_id == STANDALONE_DRILL

    assert (await _day(client, client_headers, "2024-03-05"))["completed_drills"] == 1
    assert (await _day(client, client_headers, "2024-03-06"))["completed_drills"] == 0

    listed = await client.get(f"{BASE}/exercise", params={"date": "2024-03-05"}, headers=client_headers)
    assert [row["exercise_id"] for row in listed.json()["data"]] == [str(drill.id)]
    assert listed.json()["data"][0]["date"] == "2024-03-05"

    status = await client.post(
        f"{BASE}/exercise/status",
        json={"date": "2024-03-05", "items": [{"exercise_id": str(drill.id)}, {"exercise_id": "other"}]},
        headers=client_headers,
    )
    assert [row["completed"] for row in status.json()["data"]] == [True, False]


@pytest.mark.asyncio
async def test_future_dates_are_rejected(client: AsyncClient, client_headers):
    tomorrow = (today_in_app_tz() + timedelta(days=1)).isoformat()
    response = await client.post(
        f"{BASE}/exercise", json={"exercise_id": "anything", "date": tomorrow}, headers=client_headers
    )
    assert response.status_code == 400
    assert response.json()["code"] == "BAD_REQUEST"


@pytest.mark.asyncio
async def test_standalone_routine_exercise_completion(
    client: AsyncClient, db_session: AsyncSession, client_headers, client_profile, routine
):
    assignment = RoutineAssignment(routine_id=routine.id, client_id=client_profile.id, start_date=date(2024, 2, 1))
    db_session.add(assignment)
    await db_session.commit()
    exercise = routine.exercises[0]
    payload = {"routine_assignment_id": str(assignment.id), "exercise_id": str(exercise.id)}

    for _ in range(2):
        response = await client.post(f"{BASE}/routine-exercise", json=payload, headers=client_headers)
        assert response.status_code == 200
    assert await _count(db_session, RoutineExerciseCompletion) == 1

    day = await _day(client, client_headers, "2024-02-01")
    assert day["completed_drills"] == 1
    assert day["total_drills"] == 2


@pytest.mark.asyncio
async def test_completing_a_program_removes_it_from_the_calendar(
    client: AsyncClient, client_headers, client_profile, make_program, assign_program
):
    program = await make_program({1: {1: ["Shooting"]}})
    assignment = await assign_program(program, client_profile, date(2024, 1, 1))

    response = await client.post(
        f"{BASE}/program", json={"program_assignment_id": str(assignment.id)}, headers=client_headers
    )
    assert response.status_code == 200
    assert await _day(client, client_headers, "2024-01-01") is None

    await client.post(
        f"{BASE}/program",
        json={"program_assignment_id": str(assignment.id), "completed": False},
        headers=client_headers,
    )
    assert (await _day(client, client_headers, "2024-01-01"))["total_drills"] == 1


@pytest.mark.asyncio
async def test_video_assignment_completion(
    client: AsyncClient, db_session: AsyncSession, client_headers, client_profile, coach_user
):
    video = VideoAssignment(client_id=client_profile.id, coach_id=coach_user.id, title="Film", due_date=date(2024, 1, 2))
    db_session.add(video)
    await db_session.commit()

    response = await client.post(f"{BASE}/video-assignments/{video.id}", json={}, headers=client_headers)
    assert response.status_code == 200
    assert response.json()["data"]["completed"] is True
    day = await _day(client, client_headers, "2024-01-02")
    assert day["video_assignments"][0]["completed"] is True


@pytest.mark.asyncio
async def test_program_drill_must_belong_to_the_assignment(
    client: AsyncClient, db_session: AsyncSession, client_headers, client_profile, make_program, assign_program
):
    first = await make_program({1: {1: ["Shooting"]}}, title="First")
    second = await make_program({1: {1: ["Passing"]}}, title="Second")
    assignment = await assign_program(first, client_profile, date(2024, 1, 1))
    await assign_program(second, client_profile, date(2024, 1, 1))
    payload = {"drill_id": str(second.weeks[0].days[0].drills[0].id), "program_assignment_id": str(assignment.id)}

    response = await client.post(f"{BASE}/program-drill", json=payload, headers=client_headers)
    assert response.status_code == 404
    assert await _count(db_session, ProgramDrillCompletion) == 0

    db_session.add(
        ProgramDayReplacement(
            assignment_id=assignment.id,
            replaced_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
            substitute_program_id=second.id,
        )
    )
    await db_session.commit()

    response = await client.post(f"{BASE}/program-drill", json=payload, headers=client_headers)
    assert response.status_code == 200
    assert await _count(db_session, ProgramDrillCompletion) == 1


@pytest.mark.asyncio
async def test_legacy_exercise_row_without_drill_is_uncompleted(
    client: AsyncClient, db_session: AsyncSession, client_headers, client_profile
):
    db_session.add(
        ExerciseCompletion(
            client_id=client_profile.id,
            exercise_id="stretch",
            program_drill_id=None,
            completion_date=date(2024, 3, 5),
            completed=True,
        )
    )
    await db_session.commit()

    response = await client.post(
        f"{BASE}/exercise",
        json={"exercise_id": "stretch", "date": "2024-03-05", "completed": False},
        headers=client_headers,
    )
    assert response.status_code == 200
    assert await _count(db_session, ExerciseCompletion) == 0


@pytest.mark.asyncio
async def test_insert_once_accepts_a_row_written_concurrently(
    db_session: AsyncSession, client_profile, make_program, assign_program
):
    program = await make_program({1: {1: ["Shooting"]}})
    assignment = await assign_program(program, client_profile, date(2024, 1, 1))
    drill_id, assignment_id, client_id = program.weeks[0].days[0].drills[0].id, assignment.id, client_profile.id

    def completion() -> ProgramDrillCompletion:
        return ProgramDrillCompletion(drill_id=drill_id, program_assignment_id=assignment_id, client_id=client_id)

    # The other request commits between our lookup and our insert.
    db_session.add(completion())
    await db_session.commit()

    existing = select(ProgramDrillCompletion).where(
        ProgramDrillCompletion.drill_id == drill_id,
        ProgramDrillCompletion.program_assignment_id == assignment_id,
    )
    await insert_once(db_session, completion(), existing)
    assert await _count(db_session, ProgramDrillCompletion) == 1

    unrelated = select(ProgramDrillCompletion).where(ProgramDrillCompletion.client_id == uuid.uuid4())
    with pytest.raises(IntegrityError):
        await insert_once(db_session, completion(), unrelated)
