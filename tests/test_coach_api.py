from datetime import date, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from coaching.config import settings
from coaching.models.completion import ProgramDrillCompletion
from coaching.models.enums import EventStatus
from coaching.models.event import Event
from coaching.models.notification import Notification, NotificationDeliveryLog
from coaching.models.program import Program, ProgramDayReplacement
from coaching.services.timezone_service import today_in_app_tz

API = settings.API_V1_STR


def _program_payload(routine_id=None) -> dict:
    day_one = [
        {"title": "Form shooting", "sets": 3, "reps": 10},
        {"title": "Free throws", "reps": 20, "coach_instructions": {"key_points": ["Elbow in"]}},
    ]
    if routine_id is not None:
        day_one.append({"title": "Warmup", "type": "routine", "routine_id": str(routine_id)})
    return {
        "title": "Shooting Block",
        "weeks": [
            {"week_number": 1, "days": [{"day_number": 1, "drills": day_one}, {"day_number": 7, "is_rest_day": True}]},
            {"week_number": 2, "days": [{"day_number": 1, "drills": [{"title": "Catch and shoot"}]}]},
        ],
    }


async def _count(db_session: AsyncSession, model, *where) -> int:
    stmt = select(func.count()).select_from(model)
    if where:
        stmt = stmt.where(*where)
    return (await db_session.execute(stmt)).scalar_one()


async def _client_calendar(client: AsyncClient, headers, profile, start: str, end: str) -> dict:
    response = await client.get(
        f"{API}/clients/{profile.id}/calendar",
        params={"start_date": start, "end_date": end},
        headers=headers,
    )
    assert response.status_code == 200
    return response.json()["data"]


@pytest.mark.asyncio
async def test_create_get_and_list_program(client: AsyncClient, coach_headers, routine):
    response = await client.post(f"{API}/programs", json=_program_payload(routine.id), headers=coach_headers)
    assert response.status_code == 200
    program = response.json()["data"]
    assert program["duration_weeks"] == 2
    week_one = program["weeks"][0]
    drills = week_one["days"][0]["drills"]
    assert [drill["order"] for drill in drills] == [1, 2, 3]
    assert drills[2]["type"] == "routine"
    assert drills[2]["routine_id"] == str(routine.id)

    fetched = await client.get(f"{API}/programs/{program['id']}", headers=coach_headers)
    assert fetched.json()["data"]["title"] == "Shooting Block"

    listed = await client.get(f"{API}/programs", headers=coach_headers)
    assert [(p["title"], p["active_assignments"]) for p in listed.json()["data"]] == [("Shooting Block", 0)]


@pytest.mark.asyncio
async def test_routine_drill_requires_routine_id(client: AsyncClient, coach_headers):
    payload = {
        "title": "Broken",
        "weeks": [{"week_number": 1, "days": [{"day_number": 1, "drills": [{"title": "R", "type": "routine"}]}]}],
    }
    response = await client.post(f"{API}/programs", json=payload, headers=coach_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_duplicate_day_numbers_are_rejected(client: AsyncClient, coach_headers):
    payload = {
        "title": "Dupes",
        "weeks": [{"week_number": 1, "days": [{"day_number": 2}, {"day_number": 2}]}],
    }
    response = await client.post(f"{API}/programs", json=payload, headers=coach_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_unknown_routine_is_not_found(client: AsyncClient, coach_headers):
    payload = _program_payload(routine_id="00000000-0000-0000-0000-000000000001")
    response = await client.post(f"{API}/programs", json=payload, headers=coach_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_assign_program_notifies_client(
    client: AsyncClient, db_session: AsyncSession, coach_headers, client_headers, client_profile, client_user, make_program
):
    client_user_id = client_user.id
    program = await make_program({1: {1: ["Shooting"]}})
    response = await client.post(
        f"{API}/programs/{program.id}/assign",
        json={"client_ids": [str(client_profile.id)], "start_date": "2024-01-01"},
        headers=coach_headers,
    )
    assert response.status_code == 200
    assignment = response.json()["data"][0]
    assert assignment["start_date"] == "2024-01-01"

    notifications = (
        await db_session.execute(select(Notification).where(Notification.user_id == client_user_id))
    ).scalars().all()
    assert [n.type for n in notifications] == ["PROGRAM_ASSIGNED"]
    assert await _count(db_session, NotificationDeliveryLog) == 2

    day = await client.get(f"{API}/calendar/day", params={"date": "2024-01-01"}, headers=client_headers)
    assert day.json()["data"]["programs"][0]["assignment_id"] == assignment["id"]


@pytest.mark.asyncio
async def test_assign_to_unknown_client_fails_without_writing(
    client: AsyncClient, db_session: AsyncSession, coach_headers, make_program
):
    program = await make_program({1: {1: ["Shooting"]}})
    response = await client.post(
        f"{API}/programs/{program.id}/assign",
        json={"client_ids": ["00000000-0000-0000-0000-000000000002"]},
        headers=coach_headers,
    )
    assert response.status_code == 404
    assert await _count(db_session, Notification) == 0


@pytest.mark.asyncio
async def test_toggle_rest_day(client: AsyncClient, coach_headers, client_profile, make_program, assign_program):
    program = await make_program({1: {1: ["Shooting"]}})
    await assign_program(program, client_profile, date(2024, 1, 1))
    url = f"{API}/programs/{program.id}/weeks/1/days/1/rest-day"

    response = await client.patch(url, json={}, headers=coach_headers)
    assert response.status_code == 200
    assert response.json()["data"]["is_rest_day"] is True
    assert len(response.json()["data"]["drills"]) == 1

    day = (await _client_calendar(client, coach_headers, client_profile, "2024-01-01", "2024-01-01"))["2024-01-01"]
    assert day["is_rest_day"] is True

    response = await client.patch(url, json={"is_rest_day": False}, headers=coach_headers)
    assert response.json()["data"]["is_rest_day"] is False

    missing = await client.patch(f"{API}/programs/{program.id}/weeks/3/days/1/rest-day", json={}, headers=coach_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_replace_workout_with_lesson(
    client: AsyncClient, db_session: AsyncSession, coach_headers, client_profile, client_user, make_program, assign_program
):
    client_user_id = client_user.id
    program = await make_program({1: {1: ["Shooting"], 2: ["Passing"]}})
    assignment = await assign_program(program, client_profile, date(2024, 1, 1))

    response = await client.post(
        f"{API}/clients/{client_profile.id}/replace-workout",
        json={
            "program_assignment_id": str(assignment.id),
            "date": "2024-01-02",
            "lesson": {"title": "Private lesson", "start_time": "17:00:00", "duration_minutes": 45},
        },
        headers=coach_headers,
    )
    assert response.status_code == 200
    replacement = response.json()["data"]
    assert replacement["lesson_id"] is not None
    assert replacement["replaced_date"].startswith("2024-01-02T00:00:00")

    lesson = (await db_session.execute(select(Event))).scalar_one()
    assert lesson.title == "Private lesson"
    assert lesson.client_id == client_profile.id

    calendar = await _client_calendar(client, coach_headers, client_profile, "2024-01-01", "2024-01-07")
    assert sorted(calendar) == ["2024-01-01"]
    assert await _count(db_session, Notification, Notification.user_id == client_user_id) == 1

    again = await client.post(
        f"{API}/clients/{client_profile.id}/delete-day",
        json={"program_assignment_id": str(assignment.id), "date": "2024-01-02"},
        headers=coach_headers,
    )
    assert again.status_code == 409


@pytest.mark.asyncio
async def test_overlapping_lessons_conflict(
    client: AsyncClient, db_session: AsyncSession, coach_headers, client_profile, make_program, assign_program
):
    first = await assign_program(await make_program({1: {1: ["A"]}}, title="A"), client_profile, date(2024, 1, 1))
    second = await assign_program(await make_program({1: {1: ["B"]}}, title="B"), client_profile, date(2024, 1, 1))
    url = f"{API}/clients/{client_profile.id}/replace-workout"
    lesson = {"start_time": "09:00:00", "duration_minutes": 60}

    response = await client.post(
        url, json={"program_assignment_id": str(first.id), "date": "2024-01-01", "lesson": lesson}, headers=coach_headers
    )
    assert response.status_code == 200

    lesson["start_time"] = "09:30:00"
    response = await client.post(
        url, json={"program_assignment_id": str(second.id), "date": "2024-01-01", "lesson": lesson}, headers=coach_headers
    )
    assert response.status_code == 409
    assert await _count(db_session, ProgramDayReplacement) == 1


@pytest.mark.asyncio
async def test_replacement_needs_exactly_one_kind(client: AsyncClient, coach_headers, client_profile):
    response = await client.post(
        f"{API}/clients/{client_profile.id}/replace-workout",
        json={"program_assignment_id": "00000000-0000-0000-0000-000000000003", "date": "2024-01-01"},
        headers=coach_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_substitute_program_replacement(
    client: AsyncClient, coach_headers, client_profile, make_program, assign_program
):
    base = await make_program({1: {1: ["Base drill"], 2: ["Base drill 2"], 3: ["Base drill 3"]}}, title="Base")
    substitute = await make_program({1: {1: ["Sub day 1"], 2: ["Sub day 2"]}}, title="Sub")
    assignment = await assign_program(base, client_profile, date(2024, 1, 1))

    response = await client.post(
        f"{API}/clients/{client_profile.id}/replace-workout",
        json={
            "program_assignment_id": str(assignment.id),
            "date": "2024-01-02",
            "substitute_program_id": str(substitute.id),
            "substitute_start_date": "2024-01-02",
            "reason": "Travel week",
        },
        headers=coach_headers,
    )
    assert response.status_code == 200

    calendar = await _client_calendar(client, coach_headers, client_profile, "2024-01-01", "2024-01-03")
    entry = calendar["2024-01-02"]["programs"][0]
    assert entry["title"] == "Sub"
    assert entry["substituted"] is True
    assert [item["title"] for item in entry["items"]] == ["Sub day 1"]
    assert calendar["2024-01-03"]["programs"][0]["title"] == "Base"


@pytest.mark.asyncio
async def test_substitute_program_spans_its_date_range(
    client: AsyncClient, coach_headers, client_profile, make_program, assign_program
):
    base = await make_program({1: {n: [f"Base {n}"] for n in range(1, 8)}}, title="Base")
    substitute = await make_program({1: {n: [f"Sub {n}"] for n in range(1, 4)}}, title="Sub")
    assignment = await assign_program(base, client_profile, date(2024, 1, 1))

    response = await client.post(
        f"{API}/clients/{client_profile.id}/replace-workout",
        json={
            "program_assignment_id": str(assignment.id),
            "date": "2024-01-02",
            "substitute_program_id": str(substitute.id),
            "substitute_end_date": "2024-01-04",
        },
        headers=coach_headers,
    )
    assert response.status_code == 200

    calendar = await _client_calendar(client, coach_headers, client_profile, "2024-01-01", "2024-01-05")
    titles = {key: day["programs"][0]["items"][0]["title"] for key, day in calendar.items()}
    assert titles == {
        "2024-01-01": "Base 1",
        "2024-01-02": "Sub 1",
        "2024-01-03": "Sub 2",
        "2024-01-04": "Sub 3",
        "2024-01-05": "Base 5",
    }
    assert calendar["2024-01-03"]["programs"][0]["substituted"] is True


@pytest.mark.asyncio
async def test_substitute_range_ending_before_its_start_is_rejected(
    client: AsyncClient, coach_headers, client_profile, make_program, assign_program
):
    base = await make_program({1: {1: ["Base"]}}, title="Base")
    substitute = await make_program({1: {1: ["Sub"]}}, title="Sub")
    assignment = await assign_program(base, client_profile, date(2024, 1, 1))

    response = await client.post(
        f"{API}/clients/{client_profile.id}/replace-workout",
        json={
            "program_assignment_id": str(assignment.id),
            "date": "2024-01-05",
            "substitute_program_id": str(substitute.id),
            "substitute_end_date": "2024-01-04",
        },
        headers=coach_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_delete_and_restore_day(
    client: AsyncClient, db_session: AsyncSession, coach_headers, client_profile, make_program, assign_program
):
    program = await make_program({1: {1: ["Shooting"]}})
    assignment = await assign_program(program, client_profile, date(2024, 1, 1))

    response = await client.post(
        f"{API}/clients/{client_profile.id}/delete-day",
        json={"program_assignment_id": str(assignment.id), "date": "2024-01-01"},
        headers=coach_headers,
    )
    assert response.status_code == 200
    replacement_id = response.json()["data"]["id"]
    assert await _client_calendar(client, coach_headers, client_profile, "2024-01-01", "2024-01-01") == {}

    restored = await client.delete(
        f"{API}/clients/{client_profile.id}/replacements/{replacement_id}", headers=coach_headers
    )
    assert restored.status_code == 200
    calendar = await _client_calendar(client, coach_headers, client_profile, "2024-01-01", "2024-01-01")
    assert calendar["2024-01-01"]["total_drills"] == 1


@pytest.mark.asyncio
async def test_restoring_a_lesson_day_cancels_the_lesson(
    client: AsyncClient, db_session: AsyncSession, coach_headers, client_profile, make_program, assign_program
):
    program = await make_program({1: {1: ["Shooting"]}})
    assignment = await assign_program(program, client_profile, date(2024, 1, 1))
    response = await client.post(
        f"{API}/clients/{client_profile.id}/replace-workout",
        json={
            "program_assignment_id": str(assignment.id),
            "date": "2024-01-01",
            "lesson": {"start_time": "10:00:00"},
        },
        headers=coach_headers,
    )
    replacement_id = response.json()["data"]["id"]

    await client.delete(f"{API}/clients/{client_profile.id}/replacements/{replacement_id}", headers=coach_headers)
    lesson = (
        await db_session.execute(select(Event).execution_options(populate_existing=True))
    ).scalar_one()
    assert lesson.status == EventStatus.CANCELLED


@pytest.mark.asyncio
async def test_delete_program_removes_assignments(
    client: AsyncClient, db_session: AsyncSession, coach_headers, client_profile, make_program, assign_program
):
    program = await make_program({1: {1: ["Shooting"]}})
    await assign_program(program, client_profile, date(2024, 1, 1))

    response = await client.delete(f"{API}/programs/{program.id}", headers=coach_headers)
    assert response.status_code == 200
    assert await _count(db_session, Program) == 0
    assert await _client_calendar(client, coach_headers, client_profile, "2024-01-01", "2024-01-07") == {}


@pytest.mark.asyncio
async def test_unassign_program(client: AsyncClient, coach_headers, client_profile, make_program, assign_program):
    program = await make_program({1: {1: ["Shooting"]}})
    assignment = await assign_program(program, client_profile, date(2024, 1, 1))

    response = await client.delete(f"{API}/programs/assignments/{assignment.id}", headers=coach_headers)
    assert response.status_code == 200
    assert await _client_calendar(client, coach_headers, client_profile, "2024-01-01", "2024-01-01") == {}


@pytest.mark.asyncio
async def test_routine_create_assign_and_unassign(client: AsyncClient, coach_headers, client_profile):
    response = await client.post(
        f"{API}/routines",
        json={"name": "Cooldown", "exercises": [{"title": "Stretch", "duration": "5 min"}, {"title": "Walk"}]},
        headers=coach_headers,
    )
    assert response.status_code == 200
    routine = response.json()["data"]
    assert [exercise["order"] for exercise in routine["exercises"]] == [1, 2]

    assigned = await client.post(
        f"{API}/routines/{routine['id']}/assign",
        json={"client_ids": [str(client_profile.id)], "start_date": "2024-02-01", "end_date": "2024-02-03"},
        headers=coach_headers,
    )
    assert assigned.status_code == 200
    assignment_id = assigned.json()["data"][0]["id"]

    calendar = await _client_calendar(client, coach_headers, client_profile, "2024-01-31", "2024-02-05")
    assert sorted(calendar) == ["2024-02-01", "2024-02-02", "2024-02-03"]

    listed = await client.get(f"{API}/routines", headers=coach_headers)
    assert [r["name"] for r in listed.json()["data"]] == ["Cooldown"]

    removed = await client.delete(f"{API}/routines/assignments/{assignment_id}", headers=coach_headers)
    assert removed.status_code == 200
    assert await _client_calendar(client, coach_headers, client_profile, "2024-01-31", "2024-02-05") == {}


@pytest.mark.asyncio
async def test_routine_end_date_requires_start_date(client: AsyncClient, coach_headers, client_profile, routine):
    response = await client.post(
        f"{API}/routines/{routine.id}/assign",
        json={"client_ids": [str(client_profile.id)], "end_date": "2024-02-03"},
        headers=coach_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_compliance_counts_scheduled_and_completed_items(
    client: AsyncClient, db_session: AsyncSession, coach_headers, client_profile, make_program, assign_program
):
    today = today_in_app_tz()
    program = await make_program({1: {n: [f"Drill {n}"] for n in range(1, 8)}})
    assignment = await assign_program(program, client_profile, today - timedelta(days=6))
    first_drill = program.weeks[0].days[0].drills[0]
    db_session.add(
        ProgramDrillCompletion(
            drill_id=first_drill.id, program_assignment_id=assignment.id, client_id=client_profile.id
        )
    )
    await db_session.commit()

    response = await client.get(f"{API}/clients/{client_profile.id}/compliance", headers=coach_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["period"] == "4"
    assert data["total"] == 7
    assert data["completed"] == 1
    assert data["completion_rate"] == 14.3
    assert len(data["weeks"]) == 4
    assert sum(week["total"] for week in data["weeks"]) == 7

    everything = await client.get(
        f"{API}/clients/{client_profile.id}/compliance", params={"period": "all"}, headers=coach_headers
    )
    assert everything.json()["data"]["start_date"] == (today - timedelta(days=6)).isoformat()
    assert everything.json()["data"]["total"] == 7

    invalid = await client.get(
        f"{API}/clients/{client_profile.id}/compliance", params={"period": "3"}, headers=coach_headers
    )
    assert invalid.status_code == 422


@pytest.mark.asyncio
async def test_video_assignments(
    client: AsyncClient, db_session: AsyncSession, coach_headers, client_headers, client_profile
):
    response = await client.post(
        f"{API}/clients/{client_profile.id}/video-assignments",
        json={"title": "Film study", "video_url": "https://videos.test/1", "due_date": "2024-01-05"},
        headers=coach_headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["completed"] is False
    assert await _count(db_session, Notification, Notification.type == "VIDEO_ASSIGNED") == 1

    listed = await client.get(f"{API}/clients/{client_profile.id}/video-assignments", headers=coach_headers)
    assert [video["title"] for video in listed.json()["data"]] == ["Film study"]

    day = await client.get(f"{API}/calendar/day", params={"date": "2024-01-05"}, headers=client_headers)
    assert day.json()["data"]["video_assignments"][0]["title"] == "Film study"
