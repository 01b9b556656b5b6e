import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["APP_TIMEZONE"] = "UTC"
os.environ["NOTIFICATION_DRY_RUN"] = "true"

import uuid
from datetime import date
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from coaching import models  # noqa: F401  registers every mapper
from coaching.auth.security import create_access_token
from coaching.database import Base, get_db
from coaching.main import app
from coaching.models.enums import DrillType, Role
from coaching.models.program import Program, ProgramAssignment, ProgramDay, ProgramDrill, ProgramWeek
from coaching.models.routine import Routine, RoutineExercise
from coaching.models.user import Client, User


@pytest.fixture(scope="function")
async def db_engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


@pytest.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture(scope="function")
async def client(db_session) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(user.id, user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def coach_user(db_session) -> User:
    user = User(email="coach@test.com", full_name="Coach Test", role=Role.COACH, is_active=True)
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def client_user(db_session) -> User:
    user = User(email="client@test.com", full_name="Client Test", role=Role.CLIENT, is_active=True)
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def client_profile(db_session, coach_user, client_user) -> Client:
    profile = Client(user_id=client_user.id, coach_id=coach_user.id, name="Client Test", email=client_user.email)
    db_session.add(profile)
    await db_session.commit()
    return profile


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def coach_headers(coach_user) -> dict[str, str]:
    return auth_headers(coach_user)


@pytest.fixture
def client_headers(client_user, client_profile) -> dict[str, str]:
    return auth_headers(client_user)


@pytest.fixture
async def routine(db_session, coach_user) -> Routine:
    warmup = Routine(
        name="Warmup",
        coach_id=coach_user.id,
        exercises=[
            RoutineExercise(order=1, title="Jumping jacks", sets=2, reps=20),
            RoutineExercise(order=2, title="Lunges", sets=2, reps=10),
        ],
    )
    db_session.add(warmup)
    await db_session.commit()
    return warmup


@pytest.fixture
def make_program(db_session, coach_user):
    """Build and persist a program from ``{week: {day: [drill titles]}}``.

    A title of ``"routine"`` becomes a routine drill pointing at ``routine_id``.
    """

    async def _make(layout: dict, *, title: str = "Program", routine_id: uuid.UUID | None = None) -> Program:
        weeks = []
        for week_number, days in layout.items():
            program_days = []
            for day_number, titles in days.items():
                drills = []
                for order, drill_title in enumerate(titles, start=1):
                    if drill_title == "routine":
                        drills.append(
                            ProgramDrill(order=order, title="Routine", type=DrillType.ROUTINE.value, routine_id=routine_id)
                        )
                    else:
                        drills.append(
                            ProgramDrill(order=order, title=drill_title, type=DrillType.EXERCISE.value, sets=3)
                        )
                program_days.append(ProgramDay(day_number=day_number, is_rest_day=False, drills=drills))
            weeks.append(ProgramWeek(week_number=week_number, days=program_days))
        program = Program(title=title, duration_weeks=len(weeks), coach_id=coach_user.id, weeks=weeks)
        db_session.add(program)
        await db_session.commit()
        return program

    return _make


@pytest.fixture
def assign_program(db_session):
    async def _assign(program: Program, profile: Client, start: date) -> ProgramAssignment:
        assignment = ProgramAssignment(program_id=program.id, client_id=profile.id, start_date=start)
        db_session.add(assignment)
        await db_session.commit()
        return assignment

    return _assign
