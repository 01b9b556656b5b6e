import asyncio
import logging
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coaching.auth.security import create_access_token
from coaching.database import AsyncSessionLocal
from coaching.models.enums import DrillType, Role
from coaching.models.program import Program, ProgramAssignment, ProgramDay, ProgramDrill, ProgramWeek
from coaching.models.routine import Routine, RoutineExercise
from coaching.models.user import Client, User
from coaching.services.timezone_service import today_in_app_tz

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

COACH = {"email": "coach.mike@coaching.local", "full_name": "Coach Mike", "role": Role.COACH}
CLIENTS = [
    {"email": "alice@client.local", "full_name": "Alice Client", "role": Role.CLIENT},
    {"email": "bob@client.local", "full_name": "Bob Client", "role": Role.CLIENT},
]

WARMUP_ROUTINE = {
    "name": "Ball Handling Warmup",
    "description": "Five minutes of stationary dribbling.",
    "exercises": [
        {"title": "Pound dribble", "sets": 2, "reps": 30},
        {"title": "Crossover", "sets": 2, "reps": 20},
    ],
}

# week -> day -> drills; days not listed are absent, day 7 is a rest day
PROGRAM = {
    "title": "Foundations",
    "description": "Two week shooting and footwork block.",
    "weeks": {
        1: {1: ["Form shooting", "routine"], 3: ["Mikan drill", "Free throws"], 7: []},
        2: {1: ["Catch and shoot", "routine"], 4: ["Defensive slides"], 7: []},
    },
}


async def _get_or_create_user(session: AsyncSession, data: dict) -> User:
    user = (await session.execute(select(User).where(User.email == data["email"]))).scalar_one_or_none()
    if user is not None:
        logger.info("User already exists: %s", data["email"])
        return user
    user = User(email=data["email"], full_name=data["full_name"], role=data["role"], is_active=True)
    session.add(user)
    await session.flush()
    logger.info("Created user: %s", data["email"])
    return user


async def _get_or_create_client(session: AsyncSession, user: User, coach: User) -> Client:
    client = (await session.execute(select(Client).where(Client.user_id == user.id))).scalar_one_or_none()
    if client is not None:
        return client
    client = Client(user_id=user.id, coach_id=coach.id, name=user.full_name, email=user.email)
    session.add(client)
    await session.flush()
    logger.info("Created client profile for %s", user.email)
    return client


def _build_program(coach: User, routine: Routine) -> Program:
    weeks = []
    for week_number, days in PROGRAM["weeks"].items():
        program_days = []
        for day_number, drills in days.items():
            program_drills = []
            for order, title in enumerate(drills, start=1):
                if title == "routine":
                    program_drills.append(
                        ProgramDrill(
                            order=order,
                            title=routine.name,
                            type=DrillType.ROUTINE.value,
                            routine_id=routine.id,
                        )
                    )
                else:
                    program_drills.append(
                        ProgramDrill(order=order, title=title, type=DrillType.EXERCISE.value, sets=3, reps=10)
                    )
            program_days.append(
                ProgramDay(day_number=day_number, is_rest_day=not drills, drills=program_drills)
            )
        weeks.append(ProgramWeek(week_number=week_number, days=program_days))
    return Program(
        title=PROGRAM["title"],
        description=PROGRAM["description"],
        duration_weeks=len(weeks),
        coach_id=coach.id,
        weeks=weeks,
    )


async def seed_data(session_factory: async_sessionmaker = AsyncSessionLocal) -> dict[str, str]:
    """Seed a demo coach, clients, routine and program. Safe to run repeatedly.

    Returns development access tokens keyed by email.
    """
    async with session_factory() as session:
        coach = await _get_or_create_user(session, COACH)
        clients = []
        for client_data in CLIENTS:
            user = await _get_or_create_user(session, client_data)
            clients.append(await _get_or_create_client(session, user, coach))

        routine = (
            await session.execute(
                select(Routine).where(Routine.coach_id == coach.id, Routine.name == WARMUP_ROUTINE["name"])
            )
        ).scalar_one_or_none()
        if routine is None:
            routine = Routine(
                name=WARMUP_ROUTINE["name"],
                description=WARMUP_ROUTINE["description"],
                coach_id=coach.id,
                exercises=[
                    RoutineExercise(order=order, **exercise)
                    for order, exercise in enumerate(WARMUP_ROUTINE["exercises"], start=1)
                ],
            )
            session.add(routine)
            await session.flush()
            logger.info("Created routine: %s", routine.name)

        program = (
            await session.execute(
                select(Program).where(Program.coach_id == coach.id, Program.title == PROGRAM["title"])
            )
        ).scalar_one_or_none()
        if program is None:
            program = _build_program(coach, routine)
            session.add(program)
            await session.flush()
            logger.info("Created program: %s", program.title)

            # Start on the most recent Monday so the current week is populated.
            today = today_in_app_tz()
            start = today - timedelta(days=today.weekday())
            for client in clients:
                session.add(ProgramAssignment(program_id=program.id, client_id=client.id, start_date=start))
            logger.info("Assigned %s to %s client(s) starting %s", program.title, len(clients), start)

        await session.commit()

        tokens = {coach.email: create_access_token(coach.id, Role.COACH.value, expires_minutes=24 * 60)}
        for client_data in CLIENTS:
            user = (await session.execute(select(User).where(User.email == client_data["email"]))).scalar_one()
            tokens[user.email] = create_access_token(user.id, Role.CLIENT.value, expires_minutes=24 * 60)

    logger.info("Seeding complete.")
    return tokens


if __name__ == "__main__":
    for email, token in asyncio.run(seed_data()).items():
        logger.info("%s: %s", email, token)
