import pytest
from jose import jwt
from sqlalchemy import func, select

from coaching.config import settings
from coaching.initial_data import CLIENTS, COACH, seed_data
from coaching.models.program import Program, ProgramAssignment
from coaching.models.user import Client, User


@pytest.mark.asyncio
async def test_seed_is_idempotent(session_factory):
    first = await seed_data(session_factory)
    second = await seed_data(session_factory)

    assert set(first) == {COACH["email"], *(c["email"] for c in CLIENTS)}
    assert set(second) == set(first)
    claims = jwt.decode(first[COACH["email"]], settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    assert claims["role"] == "COACH"

    async with session_factory() as session:
        counts = [
            (await session.execute(select(func.count()).select_from(model))).scalar_one()
            for model in (User, Client, Program, ProgramAssignment)
        ]
    assert counts == [3, 2, 1, 2]
