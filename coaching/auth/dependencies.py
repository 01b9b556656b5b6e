from typing import Annotated, List
import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from coaching.config import settings
from coaching.database import get_db
from coaching.models.user import Client, User
from coaching.auth.schemas import AuthenticatedUser, TokenPayload
from coaching.models.enums import Role

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/token", auto_error=False)


def _coerce_role(value: Role | str) -> Role:
    return value if isinstance(value, Role) else Role(value)


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    token: Annotated[str | None, Depends(oauth2_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)]
) -> AuthenticatedUser:
    if not token:
        raise _credentials_exception()
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        token_data = TokenPayload(sub=payload.get("sub"), type=payload.get("type"), role=payload.get("role"))
        if token_data.sub is None or token_data.type != "access":
            raise _credentials_exception()
        user_id = uuid.UUID(token_data.sub)
    except (JWTError, ValidationError, ValueError):
        raise _credentials_exception()

    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if user is None:
        raise _credentials_exception()
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
    # The stored role is authoritative; a token claiming another role is rejected.
    role = _coerce_role(user.role)
    if token_data.role is not None and token_data.role != role.value:
        raise _credentials_exception()
    return AuthenticatedUser(id=user.id, role=role, email=user.email)


class RoleChecker:
    def __init__(self, allowed_roles: List[Role]):
        self.allowed_roles = allowed_roles

    def __call__(self, user: Annotated[AuthenticatedUser, Depends(get_current_user)]) -> AuthenticatedUser:
        if user.role not in self.allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Operation not permitted"
            )
        return user


get_current_coach = RoleChecker([Role.COACH])
get_current_client_user = RoleChecker([Role.CLIENT])


async def get_current_client(
    current_user: Annotated[AuthenticatedUser, Depends(get_current_client_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Client:
    client = (await db.execute(select(Client).where(Client.user_id == current_user.id))).scalar_one_or_none()
    if client is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client profile not found")
    return client


async def get_owned_client(
    client_id: uuid.UUID,
    current_user: AuthenticatedUser,
    db: AsyncSession,
) -> Client:
    """Load a client that belongs to the requesting coach."""
    client = (await db.execute(select(Client).where(Client.id == client_id))).scalar_one_or_none()
    if client is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
    if client.coach_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Client is not assigned to you")
    return client
