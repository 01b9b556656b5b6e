from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from coaching.database import get_db
from coaching.auth import schemas, dependencies
from coaching.models.user import Client, User
from coaching.models.enums import Role
from coaching.core.responses import StandardResponse

router = APIRouter()


@router.get("/me", response_model=StandardResponse[schemas.MeResponse])
async def read_current_user(
    current_user: Annotated[schemas.AuthenticatedUser, Depends(dependencies.get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    user = (await db.execute(select(User).where(User.id == current_user.id))).scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    client = None
    if current_user.role == Role.CLIENT:
        client = (await db.execute(select(Client).where(Client.user_id == current_user.id))).scalar_one_or_none()

    return StandardResponse(
        data=schemas.MeResponse(
            user=schemas.UserResponse.model_validate(user),
            client=schemas.ClientProfileResponse.model_validate(client) if client else None,
        )
    )
