from typing import Optional
import uuid

from pydantic import BaseModel, ConfigDict

from coaching.models.enums import Role


class TokenPayload(BaseModel):
    sub: Optional[str] = None
    exp: Optional[int] = None
    type: Optional[str] = None
    role: Optional[str] = None


class AuthenticatedUser(BaseModel):
    """Identity passed explicitly into every route and engine call."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    role: Role
    email: Optional[str] = None


class UserResponse(BaseModel):
    id: uuid.UUID
    email: str
    full_name: Optional[str] = None
    role: Role
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class ClientProfileResponse(BaseModel):
    id: uuid.UUID
    name: str
    email: Optional[str] = None
    coach_id: uuid.UUID
    archived: bool

    model_config = ConfigDict(from_attributes=True)


class MeResponse(BaseModel):
    user: UserResponse
    client: Optional[ClientProfileResponse] = None
