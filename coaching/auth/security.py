from datetime import datetime, timedelta, timezone
import uuid

from jose import jwt

from coaching.config import settings
from coaching.models.enums import Role


def create_access_token(user_id: uuid.UUID | str, role: Role | str, expires_minutes: int = 30) -> str:
    """Mint a token shaped like the ones the auth provider issues. Used by tooling and tests."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    payload = {
        "sub": str(user_id),
        "role": role.value if isinstance(role, Role) else str(role),
        "type": "access",
        "exp": expire,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
