from typing import Annotated
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from eventhub.core.database import get_db
from eventhub.core.config import JWT_SECRET, JWT_ALGORITHM, JWT_ISSUER, JWT_AUDIENCE
from eventhub.core.ctx import AUTH_USER_ID_CTX, AUTH_ROLE_CTX
from eventhub.domain.users.models import User, UserRole
from eventhub.domain.users.schemas import TokenPayload
from eventhub.domain.exceptions import Unauthorized, ForbiddenRole

bearer_scheme = HTTPBearer(auto_error=False)


async def get_token_payload(
        credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]
) -> TokenPayload:
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Missing bearer token", ctx={"reason": "missing_token"})
    if not JWT_SECRET:
        raise Unauthorized("Authentication is not configured", ctx={"reason": "no_secret"})
    try:
        raw_payload = jwt.decode(
            credentials.credentials,
            JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            issuer=JWT_ISSUER,
            audience=JWT_AUDIENCE,
            options={"verify_aud": True, "leeway": 5}
        )
        return TokenPayload.model_validate(raw_payload)
    except (JWTError, ValidationError):
        raise Unauthorized("Invalid authentication credentials", ctx={"reason": "invalid_token"})


def get_current_user_with_roles(*allowed_roles: UserRole):
    allowed = set(allowed_roles)

    async def _inner(payload: Annotated[TokenPayload, Depends(get_token_payload)],
                     db: Annotated[AsyncSession, Depends(get_db)]) -> User:
        user = await db.scalar(select(User).where(User.id == payload.sub, User.is_active.is_(True)))
        if not user:
            raise Unauthorized("User not found", ctx={"user_id": payload.sub})

        AUTH_USER_ID_CTX.set(user.id)
        AUTH_ROLE_CTX.set(user.role.value)

        if allowed and user.role not in allowed:
            raise ForbiddenRole(
                "Permission denied",
                ctx={"required": sorted(r.value for r in allowed), "user_role": user.role.value}
            )
        return user
    return _inner
