import json
import logging
from typing import Any
from pydantic import ValidationError
from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from eventhub.core.auditing import AuditSpan
from eventhub.core.security import verify_identity_signature
from eventhub.domain.users.models import User, UserRole
from eventhub.domain.users.schemas import IdentityUserDTO, UserRoleUpdateDTO
from eventhub.domain.exceptions import InvalidInput, NotFound, Forbidden, Conflict

logger = logging.getLogger("eventhub.users")

USER_CREATED = "user.created"
USER_UPDATED = "user.updated"
USER_DELETED = "user.deleted"


def parse_identity_event(
        raw_body: bytes,
        secret: str | None,
        *,
        message_id: str | None,
        timestamp: str | None,
        signature: str | None
) -> dict[str, Any]:
    if not secret:
        logger.error("Identity webhook secret is not configured; rejecting delivery")
    if not verify_identity_signature(
            secret, raw_body, message_id=message_id, timestamp=timestamp, signature=signature
    ):
        raise InvalidInput("Invalid webhook signature", field="svix-signature")

    try:
        event = json.loads(raw_body)
    except ValueError as e:
        raise InvalidInput("Malformed webhook payload") from e
    if not isinstance(event, dict) or not isinstance(event.get("data"), dict):
        raise InvalidInput("Malformed webhook payload")
    return event


async def upsert_identity_user(db: AsyncSession, data: IdentityUserDTO, *, overwrite: bool) -> None:
    email = data.primary_email
    if not email:
        raise InvalidInput("Identity user has no email address", ctx={"user_id": data.id}, field="email_addresses")

    stmt = insert(User).values(
        id=data.id,
        email=email,
        first_name=data.first_name,
        last_name=data.last_name
    )
    if overwrite:
        stmt = stmt.on_conflict_do_update(
            index_elements=[User.id],
            set_={
                "email": stmt.excluded.email,
                "first_name": stmt.excluded.first_name,
                "last_name": stmt.excluded.last_name,
                "is_active": True,
            }
        )
    else:
        stmt = stmt.on_conflict_do_nothing(index_elements=[User.id])

    try:
        await db.execute(stmt)
    except IntegrityError as e:
        raise Conflict("Email already registered", ctx={"user_id": data.id}, field="email") from e


async def handle_identity_webhook(
        db: AsyncSession,
        raw_body: bytes,
        secret: str | None,
        *,
        message_id: str | None,
        timestamp: str | None,
        signature: str | None
) -> str | None:
    event = parse_identity_event(raw_body, secret, message_id=message_id, timestamp=timestamp, signature=signature)
    kind = event.get("type")

    if kind in (USER_CREATED, USER_UPDATED):
        try:
            data = IdentityUserDTO.model_validate(event["data"])
        except ValidationError as e:
            raise InvalidInput("Malformed identity user payload") from e
        await upsert_identity_user(db, data, overwrite=kind == USER_UPDATED)
        logger.info("Identity %s synced user %s", kind, data.id)
        return kind

    if kind == USER_DELETED:
        user_id = event["data"].get("id")
        if user_id:
            await db.execute(update(User).where(User.id == str(user_id)).values(is_active=False))
            logger.info("Identity user %s deactivated", user_id)
            return kind

    logger.warning("Ignoring identity webhook %s", kind)
    return None


async def set_user_role(db: AsyncSession, user_id: str, schema: UserRoleUpdateDTO) -> User:
    async with AuditSpan(
        scope="USERS",
        action="SET_ROLE",
        object_type="user",
        object_id=user_id,
        meta={"requested_role": schema.role}
    ) as span:
        user = await db.scalar(select(User).where(User.id == user_id).with_for_update())
        if not user:
            raise NotFound("User not found", ctx={"user_id": user_id})

        if user.role == UserRole.ADMIN:
            raise Forbidden("Access denied", ctx={"user_id": user_id})

        span.meta["previous_role"] = user.role
        user.role = schema.role
        await db.flush()
        await db.refresh(user)
        return user
