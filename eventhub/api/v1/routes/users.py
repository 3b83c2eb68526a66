from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from eventhub.core.database import get_db
from eventhub.core.dependencies import get_current_user_with_roles
from eventhub.domain.users.models import User, UserRole
from eventhub.domain.users.schemas import UserReadDTO, UserRoleUpdateDTO
from eventhub.services import users_service

router = APIRouter(tags=["users"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]


@router.get(
    "/users/me",
    status_code=status.HTTP_200_OK,
    response_model=UserReadDTO
)
async def get_me(user: Annotated[User, Depends(get_current_user_with_roles())]):
    return user


@router.patch(
    "/admin/users/{user_id}/role",
    status_code=status.HTTP_200_OK,
    response_model=UserReadDTO,
    dependencies=[Depends(get_current_user_with_roles(UserRole.ADMIN))]
)
async def set_user_role(user_id: str, schema: UserRoleUpdateDTO, db: db_dependency):
    return await users_service.set_user_role(db, user_id, schema)
