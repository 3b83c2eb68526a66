from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from eventhub.core.database import get_db
from eventhub.core.dependencies import get_current_user_with_roles
from eventhub.domain.users.models import UserRole
from eventhub.domain.revenue.schemas import RevenueReadDTO, RevenuePaidUpdateDTO
from eventhub.services import revenue_service

router = APIRouter(
    prefix="/admin/revenue",
    tags=["admin-revenue"],
    dependencies=[Depends(get_current_user_with_roles(UserRole.ADMIN))]
)
db_dependency = Annotated[AsyncSession, Depends(get_db)]


@router.get("", status_code=status.HTTP_200_OK, response_model=list[RevenueReadDTO])
async def list_revenues(db: db_dependency):
    return await revenue_service.list_revenues(db)


@router.post("", status_code=status.HTTP_200_OK, response_model=RevenueReadDTO)
async def update_paid_amount(schema: RevenuePaidUpdateDTO, db: db_dependency):
    return await revenue_service.update_paid_amount(db, schema)
