from typing import Annotated
from fastapi import APIRouter, Depends, status, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from eventhub.core.database import get_db
from eventhub.core.dependencies import get_current_user_with_roles
from eventhub.domain.users.models import UserRole
from eventhub.services.inventory_service import sweep_expired_orders, SWEEP_LIMIT


class SweepStatsDTO(BaseModel):
    orders_expired: int
    units_released: int


router = APIRouter(prefix="/admin/maintenance", tags=["admin-maintenance"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]


@router.post(
    "/sweep-expired",
    status_code=status.HTTP_200_OK,
    response_model=SweepStatsDTO,
    dependencies=[Depends(get_current_user_with_roles(UserRole.ADMIN))]
)
async def sweep_expired(db: db_dependency, limit: int = Query(SWEEP_LIMIT, ge=1, le=5000)):
    return await sweep_expired_orders(db, limit=limit)
