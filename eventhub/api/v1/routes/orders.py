from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from eventhub.core.database import get_db
from eventhub.core.dependencies import get_current_user_with_roles, get_payment_gateway
from eventhub.core.pagination import PageDTO
from eventhub.domain.users.models import User
from eventhub.domain.orders.schemas import CheckoutRequestDTO, CheckoutReadDTO, OrderStatusRequestDTO, \
    OrderStatusReadDTO, OrderListItemDTO, UserOrdersQueryDTO
from eventhub.integrations.payment_gateway import PaymentGatewayClient
from eventhub.services import order_service

router = APIRouter(tags=["orders"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]
user_dependency = Annotated[User, Depends(get_current_user_with_roles())]


@router.post(
    "/orders",
    status_code=status.HTTP_201_CREATED,
    response_model=CheckoutReadDTO
)
async def create_order(
        schema: CheckoutRequestDTO,
        db: db_dependency,
        user: user_dependency,
        gateway: Annotated[PaymentGatewayClient, Depends(get_payment_gateway)]
):
    return await order_service.create_order(db, gateway, user, schema)


@router.post(
    "/orders/status",
    status_code=status.HTTP_200_OK,
    response_model=OrderStatusReadDTO
)
async def get_order_status(schema: OrderStatusRequestDTO, db: db_dependency, user: user_dependency):
    order_status = await order_service.get_order_status(db, user, schema)
    return {"status": order_status}


@router.get(
    "/users/me/orders",
    status_code=status.HTTP_200_OK,
    response_model=PageDTO[OrderListItemDTO]
)
async def list_user_orders(
        db: db_dependency,
        user: user_dependency,
        query: Annotated[UserOrdersQueryDTO, Depends()]
):
    return await order_service.list_user_orders(db, user, query)
