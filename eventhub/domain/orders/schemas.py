from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field, AliasChoices, field_validator
from eventhub.domain.orders.models import OrderStatus, OrderType


class CheckoutItemDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    id: int = Field(gt=0)
    quantity: int = Field(gt=0, le=100)


class CheckoutRequestDTO(BaseModel):
    model_config = ConfigDict(extra='forbid', populate_by_name=True)

    event_id: int = Field(gt=0, validation_alias=AliasChoices("event_id", "eventId"))
    order_type: OrderType = Field(validation_alias=AliasChoices("order_type", "orderType"))
    items: list[CheckoutItemDTO] = Field(min_length=1, max_length=50)

    @field_validator("items")
    @classmethod
    def _unique_items(cls, items: list[CheckoutItemDTO]) -> list[CheckoutItemDTO]:
        ids = [item.id for item in items]
        if len(ids) != len(set(ids)):
            raise ValueError("Each item may appear only once")
        return items


class CheckoutLineDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    title: str
    quantity: int
    price: Decimal


class CheckoutReadDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    gateway_order_id: str
    amount_cents: int
    currency: str
    expires_at: datetime
    items: list[CheckoutLineDTO]


class OrderStatusRequestDTO(BaseModel):
    model_config = ConfigDict(extra='forbid', populate_by_name=True)

    gateway_order_id: str = Field(min_length=1, max_length=64,
                                  validation_alias=AliasChoices("gateway_order_id", "gatewayOrderId"))
    order_type: OrderType = Field(validation_alias=AliasChoices("order_type", "orderType"))


class OrderStatusReadDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    status: OrderStatus


class OrderListItemDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    id: int
    gateway_order_id: str
    event_id: int
    type: OrderType
    status: OrderStatus
    total_amount_cents: int
    expires_at: datetime
    created_at: datetime


class UserOrdersQueryDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    status: OrderStatus | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=200)


class WebhookAckDTO(BaseModel):
    status: str = "ok"
