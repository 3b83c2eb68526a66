from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from eventhub.core.utils.text_utils import strip_text
from eventhub.domain.orders.schemas import OrderListItemDTO


class PoolCreateDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    title: str = Field(min_length=1, max_length=120)
    description: str | None = Field(default=None, max_length=800)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    quantity: int = Field(ge=0)

    _strip_title = field_validator("title", mode="before")(strip_text)
    _strip_desc = field_validator("description", mode="before")(strip_text)


class EventCreateDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    name: str = Field(min_length=1, max_length=80)
    description: str | None = Field(default=None, max_length=800)
    location: str | None = Field(default=None, max_length=200)
    event_start: datetime
    event_end: datetime
    tickets: list[PoolCreateDTO] = Field(default_factory=list, max_length=20)
    packages: list[PoolCreateDTO] = Field(default_factory=list, max_length=20)

    _strip_name = field_validator("name", mode="before")(strip_text)
    _strip_desc = field_validator("description", mode="before")(strip_text)
    _strip_location = field_validator("location", mode="before")(strip_text)

    @model_validator(mode="after")
    def _check_time_range(self):
        if self.event_end <= self.event_start:
            raise ValueError("event_end must be after event_start")
        return self


class PoolReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    id: int
    title: str
    description: str | None
    price: Decimal
    quantity: int
    available: int


class EventReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    id: int
    name: str
    description: str | None
    location: str | None
    organizer_id: str
    event_start: datetime
    event_end: datetime
    created_at: datetime
    tickets: list[PoolReadDTO]
    packages: list[PoolReadDTO]


class EventDetailsDTO(EventReadDTO):
    my_orders: list[OrderListItemDTO] = Field(default_factory=list)


class EventsQueryDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)
    since: datetime | None = None
    until: datetime | None = None
