from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, AliasChoices, StrictInt


class RevenueReadDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    id: int
    event_id: int
    event_name: str
    organizer_id: str
    ticket_revenue_cents: int
    package_revenue_cents: int
    paid_cents: int
    updated_at: datetime


class RevenuePaidUpdateDTO(BaseModel):
    model_config = ConfigDict(extra='forbid', populate_by_name=True)

    event_id: StrictInt = Field(gt=0, validation_alias=AliasChoices("event_id", "eventId"))
    paid_cents: StrictInt = Field(ge=0, validation_alias=AliasChoices("paid_cents", "paidCents"))
