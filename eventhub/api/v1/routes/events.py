from typing import Annotated
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from eventhub.core.database import get_db
from eventhub.core.dependencies import get_current_user_with_roles
from eventhub.core.pagination import PageDTO
from eventhub.domain.users.models import User, UserRole
from eventhub.domain.events.schemas import EventCreateDTO, EventReadDTO, EventDetailsDTO, EventsQueryDTO
from eventhub.services import event_service

router = APIRouter(prefix="/events", tags=["events"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=EventReadDTO
)
async def create_event(
        schema: EventCreateDTO,
        db: db_dependency,
        user: Annotated[User, Depends(get_current_user_with_roles(UserRole.ORGANIZER, UserRole.ADMIN))],
        response: Response
):
    event = await event_service.create_event(db, user, schema)
    response.headers["Location"] = f"{router.prefix}/{event.id}"
    return event


@router.get(
    "",
    status_code=status.HTTP_200_OK,
    response_model=PageDTO[EventReadDTO]
)
async def list_events(db: db_dependency, query: Annotated[EventsQueryDTO, Depends()]):
    return await event_service.list_events(db, query)


@router.get(
    "/{event_id}",
    status_code=status.HTTP_200_OK,
    response_model=EventDetailsDTO
)
async def get_event(
        event_id: int,
        db: db_dependency,
        user: Annotated[User, Depends(get_current_user_with_roles())]
):
    return await event_service.get_event_details(db, user, event_id)
