from typing import Annotated
from fastapi import APIRouter, BackgroundTasks, Depends, Header, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from eventhub.core.config import GATEWAY_SIGNATURE_HEADER
from eventhub.core.database import get_db
from eventhub.core.dependencies import get_notifier, get_webhook_secret, get_identity_webhook_secret
from eventhub.domain.orders.schemas import WebhookAckDTO
from eventhub.services import webhook_service, users_service
from eventhub.services.notification_service import NotificationPublisher

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]


@router.post(
    "/payments",
    status_code=status.HTTP_200_OK,
    response_model=WebhookAckDTO
)
async def payment_webhook(
        request: Request,
        db: db_dependency,
        background_tasks: BackgroundTasks,
        notifier: Annotated[NotificationPublisher, Depends(get_notifier)],
        secret: Annotated[str | None, Depends(get_webhook_secret)],
        signature: Annotated[str | None, Header(alias=GATEWAY_SIGNATURE_HEADER)] = None,
):
    raw_body = await request.body()
    result = await webhook_service.handle_webhook(db, raw_body, signature, secret)
    for kind, payload in result.notifications:
        background_tasks.add_task(notifier.publish, kind, payload)
    return WebhookAckDTO()


@router.post(
    "/identity",
    status_code=status.HTTP_200_OK,
    response_model=WebhookAckDTO
)
async def identity_webhook(
        request: Request,
        db: db_dependency,
        secret: Annotated[str | None, Depends(get_identity_webhook_secret)],
        message_id: Annotated[str | None, Header(alias="svix-id")] = None,
        timestamp: Annotated[str | None, Header(alias="svix-timestamp")] = None,
        signature: Annotated[str | None, Header(alias="svix-signature")] = None,
):
    raw_body = await request.body()
    await users_service.handle_identity_webhook(
        db, raw_body, secret, message_id=message_id, timestamp=timestamp, signature=signature
    )
    return WebhookAckDTO()
