from fastapi import Request
from eventhub.core.config import GATEWAY_WEBHOOK_SECRET, IDENTITY_WEBHOOK_SECRET
from eventhub.integrations.payment_gateway import PaymentGatewayClient
from eventhub.services.notification_service import NotificationPublisher


def get_payment_gateway(request: Request) -> PaymentGatewayClient:
    return request.app.state.payment_gateway


def get_notifier(request: Request) -> NotificationPublisher:
    return request.app.state.notifier


def get_webhook_secret() -> str | None:
    return GATEWAY_WEBHOOK_SECRET


def get_identity_webhook_secret() -> str | None:
    return IDENTITY_WEBHOOK_SECRET
