import json
import logging
from typing import Any, Awaitable, Callable
from sqlalchemy.ext.asyncio import AsyncSession
from eventhub.core.config import GATEWAY_SIGNATURE_HEADER
from eventhub.core.security import verify_signature
from eventhub.domain.exceptions import InvalidInput
from eventhub.services import order_service
from eventhub.services.order_service import FinalizeResult

logger = logging.getLogger("eventhub.webhooks")

ORDER_PAID = "order.paid"
PAYMENT_FAILED = "payment.failed"
ORDER_FAILED = "order.failed"

_HANDLERS: dict[str, Callable[[AsyncSession, str], Awaitable[FinalizeResult]]] = {
    ORDER_PAID: order_service.mark_paid,
    PAYMENT_FAILED: order_service.mark_payment_failed,
    ORDER_FAILED: order_service.mark_order_failed,
}


def parse_event(raw_body: bytes, signature: str | None, secret: str | None) -> dict[str, Any]:
    if not secret:
        logger.error("Webhook secret is not configured; rejecting delivery")
    if not signature:
        raise InvalidInput("Missing webhook signature", field=GATEWAY_SIGNATURE_HEADER)
    if not verify_signature(secret, raw_body, signature):
        raise InvalidInput("Invalid webhook signature", field=GATEWAY_SIGNATURE_HEADER)

    try:
        event = json.loads(raw_body)
    except ValueError as e:
        raise InvalidInput("Malformed webhook payload") from e
    if not isinstance(event, dict):
        raise InvalidInput("Malformed webhook payload")
    return event


def _entity(payload: dict[str, Any], name: str) -> dict[str, Any]:
    wrapper = payload.get(name)
    entity = wrapper.get("entity") if isinstance(wrapper, dict) else None
    return entity if isinstance(entity, dict) else {}


def extract_gateway_order_id(event: dict[str, Any]) -> str | None:
    payload = event.get("payload")
    if not isinstance(payload, dict):
        return None

    order = _entity(payload, "order")
    if order.get("id"):
        return str(order["id"])

    payment = _entity(payload, "payment")
    if payment.get("order_id"):
        return str(payment["order_id"])
    return None


async def handle_webhook(
        db: AsyncSession,
        raw_body: bytes,
        signature: str | None,
        secret: str | None,
) -> FinalizeResult:
    """
    Verify, parse and dispatch one gateway delivery.

    Signature problems are the only failures surfaced to the gateway. Unknown event
    types and payloads without an order reference are acknowledged and ignored so
    the gateway stops retrying them.
    """
    event = parse_event(raw_body, signature, secret)
    kind = event.get("event")
    gateway_order_id = extract_gateway_order_id(event)

    handler = _HANDLERS.get(kind)
    if handler is None:
        logger.info("Ignoring webhook event %s", kind)
        return FinalizeResult.noop()

    if not gateway_order_id:
        logger.warning("Webhook %s carries no order id", kind)
        return FinalizeResult.noop()

    logger.info("Webhook %s for order %s", kind, gateway_order_id)
    return await handler(db, gateway_order_id)
