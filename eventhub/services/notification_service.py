import json
import logging
from typing import Any, Mapping
from eventhub.core.config import NOTIFICATION_STREAM

logger = logging.getLogger("eventhub.notifications")


class NotificationKind:
    PURCHASE_CONFIRMED = "PURCHASE_CONFIRMED"
    NEW_SPONSOR = "NEW_SPONSOR"


class NotificationPublisher:
    """Queues outbound notifications on a Redis stream; a separate mailer consumes them."""

    def __init__(self, redis_client: Any | None, stream: str = NOTIFICATION_STREAM) -> None:
        self._redis = redis_client
        self._stream = stream

    async def publish(self, kind: str, payload: Mapping[str, Any]) -> str | None:
        if not self._redis:
            logger.info("Notification %s dropped (no redis) payload=%s", kind, dict(payload))
            return None
        try:
            return await self._redis.xadd(
                self._stream,
                {"kind": kind, "json": json.dumps(dict(payload), default=str)}
            )
        except Exception:
            logger.exception("Notification publish failed kind=%s", kind)
            return None
