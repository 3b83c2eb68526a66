"""
Audit trail for business operations.

Each `AuditSpan` produces exactly one record on the audit stream when it exits,
tagged SUCCESS or FAIL depending on whether the wrapped block raised. Request
metadata (request id, route, caller ip, acting user) is pulled from context vars
populated by the HTTP middleware and the auth dependency.
"""
import json
import logging
import time
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Mapping
from sqlalchemy.exc import IntegrityError
from eventhub.core.config import AUDIT_STREAM
from eventhub.core import ctx
from eventhub.domain.exceptions import AppError

logger = logging.getLogger("eventhub.audit")

SUCCESS = "SUCCESS"
FAIL = "FAIL"


@dataclass
class AuditRecord:
    scope: str
    action: str
    status: str
    object_type: str | None = None
    object_id: int | str | None = None
    event_id: int | None = None
    order_id: int | None = None
    reason: str | None = None
    meta: dict[str, Any] = field(default_factory=dict)

    def envelope(self) -> dict[str, Any]:
        return {
            **asdict(self),
            "request_id": ctx.get_request_id(),
            "route": ctx.get_route(),
            "actor_user_id": ctx.get_actor_id(),
            "actor_role": ctx.get_actor_role(),
            "actor_ip": ctx.get_client_ip(),
        }


async def audit_emit(record: AuditRecord) -> str | None:
    redis_client = ctx.get_redis()
    if redis_client is None:
        return None
    try:
        return await redis_client.xadd(AUDIT_STREAM, {"json": json.dumps(record.envelope(), default=str)})
    except Exception:
        logger.warning("Audit emit failed scope=%s action=%s", record.scope, record.action, exc_info=True)
        return None


def failure_reason(exc: BaseException | None) -> str | None:
    if exc is None:
        return None
    if isinstance(exc, AppError):
        return f"{exc.code}: {exc}"
    if isinstance(exc, IntegrityError):
        return "Integrity error"
    return type(exc).__name__


class AuditSpan:
    def __init__(self, *, scope: str, action: str,
                 object_type: str | None = None, object_id: int | str | None = None,
                 event_id: int | None = None, order_id: int | None = None,
                 meta: Mapping[str, Any] | None = None):
        self.scope = scope
        self.action = action
        self.object_type = object_type
        self.object_id = object_id
        self.event_id = event_id
        self.order_id = order_id
        self.meta = dict(meta or {})
        self._started = 0

    async def __aenter__(self):
        self._started = time.monotonic_ns()
        self.meta.setdefault("started_at", datetime.now(timezone.utc).isoformat(timespec="milliseconds"))
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.meta["duration_ms"] = (time.monotonic_ns() - self._started) // 1_000_000
        await audit_emit(AuditRecord(
            scope=self.scope,
            action=self.action,
            status=FAIL if exc else SUCCESS,
            object_type=self.object_type,
            object_id=self.object_id,
            event_id=self.event_id,
            order_id=self.order_id,
            reason=failure_reason(exc),
            meta=self.meta,
        ))
        return False
