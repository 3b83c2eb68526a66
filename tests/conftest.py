import pytest

SERVICE_MODULES = (
    "eventhub.services.event_service",
    "eventhub.services.order_service",
    "eventhub.services.revenue_service",
    "eventhub.services.users_service",
)


class RecordingSpan:
    """Drop-in for AuditSpan that keeps what the service wrote instead of emitting it."""

    def __init__(self, *, scope: str, action: str, meta: dict | None = None, **fields):
        self.scope = scope
        self.action = action
        self.meta = dict(meta or {})
        self.object_type = fields.get("object_type")
        self.object_id = fields.get("object_id")
        self.event_id = fields.get("event_id")
        self.order_id = fields.get("order_id")
        self.error = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.error = exc
        return False


@pytest.fixture(autouse=True)
def audit_spans(mocker):
    spans: list[RecordingSpan] = []

    def _record(**kwargs):
        span = RecordingSpan(**kwargs)
        spans.append(span)
        return span

    for module in SERVICE_MODULES:
        mocker.patch(f"{module}.AuditSpan", side_effect=_record)
    return spans
