import json
import pytest
from eventhub.core.security import compute_signature
from eventhub.services import webhook_service
from eventhub.services.order_service import FinalizeResult
from eventhub.domain.exceptions import InvalidInput

SECRET = "whsec_test"


def _signed(event: dict) -> tuple[bytes, str]:
    body = json.dumps(event).encode()
    return body, compute_signature(SECRET, body)


def _order_event(kind: str, order_id: str = "order_abc") -> dict:
    return {"event": kind, "payload": {"order": {"entity": {"id": order_id, "status": "paid"}}}}


@pytest.fixture
def handlers(mocker):
    mocks = {
        kind: mocker.AsyncMock(return_value=FinalizeResult(applied=True, order_id=1))
        for kind in (webhook_service.ORDER_PAID, webhook_service.PAYMENT_FAILED, webhook_service.ORDER_FAILED)
    }
    mocker.patch.dict(webhook_service._HANDLERS, mocks)
    return mocks


def test_extract_gateway_order_id_prefers_order_entity():
    event = {
        "payload": {
            "order": {"entity": {"id": "order_1"}},
            "payment": {"entity": {"order_id": "order_2"}},
        }
    }
    assert webhook_service.extract_gateway_order_id(event) == "order_1"


def test_extract_gateway_order_id_falls_back_to_payment_entity():
    event = {"payload": {"payment": {"entity": {"id": "pay_1", "order_id": "order_2"}}}}
    assert webhook_service.extract_gateway_order_id(event) == "order_2"


def test_extract_gateway_order_id_missing_returns_none():
    assert webhook_service.extract_gateway_order_id({"event": "order.paid"}) is None
    assert webhook_service.extract_gateway_order_id({"payload": {"order": None}}) is None


@pytest.mark.parametrize("signature", [None, "", "deadbeef"])
def test_parse_event_rejects_missing_or_bad_signature(signature):
    body, _ = _signed(_order_event("order.paid"))

    with pytest.raises(InvalidInput) as e:
        webhook_service.parse_event(body, signature, SECRET)

    assert e.value.field == "X-Razorpay-Signature"


def test_parse_event_without_configured_secret_rejects():
    body, signature = _signed(_order_event("order.paid"))

    with pytest.raises(InvalidInput):
        webhook_service.parse_event(body, signature, None)


def test_parse_event_rejects_signed_garbage():
    body = b"not-json"

    with pytest.raises(InvalidInput) as e:
        webhook_service.parse_event(body, compute_signature(SECRET, body), SECRET)

    assert str(e.value) == "Malformed webhook payload"


@pytest.mark.asyncio
async def test_handle_webhook_bad_signature_has_no_side_effects(mocker, handlers):
    body, _ = _signed(_order_event("order.paid"))

    with pytest.raises(InvalidInput):
        await webhook_service.handle_webhook(mocker.Mock(), body, "0" * 64, SECRET)

    for handler in handlers.values():
        handler.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("kind", ["order.paid", "payment.failed", "order.failed"])
async def test_handle_webhook_dispatches_by_event_type(mocker, handlers, kind):
    db = mocker.Mock()
    body, signature = _signed(_order_event(kind))

    result = await webhook_service.handle_webhook(db, body, signature, SECRET)

    assert result.applied is True
    handlers[kind].assert_awaited_once_with(db, "order_abc")
    for other, handler in handlers.items():
        if other != kind:
            handler.assert_not_awaited()


@pytest.mark.asyncio
async def test_handle_webhook_payment_failed_uses_payment_entity_order_id(mocker, handlers):
    db = mocker.Mock()
    body, signature = _signed({
        "event": "payment.failed",
        "payload": {"payment": {"entity": {"id": "pay_9", "order_id": "order_xyz"}}},
    })

    await webhook_service.handle_webhook(db, body, signature, SECRET)

    handlers["payment.failed"].assert_awaited_once_with(db, "order_xyz")


@pytest.mark.asyncio
async def test_handle_webhook_unknown_event_is_acknowledged(mocker, handlers):
    body, signature = _signed(_order_event("refund.created"))

    result = await webhook_service.handle_webhook(mocker.Mock(), body, signature, SECRET)

    assert result.applied is False
    for handler in handlers.values():
        handler.assert_not_awaited()


@pytest.mark.asyncio
async def test_handle_webhook_without_order_id_is_acknowledged(mocker, handlers):
    body, signature = _signed({"event": "order.paid", "payload": {}})

    result = await webhook_service.handle_webhook(mocker.Mock(), body, signature, SECRET)

    assert result.applied is False
    handlers["order.paid"].assert_not_awaited()


@pytest.mark.parametrize("payload", [["order"], "order_abc", 42, {"order": "order_abc"}, {"order": {"entity": []}}])
def test_extract_gateway_order_id_non_object_payload_returns_none(payload):
    assert webhook_service.extract_gateway_order_id({"event": "order.paid", "payload": payload}) is None


@pytest.mark.asyncio
async def test_handle_webhook_signed_non_object_payload_is_acknowledged(mocker, handlers):
    body, signature = _signed({"event": "order.paid", "payload": ["not", "an", "object"]})

    result = await webhook_service.handle_webhook(mocker.Mock(), body, signature, SECRET)

    assert result.applied is False
    handlers["order.paid"].assert_not_awaited()
