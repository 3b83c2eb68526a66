import logging
from dataclasses import dataclass
from typing import Any, Mapping
import httpx
from eventhub.domain.exceptions import UpstreamServiceError

logger = logging.getLogger("eventhub.gateway")


@dataclass(frozen=True)
class GatewayOrder:
    id: str
    amount: int
    currency: str
    status: str


class PaymentGatewayClient:
    """
    Thin async client for the hosted-checkout gateway's Orders API.

    Only order creation is needed server-side; capture happens in the gateway's
    checkout UI and is reported back through signed webhooks.
    """

    def __init__(
            self,
            *,
            base_url: str,
            key_id: str | None,
            key_secret: str | None,
            timeout: float = 10.0,
            transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        auth = httpx.BasicAuth(key_id, key_secret) if key_id and key_secret else None
        self._client = httpx.AsyncClient(base_url=base_url, auth=auth, timeout=timeout, transport=transport)
        self._configured = auth is not None

    async def create_order(
            self,
            *,
            amount_cents: int,
            currency: str,
            receipt: str | None = None,
            notes: Mapping[str, Any] | None = None,
    ) -> GatewayOrder:
        if not self._configured:
            raise UpstreamServiceError("Payment gateway credentials are not configured")

        body: dict[str, Any] = {"amount": amount_cents, "currency": currency}
        if receipt:
            body["receipt"] = receipt
        if notes:
            body["notes"] = {k: str(v) for k, v in notes.items()}

        try:
            response = await self._client.post("/orders", json=body)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error("Gateway rejected order creation status=%s body=%s",
                         e.response.status_code, e.response.text[:500])
            raise UpstreamServiceError(
                "Payment gateway rejected the order",
                ctx={"status_code": e.response.status_code}
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Gateway order creation failed: %s", e)
            raise UpstreamServiceError("Payment gateway unavailable") from e

        try:
            return GatewayOrder(
                id=str(data["id"]),
                amount=int(data["amount"]),
                currency=str(data.get("currency", currency)),
                status=str(data.get("status", "created")),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamServiceError("Malformed payment gateway response") from e

    async def aclose(self) -> None:
        await self._client.aclose()
