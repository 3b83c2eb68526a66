import uuid
from contextvars import ContextVar, Token
from typing import Any
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from eventhub.core.ctx import REQUEST_ID_CTX, ROUTE_CTX, CLIENT_IP_CTX, REDIS_CTX


def _forwarded_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for", "")
    first = forwarded.split(",")[0].strip()
    if first:
        return first
    return request.client.host if request.client else None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds per-request context vars for audit records and echoes the request id header."""

    def __init__(self, app, header_name: str = "X-Request-ID"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(self.header_name) or uuid.uuid4().hex
        bound: list[tuple[ContextVar[Any], Token]] = [
            (REQUEST_ID_CTX, REQUEST_ID_CTX.set(request_id)),
            (ROUTE_CTX, ROUTE_CTX.set(f"{request.method} {request.url.path}")),
            (CLIENT_IP_CTX, CLIENT_IP_CTX.set(_forwarded_ip(request))),
            (REDIS_CTX, REDIS_CTX.set(getattr(request.app.state, "redis", None))),
        ]
        try:
            response = await call_next(request)
        finally:
            for var, token in reversed(bound):
                var.reset(token)
        response.headers[self.header_name] = request_id
        return response
