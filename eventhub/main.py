import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from eventhub.api.exceptions import register_error_handler
from eventhub.api.v1.routes import orders, webhooks, events, revenue, admin_maintenance, users
from eventhub.core.config import REDIS_URL, LOG_LEVEL, GATEWAY_BASE_URL, GATEWAY_KEY_ID, GATEWAY_KEY_SECRET, \
    GATEWAY_TIMEOUT_SECONDS, build_database_url
from eventhub.core.database import create_engine_and_sessionmaker
from eventhub.core.logging import configure_logging
from eventhub.core.middleware.request_context import RequestContextMiddleware
from eventhub.core.redis import create_redis
from eventhub.integrations.payment_gateway import PaymentGatewayClient
from eventhub.services.notification_service import NotificationPublisher

logger = logging.getLogger("eventhub")


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(LOG_LEVEL)

    engine, sessionmaker = create_engine_and_sessionmaker(build_database_url())
    app.state.sessionmaker = sessionmaker

    r = create_redis(REDIS_URL) if REDIS_URL else None
    if r is None:
        logger.warning("REDIS_URL not set; audit and notifications are disabled")
    app.state.redis = r
    app.state.notifier = NotificationPublisher(r)

    gateway = PaymentGatewayClient(
        base_url=GATEWAY_BASE_URL,
        key_id=GATEWAY_KEY_ID,
        key_secret=GATEWAY_KEY_SECRET,
        timeout=GATEWAY_TIMEOUT_SECONDS
    )
    app.state.payment_gateway = gateway

    try:
        yield
    finally:
        await gateway.aclose()
        if r is not None:
            await r.aclose()
        await engine.dispose()


def create_app() -> FastAPI:
    application = FastAPI(title="EventHub", lifespan=lifespan)
    register_error_handler(application)
    application.add_middleware(RequestContextMiddleware, header_name="X-Request-ID")
    application.include_router(orders.router)
    application.include_router(webhooks.router)
    application.include_router(events.router)
    application.include_router(revenue.router)
    application.include_router(admin_maintenance.router)
    application.include_router(users.router)
    return application


app = create_app()
