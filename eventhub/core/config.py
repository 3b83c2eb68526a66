import os


class ConfigError(RuntimeError):
    pass


def get_secret(secret_name: str) -> str | None:
    secret_path = f'/run/secrets/{secret_name}'
    try:
        with open(secret_path, 'r', encoding='utf-8') as secret_file:
            return secret_file.read().strip()
    except IOError:
        return os.getenv(secret_name)


DB_PASSWORD = get_secret('db_password')
JWT_SECRET = get_secret('jwt_secret')
GATEWAY_KEY_SECRET = get_secret('gateway_key_secret')
GATEWAY_WEBHOOK_SECRET = get_secret('gateway_webhook_secret')
IDENTITY_WEBHOOK_SECRET = get_secret('identity_webhook_secret')

POSTGRES_DB = os.getenv("POSTGRES_DB")
POSTGRES_USER = os.getenv("POSTGRES_USER")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = os.getenv("DB_PORT", "5432")
REDIS_URL = os.getenv("REDIS_URL")

JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_ISSUER = os.getenv("JWT_ISSUER", "eventhub-identity")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "eventhub-api")

GATEWAY_KEY_ID = os.getenv("GATEWAY_KEY_ID")
GATEWAY_BASE_URL = os.getenv("GATEWAY_BASE_URL", "https://api.razorpay.com/v1")
GATEWAY_CURRENCY = os.getenv("GATEWAY_CURRENCY", "INR")
GATEWAY_TIMEOUT_SECONDS = float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "10"))
GATEWAY_SIGNATURE_HEADER = "X-Razorpay-Signature"
GATEWAY_ORDER_EXPIRE_MINUTES = int(os.getenv("GATEWAY_ORDER_EXPIRE_MINUTES", "15"))
# local hold outlives the gateway checkout so a late capture still finds RESERVED stock
RESERVATION_MINUTES = 2 * GATEWAY_ORDER_EXPIRE_MINUTES

AUDIT_STREAM = os.getenv("AUDIT_STREAM", "audit:events")
NOTIFICATION_STREAM = os.getenv("NOTIFICATION_STREAM", "notifications:outbox")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def build_database_url() -> str:
    if POSTGRES_USER and DB_PASSWORD and POSTGRES_DB:
        return f"postgresql+asyncpg://{POSTGRES_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{POSTGRES_DB}"
    raise ConfigError("Can't build DATABASE_URL")
