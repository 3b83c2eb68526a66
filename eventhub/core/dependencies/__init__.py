from eventhub.core.dependencies.auth import get_current_user_with_roles, get_token_payload
from eventhub.core.dependencies.clients import get_payment_gateway, get_notifier, get_webhook_secret, \
    get_identity_webhook_secret

__all__ = [
    "get_current_user_with_roles",
    "get_token_payload",
    "get_payment_gateway",
    "get_notifier",
    "get_webhook_secret",
    "get_identity_webhook_secret",
]
