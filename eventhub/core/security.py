import base64
import hmac
import hashlib
import time

IDENTITY_SECRET_PREFIX = "whsec_"
IDENTITY_TOLERANCE_SECONDS = 300


def compute_signature(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def verify_signature(secret: str | None, body: bytes, signature: str | None) -> bool:
    """
    Gateway webhooks are signed with a hex HMAC-SHA256 of the exact raw body.
    Any re-serialisation of the JSON would change the digest, so callers must pass
    the bytes as received.
    """
    if not secret or not signature:
        return False
    return hmac.compare_digest(compute_signature(secret, body), signature.strip())


def _identity_key(secret: str) -> bytes:
    if secret.startswith(IDENTITY_SECRET_PREFIX):
        return base64.b64decode(secret[len(IDENTITY_SECRET_PREFIX):])
    return secret.encode()


def compute_identity_signature(secret: str, message_id: str, timestamp: str, body: bytes) -> str:
    signed = f"{message_id}.{timestamp}.".encode() + body
    digest = hmac.new(_identity_key(secret), signed, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def verify_identity_signature(
        secret: str | None,
        body: bytes,
        *,
        message_id: str | None,
        timestamp: str | None,
        signature: str | None,
        now: float | None = None,
        tolerance: int = IDENTITY_TOLERANCE_SECONDS
) -> bool:
    """
    Identity provider deliveries carry an id, a unix timestamp and a space separated
    list of ``v1,<base64 hmac>`` signatures over ``"{id}.{timestamp}.{body}"``.
    """
    if not secret or not message_id or not timestamp or not signature:
        return False
    try:
        sent_at = int(timestamp)
    except ValueError:
        return False
    if abs((now if now is not None else time.time()) - sent_at) > tolerance:
        return False

    expected = compute_identity_signature(secret, message_id, timestamp, body)
    for candidate in signature.split():
        version, _, value = candidate.partition(",")
        if version == "v1" and hmac.compare_digest(expected.encode(), value.encode()):
            return True
    return False
