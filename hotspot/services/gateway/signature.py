import hashlib
import hmac


def compute_signature(body: bytes, secret: str) -> str:
    """HMAC-SHA512 over the exact request bytes, hex encoded."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha512).hexdigest()


def verify_signature(body: bytes, signature: str | None, secret: str) -> bool:
    if not secret or not signature:
        return False
    computed = compute_signature(body, secret)
    return hmac.compare_digest(computed, signature.strip().lower())
