import base64
import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)


def verify_shopify_hmac(request_body: bytes, hmac_header: str, secret: str) -> bool:
    """Verify the HMAC-SHA256 signature of an inbound webhook request.

    Shopify sends an X-Shopify-Hmac-Sha256 header containing a Base64-encoded
    HMAC-SHA256 digest of the raw request body, computed with the webhook
    secret. Some relays forward the hex encoding instead, so both are
    accepted.

    Args:
        request_body: The raw HTTP request body bytes, before any parsing.
        hmac_header: The value of the X-Shopify-Hmac-Sha256 header.
        secret: The integration's webhook secret (or the app-level secret).

    Returns:
        True if the signature matches either encoding, False otherwise.
        An empty secret or header is always rejected.
    """
    if not secret or not hmac_header:
        logger.warning(
            "HMAC verification skipped: secret_present=%s header_present=%s",
            bool(secret),
            bool(hmac_header),
        )
        return False

    digest = hmac.new(secret.encode("utf-8"), request_body, hashlib.sha256).digest()
    computed_b64 = base64.b64encode(digest).decode("utf-8")
    computed_hex = digest.hex()

    header = hmac_header.strip()
    # Compared as bytes: compare_digest rejects non-ASCII str arguments.
    header_bytes = header.encode("utf-8")
    matches_b64 = hmac.compare_digest(computed_b64.encode("ascii"), header_bytes)
    matches_hex = hmac.compare_digest(
        computed_hex.encode("ascii"), header.lower().encode("utf-8")
    )
    if matches_b64 or matches_hex:
        return True

    # Lengths only; digest values must never reach the logs.
    logger.warning(
        "HMAC mismatch: header_len=%d b64_len=%d hex_len=%d "
        "b64_match=%s hex_match=%s",
        len(header),
        len(computed_b64),
        len(computed_hex),
        matches_b64,
        matches_hex,
    )
    return False
