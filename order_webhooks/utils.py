"""Utility helpers for the order webhooks app."""

import hashlib

from .conf import get_setting


def normalize_shop_domain(value):
    """Return a canonical ``*.myshopify.com`` style domain, or ``""``.

    Strips the scheme, any path and surrounding whitespace, and lowercases
    the host. Values containing characters that cannot appear in a hostname
    are rejected with an empty string.

    Examples::

        >>> normalize_shop_domain("https://Demo-Shop.myshopify.com/admin")
        'demo-shop.myshopify.com'
        >>> normalize_shop_domain("not a domain")
        ''
    """
    if not value:
        return ""
    domain = value.strip().lower()
    for prefix in ("https://", "http://"):
        if domain.startswith(prefix):
            domain = domain[len(prefix):]
    domain = domain.split("/", 1)[0]
    if not domain or "." not in domain:
        return ""
    allowed = set("abcdefghijklmnopqrstuvwxyz0123456789-.")
    if any(ch not in allowed for ch in domain):
        return ""
    return domain


def payload_sha256(raw_body):
    return hashlib.sha256(raw_body).hexdigest()


def truncate_error(exc_or_text, limit=None):
    """Render an exception (or text) for storage in ``last_error``."""
    limit = limit or get_setting("MAX_ERROR_LENGTH")
    if isinstance(exc_or_text, BaseException):
        text = f"{type(exc_or_text).__name__}: {exc_or_text}"
    else:
        text = str(exc_or_text)
    return text[:limit]


def external_id(value):
    """Platform ids arrive as ints or strings; they are stored as text."""
    if value is None or value == "":
        return ""
    return str(value)
