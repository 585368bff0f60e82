"""Error taxonomy for webhook ingestion and order consistency."""


class WebhookError(Exception):
    """Base class for errors raised by this app."""


class PermanentError(WebhookError):
    """A failure that will not go away by retrying."""


class TransientError(WebhookError):
    """A failure worth retrying with backoff (timeouts, upstream 5xx)."""


class PayloadError(PermanentError):
    """The notification payload does not have the shape its topic requires."""

    def __init__(self, topic, errors):
        self.topic = topic
        self.errors = errors
        super().__init__(f"Malformed {topic} payload: {errors}")


class IntegrationNotFound(PermanentError):
    """No active integration exists for the notification's shop domain."""


class UnknownTopic(PermanentError):
    """No handler is registered for the notification's topic."""


class InvalidStatusTransition(PermanentError):
    """An order status change that the fulfillment pipeline does not allow."""


class CascadeError(WebhookError):
    """An order hard-delete could not be completed; nothing was changed."""


def is_transient(exception):
    """Return True when retrying ``exception`` later may succeed.

    Permanent: :class:`PermanentError` and HTTP 4xx responses other than 429.
    Everything else is transient: :class:`TransientError`, connection errors,
    timeouts, HTTP 5xx or 429 responses, and unrecognised exceptions.
    """
    if isinstance(exception, PermanentError):
        return False
    if isinstance(exception, TransientError):
        return True
    response = getattr(exception, "response", None)
    if response is not None:
        status_code = response.status_code
        if status_code == 429 or 500 <= status_code < 600:
            return True
        if 400 <= status_code < 500:
            return False
    return True
