import logging

logger = logging.getLogger(__name__)

# Topic sets for each webhook view category.
# Used by views to validate that the received topic matches the endpoint.
ORDER_TOPICS = frozenset(
    {
        "orders/create",
        "orders/updated",
        "orders/cancelled",
    }
)

COMPLIANCE_TOPICS = frozenset(
    {
        "customers/data_request",
        "customers/redact",
        "shop/redact",
    }
)

APP_TOPICS = frozenset(
    {
        "app/uninstalled",
    }
)

# Registry mapping platform topic strings to handler callables with the
# signature ``handler(notification, integration)``. Handler modules register
# themselves at import time; apps.ready() imports them.
_topic_handlers = {}


def register_handler(topic, handler):
    """Register a handler callable for a webhook topic."""
    _topic_handlers[topic] = handler
    logger.debug("Registered handler for topic: %s", topic)


def get_handler(topic):
    """Return the handler callable for the given topic, or None."""
    return _topic_handlers.get(topic)


def registered_topics():
    return frozenset(_topic_handlers)
