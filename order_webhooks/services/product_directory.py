import logging

from ..models import Product

logger = logging.getLogger(__name__)


class ProductDirectory:
    """Resolve platform product references to local products of one store.

    Lookup priority is variant id, then product id, then SKU (compared
    case-insensitively). Results are memoised for the lifetime of the
    directory, which is one notification.
    """

    def __init__(self, store):
        self.store = store
        self._cache = {}

    def resolve(self, product_id="", variant_id="", sku=""):
        """Return the matching :class:`Product` or None."""
        key = (product_id or "", variant_id or "", (sku or "").upper())
        if key not in self._cache:
            self._cache[key] = self._lookup(*key)
        return self._cache[key]

    def _lookup(self, product_id, variant_id, sku):
        products = Product.objects.filter(store=self.store)
        if variant_id:
            product = products.filter(external_variant_id=variant_id).first()
            if product is not None:
                return product
        if product_id:
            product = products.filter(external_product_id=product_id).first()
            if product is not None:
                return product
        if sku:
            product = products.filter(sku__iexact=sku).first()
            if product is not None:
                return product
        logger.debug(
            "No local product for product_id=%s variant_id=%s sku=%s (store=%s)",
            product_id,
            variant_id,
            sku,
            self.store.pk,
        )
        return None
