"""
Catalog/stock lookups used by checkout.
"""
from decimal import Decimal
from typing import Dict, Iterable, Optional

from ..models import Product


class CatalogService:
    """Read-only access to live prices and availability"""

    @staticmethod
    def get_product(product_id) -> Optional[Product]:
        return Product.objects.filter(pk=product_id).first()

    @staticmethod
    def get_products(product_ids: Iterable) -> Dict[int, Product]:
        """Fetch several products in one query, keyed by id"""
        return Product.objects.in_bulk(list(product_ids))

    @staticmethod
    def get_current_price(product_id) -> Decimal:
        """Current selling price; raises Product.DoesNotExist for unknown products"""
        return Product.objects.values_list('price', flat=True).get(pk=product_id)

    @staticmethod
    def is_available(product_id, variant: Optional[Dict] = None) -> bool:
        product = CatalogService.get_product(product_id)
        return CatalogService.product_is_available(product, variant)

    @staticmethod
    def product_is_available(product: Optional[Product], variant: Optional[Dict] = None) -> bool:
        if product is None or not product.in_stock:
            return False
        variant = variant or {}
        return product.offers_variant(size=variant.get('size'), color=variant.get('color'))
