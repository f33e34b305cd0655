"""
Product catalog operations
"""
import logging
from typing import Any, List, Optional, Sequence, Tuple

from restock_agent.database.catalog_store import CatalogStore
from restock_agent.models import Product, ProductCatalog, ProductSpec, validate_entries

logger = logging.getLogger(__name__)


class CatalogService:
    """Validated appends to a user's product catalog"""

    def __init__(self, store: CatalogStore):
        self.store = store

    def add_products(self, user_id: str, entries: Sequence[Any]) -> Tuple[ProductCatalog, bool]:
        """
        Append a batch of products to the user's catalog

        Every entry is validated before anything is written; one bad entry
        fails the whole batch.

        Args:
            user_id: Owning user
            entries: Mappings (camelCase or snake_case keys) or ProductSpec

        Returns:
            (catalog, created) where created is True if this call created
            the user's catalog

        Raises:
            ValidationError: an entry is invalid (message names its index)
            PersistenceError: the store failed
        """
        specs = validate_entries(entries, ProductSpec, what="products")
        products = [Product(**spec.model_dump()) for spec in specs]

        catalog, created = self.store.append_products(user_id, products)
        logger.info("Added %d product(s) for user %s", len(products), user_id)
        return catalog, created

    def add_product(self, user_id: str, entry: Any) -> Tuple[ProductCatalog, bool]:
        return self.add_products(user_id, [entry])

    def get_catalog(self, user_id: str) -> Optional[ProductCatalog]:
        return self.store.get(user_id)

    def list_products(self, user_id: str) -> List[Product]:
        """The user's products in insertion order; empty if none"""
        catalog = self.store.get(user_id)
        if catalog is None:
            return []
        return catalog.products
