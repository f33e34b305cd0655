"""
Product catalog store: one ProductCatalog document per user
"""
from typing import List, Optional, Tuple

from restock_agent.database.document_store import DocumentStore
from restock_agent.models import Product, ProductCatalog, utc_now

COLLECTION = "product_catalogs"


class CatalogStore:
    """Maps ProductCatalog aggregates onto the document store"""

    def __init__(self, store: DocumentStore):
        self.store = store

    def get(self, user_id: str) -> Optional[ProductCatalog]:
        body = self.store.find(COLLECTION, user_id)
        if body is None:
            return None
        return ProductCatalog.model_validate(body)

    def append_products(self, user_id: str, products: List[Product]) -> Tuple[ProductCatalog, bool]:
        """
        Append products to the user's catalog, creating it if absent

        Returns:
            (catalog, created)
        """
        new_entries = [product.model_dump(mode="json", by_alias=True) for product in products]

        def create():
            catalog = ProductCatalog(user_id=user_id, products=products)
            return catalog.model_dump(mode="json", by_alias=True)

        def append(body):
            body["products"].extend(new_entries)
            body["updatedAt"] = utc_now().isoformat()
            return body

        body, created = self.store.create_or_update(COLLECTION, user_id, user_id, create, append)
        return ProductCatalog.model_validate(body), created
