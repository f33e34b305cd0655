"""
Routes a parsed intent to catalog/stock operations or a plain reply
"""
from dataclasses import dataclass
from typing import Optional

from restock_agent.intent.models import ParsedIntent
from restock_agent.inventory.catalog import CatalogService
from restock_agent.inventory.stock import StockLedgerService
from restock_agent.models import ProductCatalog, StockLedger

OPEN_PRODUCT_PAGE_REPLY = "Please open the product page to add stock."


@dataclass
class DispatchResult:
    reply: str
    catalog: Optional[ProductCatalog] = None
    ledger: Optional[StockLedger] = None


class IntentDispatcher:
    """
    Executes an intent for one user

    Each branch writes at most one aggregate, in one call, so a failing
    batch leaves nothing behind. Catalog and ledger errors propagate.
    """

    def __init__(self, catalog: CatalogService, stock: StockLedgerService):
        self.catalog = catalog
        self.stock = stock

    def dispatch(
        self,
        intent: ParsedIntent,
        user_id: str,
        product_id: Optional[str] = None,
    ) -> DispatchResult:
        if intent.kind == "add_stock":
            if not product_id:
                return DispatchResult(reply=OPEN_PRODUCT_PAGE_REPLY)
            ledger, _ = self.stock.add_lots(user_id, product_id, intent.entries)
            return DispatchResult(
                reply=f"✅ {len(intent.entries)} stock entry(ies) added successfully.",
                ledger=ledger,
            )

        if intent.kind == "add_product":
            catalog, _ = self.catalog.add_products(user_id, intent.entries)
            return DispatchResult(
                reply=f"✅ {len(intent.entries)} product(s) added successfully.",
                catalog=catalog,
            )

        if intent.kind == "chat":
            return DispatchResult(reply=intent.reply)

        return DispatchResult(reply=intent.message)
