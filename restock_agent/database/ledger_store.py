"""
Stock ledger store: one StockLedger document per (user, product)
"""
from typing import Callable, List, Optional, Tuple

from restock_agent.database.document_store import DocumentStore
from restock_agent.models import StockLedger, StockLot, utc_now

COLLECTION = "stock_ledgers"


def ledger_key(user_id: str, product_id: str) -> str:
    return f"{user_id}:{product_id}"


class LedgerStore:
    """Maps StockLedger aggregates onto the document store"""

    def __init__(self, store: DocumentStore):
        self.store = store

    def get(self, user_id: str, product_id: str) -> Optional[StockLedger]:
        body = self.store.find(COLLECTION, ledger_key(user_id, product_id))
        if body is None:
            return None
        return StockLedger.model_validate(body)

    def list_for_user(self, user_id: str) -> List[StockLedger]:
        return [
            StockLedger.model_validate(body)
            for body in self.store.find_by_owner(COLLECTION, user_id)
        ]

    def append_lots(self, user_id: str, product_id: str, lots: List[StockLot]) -> Tuple[StockLedger, bool]:
        """
        Append lots to the ledger, creating it if absent

        Returns:
            (ledger, created)
        """
        new_lots = [lot.model_dump(mode="json", by_alias=True) for lot in lots]

        def create():
            ledger = StockLedger(user_id=user_id, product_id=product_id, lots=lots)
            return ledger.model_dump(mode="json", by_alias=True)

        def append(body):
            body["lots"].extend(new_lots)
            body["updatedAt"] = utc_now().isoformat()
            return body

        body, created = self.store.create_or_update(
            COLLECTION, ledger_key(user_id, product_id), user_id, create, append
        )
        return StockLedger.model_validate(body), created

    def apply(
        self,
        user_id: str,
        product_id: str,
        change: Callable[[StockLedger], None],
    ) -> Optional[StockLedger]:
        """
        Run ``change`` on the ledger inside one atomic update

        ``change`` mutates the ledger in place or raises to abort without
        writing anything.

        Returns:
            The updated ledger, or None if no ledger exists
        """
        def mutate(body):
            ledger = StockLedger.model_validate(body)
            change(ledger)
            ledger.updated_at = utc_now()
            return ledger.model_dump(mode="json", by_alias=True)

        body = self.store.update(COLLECTION, ledger_key(user_id, product_id), mutate)
        if body is None:
            return None
        return StockLedger.model_validate(body)
