"""
Stock lot operations: add lots, consume from a lot, list stock

Each lot keeps an append-only usage log, so for every lot
qty + sum(usage_events.used_qty) == original_qty holds exactly (Decimal
quantities).
"""
import logging
from datetime import date
from decimal import Decimal
from typing import Any, List, Sequence, Tuple, Union

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from restock_agent.database.ledger_store import LedgerStore
from restock_agent.errors import InsufficientStockError, NotFoundError, ValidationError
from restock_agent.inventory.catalog import CatalogService
from restock_agent.models import (
    PositiveQty,
    ProductStock,
    StockLedger,
    StockLot,
    StockLotSpec,
    UsageEvent,
    describe_validation_error,
    validate_entries,
)

logger = logging.getLogger(__name__)

_positive_qty = TypeAdapter(PositiveQty)


def validate_quantity(value: Any, field: str) -> Decimal:
    """
    Raises:
        ValidationError: value is not a finite number greater than zero
    """
    try:
        return _positive_qty.validate_python(value)
    except PydanticValidationError as e:
        raise ValidationError(f"{field}: {describe_validation_error(e)}")


class StockLedgerService:
    """Per-(user, product) stock lots and their usage history"""

    def __init__(self, store: LedgerStore, catalog: CatalogService):
        self.store = store
        self.catalog = catalog

    def add_lot(
        self,
        user_id: str,
        product_id: str,
        expiry_date: Union[str, date],
        qty: Any,
    ) -> Tuple[StockLedger, bool]:
        """
        Add one lot to the product's ledger, creating the ledger if needed

        Returns:
            (ledger, created)

        Raises:
            ValidationError: qty not > 0 or expiry_date not YYYY-MM-DD
            PersistenceError: the store failed
        """
        return self.add_lots(user_id, product_id, [{"expiryDate": expiry_date, "qty": qty}])

    def add_lots(
        self,
        user_id: str,
        product_id: str,
        entries: Sequence[Any],
    ) -> Tuple[StockLedger, bool]:
        """Validate a batch of lots, then append all of them in one write"""
        specs = validate_entries(entries, StockLotSpec, what="stock entries")
        lots = [StockLot.from_spec(spec) for spec in specs]

        ledger, created = self.store.append_lots(user_id, product_id, lots)
        logger.info(
            "Added %d lot(s) to product %s for user %s", len(lots), product_id, user_id
        )
        return ledger, created

    def consume_from_lot(
        self,
        user_id: str,
        product_id: str,
        lot_id: str,
        used_qty: Any,
    ) -> StockLedger:
        """
        Take used_qty out of one lot and log the usage

        The sufficiency check, the decrement and the log append happen in a
        single atomic update, so concurrent consumes cannot over-deplete.

        Raises:
            ValidationError: used_qty not a finite number > 0
            NotFoundError: no ledger for the product, or no such lot
            InsufficientStockError: used_qty exceeds the lot's qty
        """
        used_qty = validate_quantity(used_qty, "usedQty")

        def consume(ledger: StockLedger):
            lot = ledger.find_lot(lot_id)
            if lot is None:
                raise NotFoundError("Stock item not found")
            if used_qty > lot.qty:
                raise InsufficientStockError(
                    f"Used quantity {used_qty:g} exceeds available stock {lot.qty:g}"
                )
            lot.qty -= used_qty
            lot.usage_events.append(UsageEvent(used_qty=used_qty))

        ledger = self.store.apply(user_id, product_id, consume)
        if ledger is None:
            raise NotFoundError("Stock not found")

        logger.info("Used %s from lot %s of product %s", used_qty, lot_id, product_id)
        return ledger

    def list_lots_for_product(self, user_id: str, product_id: str) -> List[StockLot]:
        """All lots, depleted ones included; empty if no ledger"""
        ledger = self.store.get(user_id, product_id)
        if ledger is None:
            return []
        return ledger.lots

    def list_all_stock_for_user(self, user_id: str) -> List[ProductStock]:
        """Every ledger of the user, joined with catalog names for display"""
        ledgers = self.store.list_for_user(user_id)
        if not ledgers:
            return []

        products = {product.id: product for product in self.catalog.list_products(user_id)}
        stock = []
        for ledger in ledgers:
            product = products.get(ledger.product_id)
            stock.append(ProductStock(
                product_id=ledger.product_id,
                name=product.name if product else None,
                description=product.description if product else None,
                measure=product.measure if product else None,
                lots=ledger.lots,
            ))
        return stock
