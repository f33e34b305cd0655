import os
import tempfile
import unittest

from restock_agent.database.catalog_store import CatalogStore
from restock_agent.database.document_store import DocumentStore
from restock_agent.database.ledger_store import LedgerStore
from restock_agent.intent import IntentDispatcher, IntentParser
from restock_agent.intent.dispatcher import OPEN_PRODUCT_PAGE_REPLY
from restock_agent.intent.models import ChatIntent, UnrecognizedIntent
from restock_agent.inventory.catalog import CatalogService
from restock_agent.inventory.stock import StockLedgerService


class IntentDispatcherTests(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        store = DocumentStore(os.path.join(self.temp_dir.name, "inventory.db"))
        self.catalog = CatalogService(CatalogStore(store))
        self.stock = StockLedgerService(LedgerStore(store), self.catalog)
        self.dispatcher = IntentDispatcher(self.catalog, self.stock)
        self.parser = IntentParser()

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_add_stock_with_product(self):
        intent = self.parser.interpret(
            '{"intent":"add_stock","data":[{"expiryDate":"2030-01-31","qty":3},{"expiryDate":"2030-02-01","qty":2}]}'
        )
        result = self.dispatcher.dispatch(intent, "u1", "p1")
        self.assertEqual(result.reply, "✅ 2 stock entry(ies) added successfully.")
        self.assertEqual(len(result.ledger.lots), 2)
        self.assertEqual(len(self.stock.list_lots_for_product("u1", "p1")), 2)

    def test_add_stock_without_product_redirects(self):
        intent = self.parser.interpret('{"intent":"add_stock","data":[{"expiryDate":"2030-01-31","qty":3}]}')
        result = self.dispatcher.dispatch(intent, "u1")
        self.assertEqual(result.reply, OPEN_PRODUCT_PAGE_REPLY)
        self.assertIsNone(result.ledger)
        self.assertEqual(self.stock.list_all_stock_for_user("u1"), [])

    def test_add_product(self):
        intent = self.parser.interpret(
            '{"intent":"add_product","data":[{"name":"Rice","description":"5kg bag","measure":"kg"}]}'
        )
        result = self.dispatcher.dispatch(intent, "u1")
        self.assertEqual(result.reply, "✅ 1 product(s) added successfully.")
        self.assertEqual([p.name for p in self.catalog.list_products("u1")], ["Rice"])
        self.assertEqual(result.catalog.user_id, "u1")

    def test_chat_and_unrecognized_pass_through(self):
        self.assertEqual(self.dispatcher.dispatch(ChatIntent(reply="Hi there"), "u1").reply, "Hi there")
        self.assertEqual(
            self.dispatcher.dispatch(UnrecognizedIntent(message="Say again?"), "u1", "p1").reply,
            "Say again?",
        )
        self.assertEqual(self.catalog.list_products("u1"), [])


if __name__ == "__main__":
    unittest.main()
