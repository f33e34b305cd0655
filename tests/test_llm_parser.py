import asyncio
import unittest
from datetime import date

from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import AIMessage

from restock_agent.intent.llm_parser import FALLBACK_REPLY, GENERATION_FAILED_REPLY, IntentParser
from restock_agent.intent.models import AddProductIntent, AddStockIntent, ChatIntent, UnrecognizedIntent
from restock_agent.intent.prompts import CATALOG_PROMPT, PRODUCT_CONTEXT_PROMPT


class RecordingModel:
    """Chat model stand-in that records the messages it was sent"""

    def __init__(self, text):
        self.text = text
        self.calls = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        return AIMessage(content=self.text)


class SlowModel:
    async def ainvoke(self, messages):
        await asyncio.sleep(5)


class BrokenModel:
    async def ainvoke(self, messages):
        raise RuntimeError("quota exceeded")


class InterpretTests(unittest.TestCase):
    def setUp(self):
        self.parser = IntentParser()

    def test_fenced_chat(self):
        intent = self.parser.interpret('```json\n{"intent":"chat","reply":"hello"}\n```')
        self.assertIsInstance(intent, ChatIntent)
        self.assertEqual(intent.kind, "chat")
        self.assertEqual(intent.payload, "hello")

    def test_trailing_comma_add_product(self):
        intent = self.parser.interpret(
            '{"intent":"add_product","data":[{"name":"Rice","description":"5kg bag","measure":"kg"},]}'
        )
        self.assertIsInstance(intent, AddProductIntent)
        self.assertEqual(len(intent.entries), 1)
        self.assertEqual(intent.entries[0].name, "Rice")

    def test_trailing_comma_repair_keeps_field_text(self):
        intent = self.parser.interpret(
            '{"intent":"add_product","data":[{"name":"Rice","description":"bag, ]5kg","measure":"kg"},]}'
        )
        self.assertIsInstance(intent, AddProductIntent)
        self.assertEqual(intent.entries[0].description, "bag, ]5kg")

    def test_add_stock(self):
        intent = self.parser.interpret(
            '{"intent":"add_stock","data":[{"expiryDate":"2030-01-31","qty":3},{"expiryDate":"2030-03-01","qty":1.5}]}'
        )
        self.assertIsInstance(intent, AddStockIntent)
        self.assertEqual(
            [(e.expiry_date, e.qty) for e in intent.entries],
            [(date(2030, 1, 31), 3), (date(2030, 3, 1), 1.5)],
        )

    def test_intent_name_is_case_insensitive(self):
        intent = self.parser.interpret('{"intent":" Chat ","reply":"hi"}')
        self.assertIsInstance(intent, ChatIntent)

    def test_no_json_is_unrecognized(self):
        intent = self.parser.interpret("I can only help with inventory.")
        self.assertIsInstance(intent, UnrecognizedIntent)
        self.assertEqual(intent.message, FALLBACK_REPLY)

    def test_missing_or_unknown_intent(self):
        for text in ('{"reply":"hi"}', '{"intent":"delete_everything"}', '["chat"]', '{"intent":"chat"}'):
            with self.subTest(text=text):
                intent = self.parser.interpret(text)
                self.assertIsInstance(intent, UnrecognizedIntent)
                self.assertTrue(intent.message)

    def test_invalid_measure_names_entry(self):
        intent = self.parser.interpret(
            '{"intent":"add_product","data":['
            '{"name":"Rice","description":"5kg bag","measure":"kg"},'
            '{"name":"Juice","description":"Orange","measure":"liter"}]}'
        )
        self.assertIsInstance(intent, UnrecognizedIntent)
        self.assertIn("entry 1", intent.message)
        self.assertIn("measure", intent.message)

    def test_invalid_stock_quantity(self):
        for qty in ('"5"', "0", "-2", "true"):
            with self.subTest(qty=qty):
                intent = self.parser.interpret(
                    '{"intent":"add_stock","data":[{"expiryDate":"2030-01-31","qty":%s}]}' % qty
                )
                self.assertIsInstance(intent, UnrecognizedIntent)
                self.assertIn("qty", intent.message)

    def test_empty_or_missing_data(self):
        for text in ('{"intent":"add_stock","data":[]}', '{"intent":"add_product"}', '{"intent":"add_product","data":{}}'):
            with self.subTest(text=text):
                self.assertIsInstance(self.parser.interpret(text), UnrecognizedIntent)


class ParseTests(unittest.IsolatedAsyncioTestCase):
    async def test_parse_with_fake_model(self):
        model = FakeListChatModel(responses=['{"intent":"chat","reply":"Hi! What would you like to add?"}'])
        parser = IntentParser(model)
        intent = await parser.parse("hello")
        self.assertIsInstance(intent, ChatIntent)
        self.assertEqual(intent.reply, "Hi! What would you like to add?")

    async def test_prompt_depends_on_product_context(self):
        model = RecordingModel('{"intent":"chat","reply":"ok"}')
        parser = IntentParser(model)

        await parser.parse("add 3 packs expiring next month", product_context=True)
        await parser.parse("add rice", product_context=False)

        with_product, without_product = model.calls
        self.assertEqual(with_product[0].content, PRODUCT_CONTEXT_PROMPT)
        self.assertEqual(without_product[0].content, CATALOG_PROMPT)
        self.assertEqual(with_product[1].content, "add 3 packs expiring next month")
        self.assertIn("add_stock", PRODUCT_CONTEXT_PROMPT)
        self.assertNotIn("add_stock", CATALOG_PROMPT)

    async def test_timeout_becomes_unrecognized(self):
        parser = IntentParser(SlowModel(), timeout=0.05)
        intent = await parser.parse("add rice")
        self.assertIsInstance(intent, UnrecognizedIntent)
        self.assertEqual(intent.message, GENERATION_FAILED_REPLY)

    async def test_model_error_becomes_unrecognized(self):
        intent = await IntentParser(BrokenModel()).parse("add rice")
        self.assertIsInstance(intent, UnrecognizedIntent)
        self.assertEqual(intent.message, GENERATION_FAILED_REPLY)

    async def test_no_model_configured(self):
        parser = IntentParser()
        self.assertFalse(parser.available)
        intent = await parser.parse("add rice")
        self.assertIsInstance(intent, UnrecognizedIntent)


if __name__ == "__main__":
    unittest.main()
